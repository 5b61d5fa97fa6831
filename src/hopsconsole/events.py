"""Event projector: turns backend event envelopes into display rows."""

from collections.abc import Mapping
from typing import Any, Callable

from hopsconsole.formatting import RelativeTimeFormatter
from hopsconsole.models import (
    BatchView, DisplayRow, EnrichedEventItem, EventItem, EventLog,
    InvalidPayload, JSONValue, parse_envelope, parse_event_item, parse_event_log,
)


def done_label(value: Any) -> str:
    """Tri-state label: only the literal booleans map to 'true'/'false'."""
    if value is True:
        return "true"
    if value is False:
        return "false"
    return ""


class EventProjector:
    """Projects bare, enriched and batch envelopes using an injected formatter."""

    def __init__(self, formatter: RelativeTimeFormatter):
        self.formatter = formatter
        self._projectors: dict[type, Callable[[Any], DisplayRow]] = {
            EventItem: self._project_bare,
            EnrichedEventItem: self._project_enriched,
        }

    def _project_bare(self, item: EventItem) -> DisplayRow:
        hops = item.hops
        return DisplayRow(
            timestamp=self.formatter.format_timestamp(item.timestamp),
            event_id=item.sequence_id,
            event=hops.event,
            source=hops.source,
            action=hops.action,
            json=item.event,
            done=done_label(None),
        )

    def _project_enriched(self, item: EnrichedEventItem) -> DisplayRow:
        hops = item.hops
        return DisplayRow(
            timestamp=self.formatter.format_timestamp(item.timestamp),
            event_id=item.sequence_id,
            event=hops.event,
            source=hops.source,
            action=hops.action,
            json=item.event,
            app_name=item.app_name or "",
            channel=item.channel or "",
            done=done_label(item.done),
            handler_name=item.handler_name or "",
            message_id=item.message_id or "",
        )

    def project_one(self, envelope: EventItem | Mapping) -> DisplayRow:
        """Project a single bare or enriched envelope.

        Missing nested fields become empty strings. Raises InvalidPayload only
        when the envelope itself is not an object, or is a batch log.
        """
        if isinstance(envelope, EventLog):
            raise InvalidPayload("Expected a single event envelope, got an event log")
        if isinstance(envelope, Mapping):
            if "event_items" in envelope:
                raise InvalidPayload("Expected a single event envelope, got an event log")
            envelope = parse_event_item(envelope)
        projector = self._projectors.get(type(envelope))
        if projector is None:
            raise InvalidPayload(
                f"Event envelope must be an object, got {type(envelope).__name__}")
        return projector(envelope)

    def project_many(self, envelopes: Any) -> list[DisplayRow]:
        """Project a plain list of envelopes, as returned by the older endpoint."""
        if not isinstance(envelopes, list):
            raise InvalidPayload(
                f"Expected a list of event envelopes, got {type(envelopes).__name__}")
        return [self.project_one(e) for e in envelopes]

    def project_batch(self, batch_log: EventLog | Mapping) -> BatchView:
        """Project every item of a batch log, keeping delivery order."""
        if not isinstance(batch_log, EventLog):
            batch_log = parse_event_log(batch_log)
        return BatchView(
            ago=self.relative_age(batch_log.start_timestamp),
            rows=[self.project_one(item) for item in batch_log.event_items],
        )

    def relative_age(self, timestamp: JSONValue) -> str:
        return self.formatter.relative_age(timestamp)

    def project(self, payload: Any) -> BatchView | list[DisplayRow] | DisplayRow:
        """Project whatever an events fetch returned: log, list or single envelope."""
        if isinstance(payload, list):
            return self.project_many(payload)
        envelope = parse_envelope(payload)
        if isinstance(envelope, EventLog):
            return self.project_batch(envelope)
        return self.project_one(envelope)


def _projector(formatter: RelativeTimeFormatter | None) -> EventProjector:
    return EventProjector(formatter or RelativeTimeFormatter())


def project_one(envelope: EventItem | Mapping,
                formatter: RelativeTimeFormatter | None = None) -> DisplayRow:
    return _projector(formatter).project_one(envelope)


def project_batch(batch_log: EventLog | Mapping,
                  formatter: RelativeTimeFormatter | None = None) -> BatchView:
    return _projector(formatter).project_batch(batch_log)


def relative_age(timestamp: JSONValue,
                 formatter: RelativeTimeFormatter | None = None) -> str:
    return _projector(formatter).relative_age(timestamp)
