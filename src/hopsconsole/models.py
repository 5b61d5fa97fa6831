"""Data models for console events, tasks and task runs."""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

JSONValue = Union[str, int, float, bool, None, dict[str, "JSONValue"], list["JSONValue"]]
RawEvent = dict[str, JSONValue]

ENRICHMENT_KEYS = ("app_name", "channel", "done", "handler_name", "message_id")


class InvalidPayload(ValueError):
    """Top-level payload is not the shape the caller promised."""


class TaskNotFound(InvalidPayload):
    pass


# --- Events ---


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass(frozen=True)
class Hops:
    source: str = ""
    event: str = ""
    action: str = ""

    @classmethod
    def from_event(cls, raw_event: Any) -> "Hops":
        """Read the provenance record, treating every missing level as empty."""
        if not isinstance(raw_event, Mapping):
            return cls()
        hops = raw_event.get("hops")
        if not isinstance(hops, Mapping):
            return cls()
        return cls(
            source=_text(hops.get("source")),
            event=_text(hops.get("event")),
            action=_text(hops.get("action")),
        )


@dataclass
class EventItem:
    event: JSONValue
    sequence_id: str
    timestamp: JSONValue = None

    @property
    def hops(self) -> Hops:
        return Hops.from_event(self.event)


@dataclass
class EnrichedEventItem(EventItem):
    app_name: str | None = None
    channel: str | None = None
    done: JSONValue = None
    handler_name: str | None = None
    message_id: str | None = None


@dataclass
class EventLog:
    start_timestamp: JSONValue
    end_timestamp: JSONValue
    event_items: list[EventItem] = field(default_factory=list)


Envelope = Union[EventItem, EnrichedEventItem, EventLog]


def _require_mapping(raw: Any, what: str) -> Mapping:
    if not isinstance(raw, Mapping):
        raise InvalidPayload(f"{what} must be an object, got {type(raw).__name__}")
    return raw


def parse_event_item(raw: Any) -> EventItem:
    """Build a bare or enriched envelope depending on which keys are present."""
    raw = _require_mapping(raw, "Event envelope")
    base = dict(
        event=raw.get("event", {}),
        sequence_id=_text(raw.get("sequence_id")),
        timestamp=raw.get("timestamp"),
    )
    if not any(key in raw for key in ENRICHMENT_KEYS):
        return EventItem(**base)

    def optional_text(key: str) -> str | None:
        value = raw.get(key)
        return None if value is None else _text(value)

    return EnrichedEventItem(
        **base,
        app_name=optional_text("app_name"),
        channel=optional_text("channel"),
        done=raw.get("done"),
        handler_name=optional_text("handler_name"),
        message_id=optional_text("message_id"),
    )


def parse_event_log(raw: Any) -> EventLog:
    raw = _require_mapping(raw, "Event log")
    items = raw.get("event_items")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise InvalidPayload("Event log 'event_items' must be a list")
    return EventLog(
        start_timestamp=raw.get("start_timestamp"),
        end_timestamp=raw.get("end_timestamp"),
        event_items=[parse_event_item(item) for item in items],
    )


def parse_envelope(raw: Any) -> Envelope:
    raw = _require_mapping(raw, "Event payload")
    if "event_items" in raw:
        return parse_event_log(raw)
    return parse_event_item(raw)


@dataclass(frozen=True)
class DisplayRow:
    timestamp: str
    event_id: str
    event: str
    source: str
    action: str
    json: JSONValue
    app_name: str | None = None
    channel: str | None = None
    done: str = ""
    handler_name: str | None = None
    message_id: str | None = None

    def as_dict(self) -> dict:
        """Rendering shape; done is always present, other enrichment keys only when set."""
        row = {
            "timestamp": self.timestamp,
            "eventId": self.event_id,
            "event": self.event,
            "source": self.source,
            "action": self.action,
        }
        enrichment = {
            "appName": self.app_name,
            "channel": self.channel,
            "done": self.done,
            "handlerName": self.handler_name,
            "messageId": self.message_id,
        }
        row.update({k: v for k, v in enrichment.items() if v is not None})
        row["JSON"] = self.json
        return row


@dataclass(frozen=True)
class BatchView:
    ago: str
    rows: list[DisplayRow] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"ago": self.ago, "rows": [r.as_dict() for r in self.rows]}


# --- Tasks ---


class ParamType(str, Enum):
    STRING = "string"
    TEXT = "text"
    BOOL = "bool"
    NUMBER = "number"


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


_DEFAULT_CHECKS = {
    ParamType.STRING: lambda v: isinstance(v, str),
    ParamType.TEXT: lambda v: isinstance(v, str),
    ParamType.BOOL: lambda v: isinstance(v, bool),
    ParamType.NUMBER: _is_number,
}


@dataclass
class Param:
    name: str
    display_name: str = ""
    required: bool = False
    help: str | None = None
    flag: str | None = None
    shortflag: str | None = None

    param_type: ClassVar[ParamType]

    def check_default(self) -> None:
        """Raise InvalidPayload if the default does not match the variant tag."""
        default = getattr(self, "default", None)
        if default is not None and not _DEFAULT_CHECKS[self.param_type](default):
            raise InvalidPayload(
                f"Param '{self.name}' of type {self.param_type.value} "
                f"cannot default to {default!r}"
            )

    def __post_init__(self):
        self.check_default()


@dataclass
class StrParam(Param):
    default: str | None = None
    param_type: ClassVar[ParamType] = ParamType.STRING


@dataclass
class TextParam(Param):
    default: str | None = None
    param_type: ClassVar[ParamType] = ParamType.TEXT


@dataclass
class BoolParam(Param):
    default: bool | None = None
    param_type: ClassVar[ParamType] = ParamType.BOOL


@dataclass
class NumberParam(Param):
    default: int | float | None = None
    param_type: ClassVar[ParamType] = ParamType.NUMBER


PARAM_CLASSES: dict[ParamType, type[Param]] = {
    ParamType.STRING: StrParam,
    ParamType.TEXT: TextParam,
    ParamType.BOOL: BoolParam,
    ParamType.NUMBER: NumberParam,
}


@dataclass
class ParamDescription:
    kind: ParamType
    constraints: dict = field(default_factory=dict)


@dataclass
class Task:
    display_name: str
    name: str
    summary: str = ""
    description: str = ""
    emoji: str | None = None
    params: list[Param] = field(default_factory=list)


@dataclass(frozen=True)
class TaskSummary:
    display_name: str
    name: str
    emoji: str = ""


@dataclass
class TaskRunResponse:
    sequence_id: str = ""
    message: str = ""
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def accepted(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict:
        return {
            "errors": {k: list(v) for k, v in self.errors.items()},
            "message": self.message,
            "sequence_id": self.sequence_id,
        }
