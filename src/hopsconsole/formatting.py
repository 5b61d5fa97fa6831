"""Time formatting and output formatters for rows, tasks and run responses."""

import json
import math
import re
from dataclasses import asdict
from datetime import datetime, timezone, tzinfo
from typing import Callable

from hopsconsole.models import (
    BatchView, DisplayRow, JSONValue, ParamDescription, Task, TaskRunResponse,
    TaskSummary,
)

INVALID_DATE = "Invalid Date"
DEFAULT_LOCALE = "en-US"

# strftime patterns per locale, mirroring browser toLocaleString() output
_TIMESTAMP_PATTERNS = {
    "en-US": "%m/%d/%Y, %I:%M:%S %p",
    "en-GB": "%d/%m/%Y, %H:%M:%S",
    "en": "%m/%d/%Y, %I:%M:%S %p",
    "de": "%d.%m.%Y, %H:%M:%S",
    "fr": "%d/%m/%Y %H:%M:%S",
    "es": "%d/%m/%Y, %H:%M:%S",
}

# (singular, plural) unit names and (past, future) templates per language
_RELATIVE_PHRASES = {
    "en": {
        "units": {
            "second": ("second", "seconds"), "minute": ("minute", "minutes"),
            "hour": ("hour", "hours"), "day": ("day", "days"),
            "month": ("month", "months"), "year": ("year", "years"),
        },
        "past": "{n} {unit} ago",
        "future": "in {n} {unit}",
    },
    "de": {
        "units": {
            "second": ("Sekunde", "Sekunden"), "minute": ("Minute", "Minuten"),
            "hour": ("Stunde", "Stunden"), "day": ("Tag", "Tagen"),
            "month": ("Monat", "Monaten"), "year": ("Jahr", "Jahren"),
        },
        "past": "vor {n} {unit}",
        "future": "in {n} {unit}",
    },
    "fr": {
        "units": {
            "second": ("seconde", "secondes"), "minute": ("minute", "minutes"),
            "hour": ("heure", "heures"), "day": ("jour", "jours"),
            "month": ("mois", "mois"), "year": ("an", "ans"),
        },
        "past": "il y a {n} {unit}",
        "future": "dans {n} {unit}",
    },
    "es": {
        "units": {
            "second": ("segundo", "segundos"), "minute": ("minuto", "minutos"),
            "hour": ("hora", "horas"), "day": ("día", "días"),
            "month": ("mes", "meses"), "year": ("año", "años"),
        },
        "past": "hace {n} {unit}",
        "future": "dentro de {n} {unit}",
    },
}

# Largest unit first; a delta is expressed in the first unit it fills
_UNIT_SECONDS = (
    ("year", 365 * 86400),
    ("month", 30 * 86400),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)

_FRACTION = re.compile(r"(\.\d{6})\d+")


def _language(locale: str) -> str:
    return locale.replace("_", "-").split("-")[0].lower()


def parse_timestamp(value: JSONValue) -> datetime | None:
    """Parse an ISO string or epoch-milliseconds number into an aware datetime.

    Returns None when the value is not a usable date.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    # Handle both Z suffixes and nanosecond precision from the backend
    ts = _FRACTION.sub(r"\1", value.strip().replace("Z", "+00:00"))
    try:
        dt = datetime.fromisoformat(ts)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class RelativeTimeFormatter:
    """Locale-aware timestamp and relative-age formatter.

    Constructed explicitly and handed to whatever needs it. `clock` is called
    on every relative-age request so results track elapsed wall-clock time;
    tests pass a fixed clock.
    """

    def __init__(self, locale: str = DEFAULT_LOCALE, tz: tzinfo | None = None,
                 clock: Callable[[], datetime] | None = None):
        self.locale = locale
        self.tz = tz
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def timestamp_pattern(self) -> str:
        normalized = self.locale.replace("_", "-")
        if normalized in _TIMESTAMP_PATTERNS:
            return _TIMESTAMP_PATTERNS[normalized]
        return _TIMESTAMP_PATTERNS.get(
            _language(normalized), _TIMESTAMP_PATTERNS[DEFAULT_LOCALE])

    @property
    def phrases(self) -> dict:
        return _RELATIVE_PHRASES.get(_language(self.locale), _RELATIVE_PHRASES["en"])

    def format_timestamp(self, value: JSONValue) -> str:
        """Render a timestamp for display, or 'Invalid Date' if it cannot be parsed."""
        dt = parse_timestamp(value)
        if dt is None:
            return INVALID_DATE
        try:
            local = dt.astimezone(self.tz)
        except (OverflowError, OSError, ValueError):
            return INVALID_DATE
        return local.strftime(self.timestamp_pattern)

    def relative_age(self, value: JSONValue) -> str:
        """Phrase like '3 minutes ago' measured against the clock right now."""
        dt = parse_timestamp(value)
        if dt is None:
            return INVALID_DATE
        seconds = (self.clock() - dt).total_seconds()
        return self.format_delta(seconds)

    def format_delta(self, seconds: float) -> str:
        phrases = self.phrases
        template = phrases["past"] if seconds >= 0 else phrases["future"]
        magnitude = abs(seconds)
        for unit, size in _UNIT_SECONDS:
            if magnitude >= size:
                break
        n = int(magnitude // size)
        singular, plural = phrases["units"][unit]
        return template.format(n=n, unit=singular if n == 1 else plural)


def format_row_compact(row: DisplayRow) -> str:
    """Single-line compact format for one display row."""
    kind = row.event or "?"
    if row.action:
        kind = f"{kind}.{row.action}"
    source = f" [{row.source}]" if row.source else ""
    extra = []
    if row.app_name:
        handler = f"/{row.handler_name}" if row.handler_name else ""
        extra.append(f"{row.app_name}{handler}")
    if row.channel:
        extra.append(f"channel={row.channel}")
    if row.done:
        extra.append(f"done={row.done}")
    extra_part = f" ({', '.join(extra)})" if extra else ""
    return f"[{row.timestamp}] [{kind}]{source} {row.event_id}{extra_part}"


def format_rows_compact(rows: list[DisplayRow]) -> str:
    if not rows:
        return "(no events)"
    return "\n".join(format_row_compact(r) for r in rows)


def format_rows_json(rows: list[DisplayRow]) -> str:
    return json.dumps([r.as_dict() for r in rows], indent=2)


def format_batch_compact(batch: BatchView) -> str:
    lines = [f"# Events since {batch.ago} ({len(batch.rows)})", ""]
    lines.append(format_rows_compact(batch.rows))
    return "\n".join(lines)


def format_batch_json(batch: BatchView) -> str:
    return json.dumps(batch.as_dict(), indent=2)


def format_summaries_compact(summaries: list[TaskSummary]) -> str:
    if not summaries:
        return "(no tasks)"
    lines = []
    for s in summaries:
        emoji = f"{s.emoji} " if s.emoji else ""
        lines.append(f"{emoji}{s.display_name} ({s.name})")
    return "\n".join(lines)


def format_summaries_json(summaries: list[TaskSummary]) -> str:
    return json.dumps([asdict(s) for s in summaries], indent=2)


def format_task_compact(task: Task, descriptions: list[ParamDescription]) -> str:
    """Header plus one line per param with its kind and constraints."""
    emoji = f"{task.emoji} " if task.emoji else ""
    lines = [f"# {emoji}{task.display_name} ({task.name})"]
    if task.summary:
        lines.append(task.summary)
    if task.description:
        lines.extend(["", task.description])
    lines.append("")
    if not task.params:
        lines.append("(no params)")
    for param, desc in zip(task.params, descriptions):
        required = " [REQUIRED]" if desc.constraints.get("required") else ""
        default = (f" default={json.dumps(desc.constraints['default'])}"
                   if "default" in desc.constraints else "")
        flags = ", ".join(f for f in (param.flag, param.shortflag) if f)
        flag_part = f" ({flags})" if flags else ""
        help_part = f" — {param.help}" if param.help else ""
        lines.append(f"- {param.name} <{desc.kind.value}>{required}{default}{flag_part}{help_part}")
    return "\n".join(lines)


def format_task_json(task: Task, descriptions: list[ParamDescription]) -> str:
    params = []
    for param, desc in zip(task.params, descriptions):
        d = asdict(param)
        d["type"] = desc.kind.value
        d["constraints"] = desc.constraints
        params.append(d)
    data = {
        "display_name": task.display_name,
        "name": task.name,
        "summary": task.summary,
        "description": task.description,
        "emoji": task.emoji,
        "params": params,
    }
    return json.dumps(data, indent=2)


def format_run_compact(response: TaskRunResponse) -> str:
    if response.accepted:
        return f"{response.message} — sequence {response.sequence_id}"
    lines = [response.message]
    for name, messages in response.errors.items():
        lines.append(f"  {name}: {'; '.join(messages)}")
    return "\n".join(lines)


def format_run_json(response: TaskRunResponse) -> str:
    return json.dumps(response.as_dict(), indent=2)
