"""Task schema model: param parsing, description and submission validation."""

import copy
import hashlib
import json
import math
from collections.abc import Mapping
from dataclasses import asdict, fields
from decimal import Decimal
from typing import Any

from hopsconsole.models import (
    PARAM_CLASSES, Hops, InvalidPayload, Param, ParamDescription, ParamType,
    RawEvent, Task, TaskNotFound, TaskRunResponse, TaskSummary,
)

INVALID_REQUIRED = "Required"
INVALID_NOT_STRING = "Should be a string"
INVALID_NOT_TEXT = "Should be text"
INVALID_NOT_NUMBER = "Should be a number"
INVALID_NOT_BOOL = "Should be a boolean"

TASK_SOURCE = "hiphops"
TASK_EVENT = "task"


def title_case(label: str) -> str:
    """'deploy_app' -> 'Deploy App'."""
    return " ".join(word.capitalize() for word in label.replace("_", " ").split())


def _optional_str(raw: Mapping, key: str) -> str | None:
    value = raw.get(key)
    return None if value is None else str(value)


def parse_param(raw: Any) -> Param:
    """Build the Param variant named by raw['type'] (default 'string')."""
    if not isinstance(raw, Mapping):
        raise InvalidPayload(f"Param must be an object, got {type(raw).__name__}")
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise InvalidPayload("Param is missing a name")

    type_name = raw.get("type") or ParamType.STRING.value
    try:
        param_type = ParamType(type_name)
    except ValueError:
        raise InvalidPayload(f"Unknown type for param {name}: {type_name}") from None

    cls = PARAM_CLASSES[param_type]
    return cls(
        name=name,
        display_name=_optional_str(raw, "display_name") or title_case(name),
        required=raw.get("required") is True,
        help=_optional_str(raw, "help"),
        flag=_optional_str(raw, "flag") or f"--{name}",
        shortflag=_optional_str(raw, "shortflag"),
        default=raw.get("default"),
    )


def parse_task(raw: Any) -> Task:
    if not isinstance(raw, Mapping):
        raise InvalidPayload(f"Task must be an object, got {type(raw).__name__}")
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise InvalidPayload("Task is missing a name")
    params_raw = raw.get("params") or []
    if not isinstance(params_raw, list):
        raise InvalidPayload(f"Task {name} 'params' must be a list")

    params = [parse_param(p) for p in params_raw]
    seen = set()
    for param in params:
        if param.name in seen:
            raise InvalidPayload(f"Duplicate param name found: {param.name}")
        seen.add(param.name)

    return Task(
        display_name=_optional_str(raw, "display_name") or title_case(name),
        name=name,
        summary=_optional_str(raw, "summary") or "",
        description=_optional_str(raw, "description") or "",
        emoji=_optional_str(raw, "emoji") or None,
        params=params,
    )


def parse_tasks(raw: Any) -> list[Task]:
    """Parse a task list payload, rejecting duplicate task names."""
    if not isinstance(raw, list):
        raise InvalidPayload(f"Task list must be a list, got {type(raw).__name__}")
    tasks = []
    names = set()
    for item in raw:
        task = parse_task(item)
        if task.name in names:
            raise InvalidPayload(f"Duplicate task name found: {task.name}")
        names.add(task.name)
        tasks.append(task)
    return tasks


def get_task(tasks: list[Task], name: str) -> Task:
    for task in tasks:
        if task.name == name:
            return task
    raise TaskNotFound(f"Task not found: {name}")


def to_summary(task: Task) -> TaskSummary:
    return TaskSummary(
        display_name=task.display_name,
        name=task.name,
        emoji=task.emoji or "",
    )


def describe_param(param: Param) -> ParamDescription:
    """Return the param's kind and the attributes meaningful for that kind.

    Raises InvalidPayload when the default does not match the kind, e.g. a
    string default on a number param.
    """
    param.check_default()
    kind = param.param_type
    constraints: dict = {"required": param.required}
    default = getattr(param, "default", None)
    if default is not None:
        constraints["default"] = default
    if kind in (ParamType.STRING, ParamType.TEXT):
        constraints["multiline"] = kind is ParamType.TEXT
    return ParamDescription(kind=kind, constraints=constraints)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value.strip()))
        except ValueError:
            return False
    return False


_TYPE_CHECKS = {
    ParamType.STRING: (lambda v: isinstance(v, str), INVALID_NOT_STRING),
    ParamType.TEXT: (lambda v: isinstance(v, str), INVALID_NOT_TEXT),
    ParamType.NUMBER: (_is_number, INVALID_NOT_NUMBER),
    ParamType.BOOL: (lambda v: isinstance(v, bool), INVALID_NOT_BOOL),
}


def validate_input(task: Task, values: Any) -> dict[str, list[str]]:
    """Check submitted values against the task's params.

    Returns a mapping of param name to error messages covering every invalid
    param. The mapping is empty when the submission is valid.
    """
    if not isinstance(values, Mapping):
        raise InvalidPayload(f"Task input must be an object, got {type(values).__name__}")

    errors: dict[str, list[str]] = {}
    for param in task.params:
        value = values.get(param.name)
        if value is None:
            if param.required:
                errors.setdefault(param.name, []).append(INVALID_REQUIRED)
            # Nothing else to check on a missing value
            continue

        check, message = _TYPE_CHECKS[param.param_type]
        if not check(value):
            errors.setdefault(param.name, []).append(message)
    return errors


# Escaped inside strings by the backend encoder even though they are valid UTF-8
_HTML_SAFE_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _format_float64(value: float) -> str:
    """Shortest round-trip text for a float64, plain below 1e21, exponent above."""
    if not math.isfinite(value):
        raise InvalidPayload(f"Cannot encode non-finite number: {value!r}")
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    d = Decimal(repr(value)).normalize()
    if 1e-6 <= abs(value) < 1e21:
        return format(d, "f")
    sign, digits, exponent = d.as_tuple()
    mantissa = str(digits[0])
    if len(digits) > 1:
        mantissa += "." + "".join(str(x) for x in digits[1:])
    exponent += len(digits) - 1
    # Positive exponents are padded to two digits, negative ones never are
    exp_part = f"e+{exponent:02d}" if exponent >= 0 else f"e-{-exponent}"
    return ("-" if sign else "") + mantissa + exp_part


def _encode_string(value: str) -> str:
    encoded = json.dumps(value, ensure_ascii=False)
    for char, escape in _HTML_SAFE_ESCAPES.items():
        encoded = encoded.replace(char, escape)
    return encoded


def encode_event(value: Any) -> str:
    """Compact JSON matching the backend's encoding byte for byte.

    Mapping keys are sorted, Hops fields keep their declaration order and
    non-ASCII text is written as-is. Numbers are written as float64 values.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value) if abs(value) < 10**21 else _format_float64(float(value))
    if isinstance(value, float):
        return _format_float64(value)
    if isinstance(value, str):
        return _encode_string(value)
    if isinstance(value, Hops):
        pairs = [(f.name, getattr(value, f.name)) for f in fields(value)]
    elif isinstance(value, Mapping):
        pairs = sorted(((str(k), v) for k, v in value.items()), key=lambda kv: kv[0])
    elif isinstance(value, (list, tuple)):
        return "[" + ",".join(encode_event(v) for v in value) + "]"
    else:
        raise InvalidPayload(f"Cannot encode {type(value).__name__} in an event")
    return "{" + ",".join(f"{_encode_string(k)}:{encode_event(v)}" for k, v in pairs) + "}"


def create_source_event(values: Mapping, source: str, event: str,
                        action: str) -> tuple[RawEvent, str]:
    """Stamp a hops record onto a copy of values and derive its sequence ID.

    The sequence ID is the SHA-1 hex digest of the event encoded by
    encode_event, so it matches the ID the backend assigns.
    """
    hops = Hops(source=source, event=event, action=action)
    raw_event = copy.deepcopy(dict(values))
    raw_event["hops"] = asdict(hops)
    encoded = encode_event({**raw_event, "hops": hops})
    sequence_id = hashlib.sha1(encoded.encode("utf-8")).hexdigest()
    return raw_event, sequence_id


def submit_task(task: Task, values: Any) -> TaskRunResponse:
    """Validate a submission; accepted runs get a sequence ID, rejected ones get errors."""
    errors = validate_input(task, values)
    if errors:
        return TaskRunResponse(
            message=f"Invalid inputs for {task.name}",
            errors=errors,
        )

    _, sequence_id = create_source_event(values, TASK_SOURCE, TASK_EVENT, task.name)
    return TaskRunResponse(sequence_id=sequence_id, message="OK", errors={})
