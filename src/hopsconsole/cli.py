"""hopsconsole CLI: project event and task payloads for display."""

import json
import math
import sys

import click

from hopsconsole.config import load_settings
from hopsconsole.events import EventProjector
from hopsconsole.formatting import (
    format_batch_compact, format_batch_json,
    format_row_compact, format_rows_compact, format_rows_json,
    format_run_compact, format_run_json,
    format_summaries_compact, format_summaries_json,
    format_task_compact, format_task_json,
)
from hopsconsole.models import BatchView, DisplayRow, ParamType
from hopsconsole.tasks import (
    describe_param, get_task, parse_tasks, submit_task, to_summary,
)

FORMAT_OPTION = click.option("--format", "-f", "fmt", default="compact",
                             type=click.Choice(["compact", "json"]))


def _fail(message: str):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load_payload(stream):
    """Read an already-fetched JSON payload from a file or stdin."""
    try:
        return json.load(stream)
    except ValueError as e:
        _fail(f"Cannot parse JSON payload: {e}")


def _parse_param_value(param, raw: str):
    """Convert a -P value according to the param's declared type.

    Values that do not fit the type stay strings so validation reports them.
    Keys that match no param are decoded as JSON when possible.
    """
    if param is None:
        try:
            return json.loads(raw)
        except ValueError:
            return raw
    if param.param_type is ParamType.BOOL:
        return {"true": True, "false": False}.get(raw.strip().lower(), raw)
    if param.param_type is ParamType.NUMBER:
        for convert in (int, float):
            try:
                number = convert(raw)
            except ValueError:
                continue
            return number if math.isfinite(number) else raw
        return raw
    return raw


def _load_tasks(stream):
    try:
        return parse_tasks(_load_payload(stream))
    except ValueError as e:
        _fail(str(e))


@click.group()
@click.option("--locale", "-l", default=None, help="Display locale (default: $HOPS_CONSOLE_LOCALE or en-US)")
@click.option("--tz", default=None, help="IANA timezone (default: $HOPS_CONSOLE_TZ or system local)")
@click.pass_context
def cli(ctx, locale, tz):
    """hopsconsole: inspect automation events and tasks."""
    ctx.ensure_object(dict)
    settings = load_settings()
    if locale:
        settings.locale = locale
    if tz:
        settings.timezone = tz
    ctx.obj["settings"] = settings


@cli.command()
@click.argument("payload", type=click.File("r"))
@FORMAT_OPTION
@click.pass_context
def events(ctx, payload, fmt):
    """Project an event log, event list or single event envelope."""
    try:
        projector = EventProjector(ctx.obj["settings"].formatter())
        result = projector.project(_load_payload(payload))
    except ValueError as e:
        _fail(str(e))

    if isinstance(result, BatchView):
        click.echo(format_batch_json(result) if fmt == "json" else format_batch_compact(result))
    elif isinstance(result, DisplayRow):
        if fmt == "json":
            click.echo(json.dumps(result.as_dict(), indent=2))
        else:
            click.echo(format_row_compact(result))
    else:
        click.echo(format_rows_json(result) if fmt == "json" else format_rows_compact(result))


@cli.command()
@click.argument("payload", type=click.File("r"))
@FORMAT_OPTION
def tasks(payload, fmt):
    """List task summaries."""
    summaries = [to_summary(t) for t in _load_tasks(payload)]
    if fmt == "json":
        click.echo(format_summaries_json(summaries))
    else:
        click.echo(format_summaries_compact(summaries))


@cli.command()
@click.argument("payload", type=click.File("r"))
@click.argument("name")
@FORMAT_OPTION
def task(payload, name, fmt):
    """Describe one task and its params."""
    try:
        found = get_task(_load_tasks(payload), name)
        descriptions = [describe_param(p) for p in found.params]
    except ValueError as e:
        _fail(str(e))

    if fmt == "json":
        click.echo(format_task_json(found, descriptions))
    else:
        click.echo(format_task_compact(found, descriptions))


@cli.command()
@click.argument("payload", type=click.File("r"))
@click.argument("name")
@click.option("--param", "-P", "params", multiple=True, help="Param value as key=value")
@click.option("--input", "-i", "input_json", default=None, help="All param values as a JSON object")
@FORMAT_OPTION
def run(payload, name, params, input_json, fmt):
    """Validate a task submission. Exits 1 if it is rejected."""
    try:
        found = get_task(_load_tasks(payload), name)
    except ValueError as e:
        _fail(str(e))
    declared = {p.name: p for p in found.params}

    values = {}
    if input_json:
        try:
            values = json.loads(input_json)
        except ValueError as e:
            _fail(f"Cannot parse --input: {e}")
        if not isinstance(values, dict):
            _fail("--input must be a JSON object")
    for item in params:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            _fail(f"Param must be key=value: {item}")
        values[key] = _parse_param_value(declared.get(key), raw)

    try:
        response = submit_task(found, values)
    except ValueError as e:
        _fail(str(e))

    if fmt == "json":
        click.echo(format_run_json(response))
    else:
        click.echo(format_run_compact(response))

    if not response.accepted:
        sys.exit(1)

