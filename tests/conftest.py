"""Shared fixtures for hopsconsole tests."""

from datetime import datetime, timezone

import pytest

from hopsconsole.events import EventProjector
from hopsconsole.formatting import RelativeTimeFormatter

FIXED_NOW = datetime(2023, 11, 22, 11, 44, 0, tzinfo=timezone.utc)


@pytest.fixture
def formatter():
    """en-US formatter pinned to UTC with a fixed clock."""
    return RelativeTimeFormatter(locale="en-US", tz=timezone.utc, clock=lambda: FIXED_NOW)


@pytest.fixture
def projector(formatter):
    return EventProjector(formatter)


@pytest.fixture
def bare_envelope():
    return {
        "event": {
            "hops": {"source": "github", "event": "pr_merged"},
            "timestamp": 1700649840000,
            "pull_request": {"number": 42, "merged": True},
        },
        "sequence_id": "abc123",
        "timestamp": "2023-11-22T10:44:00Z",
    }


@pytest.fixture
def enriched_envelope():
    return {
        "event": {
            "hops": {"source": "hiphops", "event": "task", "action": "deploy"},
            "environment": "staging",
        },
        "sequence_id": "def456",
        "timestamp": "2023-11-22T10:50:00.518137754Z",
        "app_name": "k8s",
        "channel": "request",
        "done": False,
        "handler_name": "apply",
        "message_id": "msg-1",
    }


@pytest.fixture
def event_log(bare_envelope, enriched_envelope):
    """Batch log with items deliberately out of timestamp order."""
    later = {
        "event": {"hops": {"source": "slack", "event": "message"}},
        "sequence_id": "zzz999",
        "timestamp": "2023-11-22T11:40:00Z",
    }
    return {
        "start_timestamp": "2023-11-22T10:44:00Z",
        "end_timestamp": "2023-11-22T11:44:00Z",
        "event_items": [later, bare_envelope, enriched_envelope],
    }


@pytest.fixture
def tasks_payload():
    return [
        {
            "name": "deploy_app",
            "summary": "Deploy the app",
            "description": "Rolls out a new version.",
            "emoji": "🚀",
            "params": [
                {"name": "version", "type": "string", "required": True},
                {"name": "notes", "type": "text", "help": "Release notes"},
                {"name": "replicas", "type": "number", "required": True, "default": 2},
                {"name": "dry_run", "type": "bool", "default": False, "shortflag": "-n"},
            ],
        },
        {
            "name": "restart",
            "display_name": "Restart Service",
            "summary": "Restart a service",
            "description": "",
            "params": [{"name": "service"}],
        },
    ]
