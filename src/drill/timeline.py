"""Chronological view over merged events and commands.

The aggregator returns records in arrival order; anything that displays
them orders by ``persisted_at`` here.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from drill.core.enums import CommandStatus
from drill.core.models import CommandRecord, EventRecord


@dataclass(frozen=True)
class TimelineItem:
    kind: str  # "event" or "command"
    record_id: str
    alias: str
    service: str
    persisted_at: datetime
    correlation_id: str
    payload: str
    status: CommandStatus | None = None


def _from_event(e: EventRecord) -> TimelineItem:
    return TimelineItem(
        kind="event",
        record_id=e.event_id,
        alias=e.event_alias,
        service=e.service_name,
        persisted_at=e.persisted_at,
        correlation_id=e.correlation_id,
        payload=e.payload,
    )


def _from_command(c: CommandRecord) -> TimelineItem:
    return TimelineItem(
        kind="command",
        record_id=c.command_id,
        alias=c.command_alias,
        service=c.service_name,
        persisted_at=c.persisted_at,
        correlation_id=c.correlation_id,
        payload=c.payload,
        status=c.command_status,
    )


def build_timeline(
    events: Sequence[EventRecord],
    commands: Sequence[CommandRecord],
) -> list[TimelineItem]:
    """Merge both record kinds, oldest first.  Ties keep input order."""
    items = [_from_event(e) for e in events] + [_from_command(c) for c in commands]
    items.sort(key=lambda i: i.persisted_at)
    return items


def group_by_correlation(items: Sequence[TimelineItem]) -> dict[str, list[TimelineItem]]:
    """Bucket items by correlation id, preserving order within each."""
    groups: dict[str, list[TimelineItem]] = {}
    for item in items:
        groups.setdefault(item.correlation_id, []).append(item)
    return groups


def format_payload(payload: str) -> str:
    """Pretty-print JSON payloads; anything else is returned verbatim."""
    if not payload.strip():
        return "(empty)"
    try:
        parsed = json.loads(payload)
    except ValueError:
        return payload
    return json.dumps(parsed, indent=2)
