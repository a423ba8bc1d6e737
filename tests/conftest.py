"""Shared fixtures for the drill test suite."""

from __future__ import annotations

import itertools
import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest

from drill.core.clock import SimClock
from drill.core.enums import CommandStatus
from drill.core.models import CommandRecord, EventRecord, ServiceEndpoint

BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

_counter = itertools.count(1)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Undo any handler or level changes made by `setup_logging`."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def make_event(
    alias: str = "AccountCreated",
    *,
    aggregate_id: str = "agg-1",
    correlation_id: str = "corr-1",
    minutes: int = 0,
    service_name: str = "",
    payload: str = '{"k": "v"}',
) -> EventRecord:
    return EventRecord(
        event_id=f"evt-{next(_counter)}",
        event_alias=alias,
        persisted_at=BASE_TIME + timedelta(minutes=minutes),
        payload=payload,
        correlation_id=correlation_id,
        aggregate_id=aggregate_id,
        service_name=service_name,
    )


def make_command(
    alias: str = "CreateAccount",
    *,
    status: CommandStatus = CommandStatus.SUCCEEDED,
    aggregate_id: str = "agg-1",
    correlation_id: str = "corr-1",
    minutes: int = 0,
    service_name: str = "",
    payload: str = '{"k": "v"}',
) -> CommandRecord:
    return CommandRecord(
        command_id=f"cmd-{next(_counter)}",
        command_alias=alias,
        command_status=status,
        persisted_at=BASE_TIME + timedelta(minutes=minutes),
        payload=payload,
        correlation_id=correlation_id,
        aggregate_id=aggregate_id,
        service_name=service_name,
    )


def event_json(
    event_id: str,
    alias: str = "AccountCreated",
    *,
    aggregate_id: str = "agg-1",
    persisted_at: str = "2024-06-01T12:00:00Z",
) -> dict[str, Any]:
    """Wire-format event as a service would return it."""
    return {
        "eventId": event_id,
        "eventAlias": alias,
        "persistedAt": persisted_at,
        "payload": '{"name": "John"}',
        "correlationId": "corr-1",
        "aggregateId": aggregate_id,
    }


def command_json(
    command_id: str,
    alias: str = "CreateAccount",
    *,
    status: str = "EXECUTION_SUCCEEDED",
    aggregate_id: str = "agg-1",
    persisted_at: str = "2024-06-01T11:59:00Z",
) -> dict[str, Any]:
    """Wire-format command as a service would return it."""
    return {
        "commandId": command_id,
        "commandStatus": status,
        "commandAlias": alias,
        "persistedAt": persisted_at,
        "payload": "{}",
        "correlationId": "corr-1",
        "aggregateId": aggregate_id,
    }


@pytest.fixture
def sample_events() -> list[EventRecord]:
    return [make_event("A", minutes=2), make_event("B", minutes=1)]


@pytest.fixture
def sample_commands() -> list[CommandRecord]:
    return [make_command("DoA", minutes=0)]


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

@pytest.fixture
def sim_clock() -> SimClock:
    return SimClock(BASE_TIME)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

Route = Callable[[httpx.Request], httpx.Response]


def endpoint(name: str, port: int) -> ServiceEndpoint:
    return ServiceEndpoint(name=name, url=f"http://{name.lower()}.test:{port}")


def json_response(body: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        content=json.dumps(body).encode(),
        headers={"Content-Type": "application/json"},
    )


def make_transport(routes: dict[tuple[str, str], Route | Any]) -> httpx.MockTransport:
    """Route ``(host, path)`` to a handler or a JSON body.

    Unrouted requests get a 404.  Every request is recorded on the
    returned transport as ``transport.requests``.
    """
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        route = routes.get((request.url.host, request.url.path))
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        return json_response(route)

    transport = httpx.MockTransport(handler)
    transport.requests = seen  # type: ignore[attr-defined]
    return transport


def raise_timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


def raise_connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)
