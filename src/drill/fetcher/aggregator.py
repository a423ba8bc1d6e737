"""Best-effort fan-out over every configured service.

For each endpoint two GETs run concurrently, one against ``/events`` and
one against ``/commandLifecycle``, both parameterised by the aggregate
identifier.  N endpoints therefore produce 2N concurrent retrievals that
share one ``httpx.AsyncClient``.

Failure policy
--------------
A failed retrieval (network error, timeout, non-200 status, malformed
body) never cancels its siblings.  It is logged and recorded, and the
surviving results are returned.  ``fetch_all`` raises
:class:`AggregationError` only when at least one retrieval failed and
none succeeded.  A retrieval that succeeds with zero records is a
success.  There is no retry and no backoff: one attempt per retrieval.

Usage::

    async with ServiceAggregator(endpoints, timeout=30.0) as agg:
        outcome = await agg.fetch_all("order-42")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from drill.core.enums import ResourceKind
from drill.core.errors import AggregationError, RetrievalError
from drill.core.models import CommandRecord, EventRecord, ServiceEndpoint

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds, per retrieval

_RESOURCE_PATHS: dict[ResourceKind, str] = {
    ResourceKind.EVENTS: "/events",
    ResourceKind.COMMANDS: "/commandLifecycle",
}

_EVENTS_ADAPTER = TypeAdapter(list[EventRecord])
_COMMANDS_ADAPTER = TypeAdapter(list[CommandRecord])


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class RetrievalResult:
    """Outcome of one endpoint/resource retrieval."""

    service: str
    kind: ResourceKind
    records: list[Any] = field(default_factory=list)
    error: RetrievalError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class FetchOutcome:
    """Merged output of one ``fetch_all`` call."""

    events: list[EventRecord] = field(default_factory=list)
    commands: list[CommandRecord] = field(default_factory=list)
    failures: list[RetrievalError] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.failures)

    @property
    def is_empty(self) -> bool:
        return not self.events and not self.commands


def merge_results(
    aggregate_id: str,
    results: Sequence[RetrievalResult],
) -> FetchOutcome:
    """Fold retrieval results into one outcome.

    Completion order is irrelevant.  Raises :class:`AggregationError`
    when there is at least one failure and no success.
    """
    outcome = FetchOutcome()
    successes = 0
    for result in results:
        if result.error is not None:
            outcome.failures.append(result.error)
            continue
        successes += 1
        if result.kind is ResourceKind.EVENTS:
            outcome.events.extend(result.records)
        else:
            outcome.commands.extend(result.records)

    if outcome.failures and successes == 0:
        raise AggregationError(aggregate_id, outcome.failures)
    return outcome


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

class ServiceAggregator:
    """Fetch events and commands for one aggregate from many services.

    Parameters
    ----------
    endpoints:
        Services to query.
    timeout:
        Ceiling in seconds for each individual retrieval.
    transport:
        Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        endpoints: Sequence[ServiceEndpoint],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoints = list(endpoints)
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def endpoints(self) -> list[ServiceEndpoint]:
        return list(self._endpoints)

    # -- Lifecycle -----------------------------------------------------------

    async def open(self) -> None:
        """Create the shared HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ServiceAggregator:
        await self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # -- Fan-out -------------------------------------------------------------

    async def fetch_all(self, aggregate_id: str) -> FetchOutcome:
        """Query every endpoint for events and commands concurrently."""
        if self._client is None:
            raise RuntimeError(
                "Aggregator not opened. Use 'async with' or call open()."
            )

        pairs = [
            (svc, kind)
            for svc in self._endpoints
            for kind in (ResourceKind.EVENTS, ResourceKind.COMMANDS)
        ]
        gathered = await asyncio.gather(
            *(self._retrieve(svc, kind, aggregate_id) for svc, kind in pairs),
            return_exceptions=True,
        )
        results = [
            _as_result(svc, kind, res) for (svc, kind), res in zip(pairs, gathered)
        ]

        outcome = merge_results(aggregate_id, results)
        logger.info(
            "Fetched %d events and %d commands for %s (%d/%d retrievals failed)",
            len(outcome.events), len(outcome.commands), aggregate_id,
            len(outcome.failures), len(results),
        )
        return outcome

    async def _retrieve(
        self,
        service: ServiceEndpoint,
        kind: ResourceKind,
        aggregate_id: str,
    ) -> RetrievalResult:
        """Run one retrieval.  Never raises for remote failures."""
        try:
            records = await self._get_records(service, kind, aggregate_id)
        except RetrievalError as exc:
            logger.warning(
                "Retrieval failed: %s", exc,
                extra={"service": service.name, "resource": kind.value},
            )
            return RetrievalResult(service=service.name, kind=kind, error=exc)
        return RetrievalResult(service=service.name, kind=kind, records=records)

    async def _get_records(
        self,
        service: ServiceEndpoint,
        kind: ResourceKind,
        aggregate_id: str,
    ) -> list[Any]:
        assert self._client is not None

        url = service.url + _RESOURCE_PATHS[kind]
        try:
            # httpx limits each phase separately; this caps the whole call.
            resp = await asyncio.wait_for(
                self._client.get(url, params={"aggregateId": aggregate_id}),
                self._timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise RetrievalError(
                service.name, kind.value, f"timed out after {self._timeout}s",
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RetrievalError(service.name, kind.value, str(exc) or type(exc).__name__) from exc

        if resp.status_code != 200:
            raise RetrievalError(
                service.name, kind.value, f"unexpected status {resp.status_code}",
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise RetrievalError(service.name, kind.value, f"invalid JSON: {exc}") from exc

        adapter = _EVENTS_ADAPTER if kind is ResourceKind.EVENTS else _COMMANDS_ADAPTER
        try:
            records = adapter.validate_python(body)
        except ValidationError as exc:
            raise RetrievalError(
                service.name, kind.value,
                f"malformed payload ({exc.error_count()} errors)",
            ) from exc

        logger.debug(
            "Got %d %s from %s", len(records), kind.value, service.name,
        )
        return [r.with_service(service.name) for r in records]


def _as_result(
    service: ServiceEndpoint,
    kind: ResourceKind,
    res: RetrievalResult | BaseException,
) -> RetrievalResult:
    """Turn an exception that escaped ``_retrieve`` into a failed result."""
    if isinstance(res, RetrievalResult):
        return res
    logger.error(
        "Unexpected error retrieving %s from %s: %r", kind.value, service.name, res,
        exc_info=res,
        extra={"service": service.name, "resource": kind.value},
    )
    error = RetrievalError(service.name, kind.value, f"unexpected error: {res!r}")
    return RetrievalResult(service=service.name, kind=kind, error=error)


async def fetch_all(
    aggregate_id: str,
    endpoints: Sequence[ServiceEndpoint],
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[list[EventRecord], list[CommandRecord]]:
    """One-shot fan-out: open a client, fetch, close.

    Raises :class:`AggregationError` on total failure.
    """
    async with ServiceAggregator(endpoints, timeout=timeout, transport=transport) as agg:
        outcome = await agg.fetch_all(aggregate_id)
    return outcome.events, outcome.commands
