"""Concurrent retrieval of events and commands from configured services."""

from .aggregator import FetchOutcome, ServiceAggregator, fetch_all

__all__ = ["FetchOutcome", "ServiceAggregator", "fetch_all"]
