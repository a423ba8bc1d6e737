"""Custom exception hierarchy for drill."""

from __future__ import annotations

from collections.abc import Sequence


class DrillError(Exception):
    """Base exception for all drill errors."""


# --- Configuration ---
class ConfigError(DrillError):
    """Invalid or missing configuration."""


# --- Fetching ---
class FetchError(DrillError):
    """Service retrieval error."""


class RetrievalError(FetchError):
    """One endpoint/resource pair could not be retrieved."""

    def __init__(self, service: str, resource: str, reason: str):
        self.service = service
        self.resource = resource
        self.reason = reason
        super().__init__(f"{resource} from {service}: {reason}")


class AggregationError(FetchError):
    """Every retrieval failed and nothing was obtained."""

    def __init__(self, aggregate_id: str, causes: Sequence[RetrievalError]):
        self.aggregate_id = aggregate_id
        self.causes = list(causes)
        super().__init__(
            f"all {len(self.causes)} fetches failed for {aggregate_id}"
        )


# --- Cache ---
class CacheError(DrillError):
    """Cache persistence error."""


class CacheLoadError(CacheError):
    """Cache file could not be read or parsed."""


class CacheSaveError(CacheError):
    """Cache file could not be written."""
