"""Core domain models.

These are the canonical record types: the same models are parsed from
service responses, handed to the display layer and persisted in the
cache file.  Field names are snake_case in Python and camelCase on the
wire and on disk.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .enums import CommandStatus, IdType
from .ids import ensure_utc


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class _Record(BaseModel):
    """Fields shared by events and commands."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    persisted_at: datetime
    payload: str = ""  # Opaque; usually JSON text
    correlation_id: str = ""
    aggregate_id: str = ""
    service_name: str = ""  # Set by the aggregator, never by the service

    @model_validator(mode="before")
    @classmethod
    def _flatten_metadata(cls, data: Any) -> Any:
        """Accept the nested ``{"metadata": {...}, "payload": ...}`` shape."""
        if isinstance(data, dict) and isinstance(data.get("metadata"), dict):
            flat = dict(data["metadata"])
            flat.update({k: v for k, v in data.items() if k != "metadata"})
            return flat
        return data

    @field_validator("persisted_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("payload", mode="before")
    @classmethod
    def _payload_text(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, str):
            return v
        return json.dumps(v, separators=(",", ":"))

    def with_service(self, name: str) -> _Record:
        """Return a copy tagged with its origin service."""
        return self.model_copy(update={"service_name": name})


class EventRecord(_Record):
    """A persisted domain event as reported by one service."""

    event_id: str
    event_alias: str


class CommandRecord(_Record):
    """A command and its execution outcome as reported by one service."""

    command_id: str
    command_alias: str
    command_status: CommandStatus

    @property
    def succeeded(self) -> bool:
        return self.command_status == CommandStatus.SUCCEEDED


# ---------------------------------------------------------------------------
# Configuration value
# ---------------------------------------------------------------------------

class ServiceEndpoint(BaseModel):
    """One service exposing ``/events`` and ``/commandLifecycle``."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    name: str
    url: str  # Base URL, no trailing slash
    id_type: IdType = IdType.AGGREGATE

    @field_validator("url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")
