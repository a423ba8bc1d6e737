"""Configuration management.

Loads from an optional TOML config file + environment variables.
Uses pydantic-settings for validation and env var overriding.

The list of services to query is resolved separately (see
:func:`resolve_services`) because it may also come from a ``.drill.csv``
file or the ``DRILL_SERVICES`` environment variable.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .enums import IdType
from .errors import ConfigError
from .models import ServiceEndpoint

logger = logging.getLogger(__name__)

SERVICES_ENV_VAR = "DRILL_SERVICES"
SERVICES_FILE_NAME = ".drill.csv"
CACHE_FILE_NAME = ".drill_cache.json"


def home_dir() -> Path | None:
    """The user's home directory, or ``None`` when it cannot be determined."""
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        return None
    if str(home).startswith("~"):
        return None
    return home


def default_cache_path() -> str | None:
    """``~/.drill_cache.json``, or ``None`` without a home directory."""
    home = home_dir()
    return str(home / CACHE_FILE_NAME) if home is not None else None


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class ObservabilityConfig(BaseModel):
    log_level: str = "WARNING"
    log_format: str = "console"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    endpoints: list[ServiceEndpoint] = Field(default_factory=list)
    services_file: str | None = None

    request_timeout: float = 30.0  # seconds, per retrieval
    cache_path: str | None = Field(default_factory=default_cache_path)
    cache_capacity: int = 5

    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "DRILL_", "env_nested_delimiter": "__"}

    def validate_limits(self) -> None:
        if self.request_timeout <= 0:
            raise ConfigError(
                f"request_timeout must be positive, got {self.request_timeout}"
            )
        if self.cache_capacity < 1:
            raise ConfigError(
                f"cache_capacity must be at least 1, got {self.cache_capacity}"
            )


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)
        else:
            raise ConfigError(f"Config file not found: {path}")

    if overrides:
        data.update(overrides)

    settings = Settings(**data)
    settings.validate_limits()
    return settings


# ---------------------------------------------------------------------------
# Service list
# ---------------------------------------------------------------------------

_ID_TYPES: dict[str, IdType] = {
    "aggregateid": IdType.AGGREGATE,
    "indexid": IdType.INDEX,
}


def _parse_service_line(line: str, line_num: int) -> ServiceEndpoint | None:
    parts = [p.strip() for p in line.split(",")]
    if len(parts) != 3:
        logger.warning(
            "Line %d invalid format %r, expected 'name,idType,url'",
            line_num, line,
        )
        return None

    name, id_type_str, url = parts
    if not name or not url:
        logger.warning("Line %d has an empty name or url: %r", line_num, line)
        return None

    id_type = _ID_TYPES.get(id_type_str.lower())
    if id_type is None:
        logger.warning(
            "Line %d invalid idType %r, using aggregateId",
            line_num, id_type_str,
        )
        id_type = IdType.AGGREGATE

    return ServiceEndpoint(name=name, url=url, id_type=id_type)


def parse_services_csv(text: str) -> list[ServiceEndpoint]:
    """Parse ``name,idType,url`` lines.  Blank lines and ``#`` comments skip."""
    services: list[ServiceEndpoint] = []
    for line_num, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        svc = _parse_service_line(line, line_num)
        if svc is not None:
            services.append(svc)
    return services


def parse_services_env(value: str) -> list[ServiceEndpoint]:
    """Parse the ``DRILL_SERVICES`` format: CSV triples joined by ``;``."""
    return parse_services_csv("\n".join(value.split(";")))


def resolve_services(
    settings: Settings,
    *,
    cwd: Path | None = None,
    home: Path | None = None,
    environ: dict[str, str] | None = None,
) -> list[ServiceEndpoint]:
    """Resolve the services to query.  First non-empty source wins.

    1. ``settings.endpoints``
    2. ``DRILL_SERVICES`` environment variable
    3. ``settings.services_file``
    4. ``.drill.csv`` in *cwd*, then in *home*
    """
    if settings.endpoints:
        return list(settings.endpoints)

    env = os.environ if environ is None else environ
    raw = env.get(SERVICES_ENV_VAR, "").strip()
    if raw:
        services = parse_services_env(raw)
        if services:
            return services

    if settings.services_file:
        path = Path(settings.services_file).expanduser()
        try:
            return parse_services_csv(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Cannot read services file {path}: {exc}") from exc

    candidates = [(cwd or Path.cwd()) / SERVICES_FILE_NAME]
    home = home or home_dir()
    if home is not None:
        candidates.append(home / SERVICES_FILE_NAME)
    for path in candidates:
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Skipping unreadable services file %s: %s", path, exc)
            continue
        logger.debug("Loading services from %s", path)
        return parse_services_csv(text)

    return []
