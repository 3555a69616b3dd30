"""Runtime settings for Homeport, loaded from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from homeport.core.path_utils import DEFAULT_MAX_FILE_BYTES

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class HomeportSettings:
    """Process-wide discovery settings."""

    log_level: str
    log_json: bool
    max_scan_workers: int
    http_timeout: int
    http_max_retries: int
    max_file_bytes: int
    debug: bool


def _parse_bool(value: str | None, default: bool) -> bool:
    """Parse a boolean flag, falling back to ``default`` when unset."""
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_int(value: str | None, default: int, minimum: int, maximum: int) -> int:
    """Parse an integer and clamp it into ``[minimum, maximum]``."""
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return max(minimum, min(maximum, parsed))


def load_settings(env: Mapping[str, str] | None = None) -> HomeportSettings:
    """
    Load settings from environment variables.

    Args:
        env: Optional environment mapping for testing.

    Returns:
        HomeportSettings instance.

    """
    source = env if env is not None else os.environ

    log_level = source.get("HOMEPORT_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        log_level = "INFO"

    return HomeportSettings(
        log_level=log_level,
        log_json=_parse_bool(source.get("HOMEPORT_LOG_JSON"), False),
        max_scan_workers=_parse_int(
            source.get("HOMEPORT_MAX_SCAN_WORKERS"), 4, 1, 32
        ),
        http_timeout=_parse_int(source.get("HOMEPORT_HTTP_TIMEOUT"), 60, 1, 300),
        http_max_retries=_parse_int(
            source.get("HOMEPORT_HTTP_MAX_RETRIES"), 3, 0, 10
        ),
        max_file_bytes=_parse_int(
            source.get("HOMEPORT_MAX_FILE_BYTES"),
            DEFAULT_MAX_FILE_BYTES,
            1024,
            1024 * 1024 * 1024,
        ),
        debug=_parse_bool(source.get("HOMEPORT_DEBUG"), False),
    )
