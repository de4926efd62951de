"""Environment-driven settings for reporting runs.

Values are read from the process environment. The CLI loads a local ``.env``
through ``python-dotenv`` first (without overriding variables that are already
set), so library callers see the same configuration.

Recognized variables
--------------------
- ``DATABASE_URL``: SQLAlchemy URL of the hosted database (optional here; the
  db client raises when it is needed and missing).
- ``CHRONOSNAP_REPORT_TZ``: IANA timezone used to assign transactions to
  calendar days. Defaults to ``UTC``.
- ``CHRONOSNAP_DEFAULT_DAYS``: default reporting window length. Defaults to 30.
- ``CHRONOSNAP_ONLINE_THRESHOLD_MINUTES``: booth heartbeat freshness threshold.
  Defaults to 5.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .logging_setup import get_logger

logger = get_logger(__name__)

DEFAULT_REPORT_TZ = "UTC"
DEFAULT_DAYS = 30
DEFAULT_ONLINE_THRESHOLD_MINUTES = 5


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str | None
    report_timezone: ZoneInfo
    default_days: int
    online_threshold: timedelta


def _env(environ: Mapping[str, str], name: str) -> str | None:
    val = environ.get(name)
    if val is None:
        return None
    val = val.strip()
    return val if val else None


def _positive_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _env(environ, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        logger.warning("Ignoring %s=%r (expected a positive integer); using %d", name, raw, default)
        return default
    return value


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Return the ``ZoneInfo`` for ``name`` (``UTC`` when ``None``/blank)."""

    key = (name or "").strip() or DEFAULT_REPORT_TZ
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise RuntimeError(f"Unknown reporting timezone: {key!r}") from e


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from ``environ`` (defaults to ``os.environ``)."""

    env = os.environ if environ is None else environ
    return Settings(
        database_url=_env(env, "DATABASE_URL"),
        report_timezone=resolve_timezone(_env(env, "CHRONOSNAP_REPORT_TZ")),
        default_days=_positive_int(env, "CHRONOSNAP_DEFAULT_DAYS", DEFAULT_DAYS),
        online_threshold=timedelta(
            minutes=_positive_int(
                env, "CHRONOSNAP_ONLINE_THRESHOLD_MINUTES", DEFAULT_ONLINE_THRESHOLD_MINUTES
            )
        ),
    )


__all__ = [
    "DEFAULT_DAYS",
    "DEFAULT_ONLINE_THRESHOLD_MINUTES",
    "DEFAULT_REPORT_TZ",
    "Settings",
    "load_settings",
    "resolve_timezone",
]
