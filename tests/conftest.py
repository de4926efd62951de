"""Pytest configuration for test isolation.

Settings are read from the process environment (and the CLI also loads a
``.env`` from the working directory). To keep tests hermetic, every test runs
from its own temporary directory with the package's variables cleared, and
logging is limited to warnings so CLI output stays parseable.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

_ENV_VARS = (
    "DATABASE_URL",
    "CHRONOSNAP_REPORT_TZ",
    "CHRONOSNAP_DEFAULT_DAYS",
    "CHRONOSNAP_ONLINE_THRESHOLD_MINUTES",
)


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear reporting settings and run from a directory without a ``.env``."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CHRONOSNAP_LOG_LEVEL", "WARNING")
    monkeypatch.chdir(tmp_path)
    yield
    # CLI runs bind the package handler to a stream that is closed afterwards.
    pkg = logging.getLogger("chronosnap_reports")
    for handler in list(pkg.handlers):
        pkg.removeHandler(handler)
