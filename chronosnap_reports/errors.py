"""Exception types raised by ``chronosnap_reports``.

Only input problems get a dedicated type. Data-source failures (missing
``DATABASE_URL``, SQLAlchemy errors) propagate unchanged to the caller.
"""

from __future__ import annotations


class ReportingError(Exception):
    """Base class for errors raised by this package."""


class ValidationError(ReportingError, ValueError):
    """Structurally invalid input: window bounds, records, or paging arguments.

    Raised on the first detected issue, before any output is produced. Retrying
    with the same input cannot succeed.
    """


__all__ = ["ReportingError", "ValidationError"]
