"""Public interface for the ``chronosnap_reports`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import coerce_transactions, reconcile_and_aggregate
from .dedup import deduplicate_transactions, status_priority
from .errors import ReportingError, ValidationError
from .growth import growth_percent
from .models import (
    ReconciliationReport,
    ReportWindow,
    RevenueBucket,
    TransactionRecord,
    Transactions,
    TransactionStatus,
)

__all__ = [
    # API
    "coerce_transactions",
    "deduplicate_transactions",
    "growth_percent",
    "reconcile_and_aggregate",
    "status_priority",
    # Models / types
    "ReconciliationReport",
    "ReportWindow",
    "RevenueBucket",
    "TransactionRecord",
    "TransactionStatus",
    "Transactions",
    # Errors
    "ReportingError",
    "ValidationError",
]
