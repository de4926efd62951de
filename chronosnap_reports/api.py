"""Public entry point of the payment reconciliation and reporting engine.

:func:`reconcile_and_aggregate` is a pure, synchronous function over records
that the caller already fetched (see ``chronosnap_reports.db.repository`` for
the database collaborator). It performs no I/O and keeps no state between
calls: identical input yields identical output.

Order of work:

1. validate the window;
2. validate every input record (``TransactionRecord`` or raw mapping);
3. deduplicate by invoice;
4. bucket successful revenue per day and count payment methods;
5. when prior-period records are supplied, compute growth against the
   immediately preceding window of equal length.

Any :class:`~chronosnap_reports.errors.ValidationError` is raised before an
output object exists; there is no partial result.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime, tzinfo
from typing import Any

from .aggregation import aggregate_revenue, window_revenue
from .config import load_settings
from .dedup import deduplicate_transactions
from .errors import ValidationError
from .growth import growth_percent
from .logging_setup import get_logger
from .models import (
    ReconciliationReport,
    ReportWindow,
    TransactionRecord,
    Transactions,
    parse_transaction,
)

logger = get_logger(__name__)


def coerce_transactions(items: Transactions) -> list[TransactionRecord]:
    """Validate ``items`` into records, reporting the position of a bad row."""

    out: list[TransactionRecord] = []
    for pos, raw in enumerate(items):
        try:
            record = parse_transaction(raw)
        except ValidationError as e:
            raise ValidationError(f"transaction at position {pos}: {e}") from e
        out.append(record)
    return out


def _resolve_tz(tz: tzinfo | None) -> tzinfo:
    if tz is not None:
        return tz
    return load_settings().report_timezone


def reconcile_and_aggregate(
    transactions: Transactions,
    window: ReportWindow | Mapping[str, Any],
    *,
    previous_transactions: Transactions | None = None,
    today: date | None = None,
    tz: tzinfo | None = None,
) -> ReconciliationReport:
    """Deduplicate ``transactions`` and summarize revenue over ``window``.

    Parameters
    ----------
    transactions:
        Payment attempts for the current window, as :class:`TransactionRecord`
        instances or raw mappings (validated on entry).
    window:
        A :class:`ReportWindow`, or a mapping ``{"days": n}`` /
        ``{"startDate": d, "endDate": d}``. Re-validated here.
    previous_transactions:
        Payment attempts covering the preceding window. When given,
        ``growth_percent`` is filled in; otherwise it is ``None``.
    today:
        Anchor for ``days`` windows. Defaults to the current date in ``tz``.
    tz:
        Reporting timezone for day bucketing. Defaults to the configured
        ``CHRONOSNAP_REPORT_TZ`` (UTC when unset).
    """

    resolved_window = ReportWindow.coerce(window)
    zone = _resolve_tz(tz)
    anchor = today if today is not None else datetime.now(zone).date()
    start, end = resolved_window.bounds(anchor)

    current = coerce_transactions(transactions)
    previous: list[TransactionRecord] | None = None
    if previous_transactions is not None:
        previous = coerce_transactions(previous_transactions)

    canonical = deduplicate_transactions(current)
    summary = aggregate_revenue(canonical, start=start, end=end, tz=zone)

    growth: int | None = None
    if previous is not None:
        prev_start, prev_end = resolved_window.previous_bounds(anchor)
        prev_revenue = window_revenue(
            deduplicate_transactions(previous), start=prev_start, end=prev_end, tz=zone
        )
        growth = growth_percent(summary.total_revenue, prev_revenue)
        logger.debug(
            "Growth %s..%s vs %s..%s: %d -> %d (%d%%)",
            prev_start.isoformat(),
            prev_end.isoformat(),
            start.isoformat(),
            end.isoformat(),
            prev_revenue,
            summary.total_revenue,
            growth,
        )

    logger.info(
        "Reconciled %d records into %d invoices; %d successful in %s..%s",
        len(current),
        len(canonical),
        summary.transaction_count,
        start.isoformat(),
        end.isoformat(),
    )

    return ReconciliationReport(
        canonical_transactions=tuple(canonical),
        revenue_by_day=summary.revenue_by_day,
        method_counts=summary.method_counts,
        total_revenue=summary.total_revenue,
        transaction_count=summary.transaction_count,
        average_transaction_value=summary.average_transaction_value,
        growth_percent=growth,
        window_start=start,
        window_end=end,
    )


__all__ = ["coerce_transactions", "reconcile_and_aggregate"]
