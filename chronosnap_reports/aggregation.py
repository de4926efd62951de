"""Revenue bucketing and payment-method counts over canonical transactions.

Only successful transactions (``SETTLED``/``PAID``) contribute. Each one is
assigned to the calendar day of its ``created_at`` in the reporting timezone;
buckets are pre-seeded for every day of the window so the series has no gaps,
and transactions dated outside the window are dropped rather than extending
it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo

from .errors import ValidationError
from .logging_setup import get_logger
from .models import UNKNOWN_METHOD, RevenueBucket, TransactionRecord

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RevenueSummary:
    revenue_by_day: tuple[RevenueBucket, ...]
    method_counts: dict[str, int]
    total_revenue: int
    transaction_count: int
    average_transaction_value: float


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError(
            f"end date {end.isoformat()} is before start date {start.isoformat()}"
        )


def seed_revenue_buckets(start: date, end: date) -> dict[date, int]:
    """Return a zero bucket for every day from ``start`` through ``end``, in order."""

    _check_range(start, end)
    n = (end - start).days + 1
    return {start + timedelta(days=i): 0 for i in range(n)}


def reporting_date(ts: datetime, tz: tzinfo) -> date:
    """Calendar date of ``ts`` in ``tz`` (naive values are taken as already local)."""

    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(tz).date()


def _method_label(record: TransactionRecord) -> str:
    return record.method or UNKNOWN_METHOD


def _successful_in_window(
    canonical: Iterable[TransactionRecord], buckets: dict[date, int], tz: tzinfo
) -> Iterable[tuple[date, TransactionRecord]]:
    for record in canonical:
        if not record.is_successful or record.created_at is None:
            continue
        day = reporting_date(record.created_at, tz)
        if day in buckets:
            yield day, record


def aggregate_revenue(
    canonical: Iterable[TransactionRecord],
    *,
    start: date,
    end: date,
    tz: tzinfo,
) -> RevenueSummary:
    """Bucket successful revenue per day and count transactions per method.

    ``total_revenue`` always equals the sum of the buckets; the average is
    ``0.0`` when no successful transaction falls inside the window.
    """

    buckets = seed_revenue_buckets(start, end)
    method_counts: dict[str, int] = {}
    count = 0
    for day, record in _successful_in_window(canonical, buckets, tz):
        buckets[day] += record.revenue_amount
        label = _method_label(record)
        method_counts[label] = method_counts.get(label, 0) + 1
        count += 1

    total = sum(buckets.values())
    average = total / count if count else 0.0
    logger.debug(
        "Aggregated %d successful transactions over %s..%s (total=%d)",
        count,
        start.isoformat(),
        end.isoformat(),
        total,
    )
    return RevenueSummary(
        revenue_by_day=tuple(RevenueBucket(d, amt) for d, amt in buckets.items()),
        method_counts=method_counts,
        total_revenue=total,
        transaction_count=count,
        average_transaction_value=average,
    )


def window_revenue(
    canonical: Iterable[TransactionRecord],
    *,
    start: date,
    end: date,
    tz: tzinfo,
) -> int:
    """Sum of successful revenue whose reporting date lies in ``[start, end]``."""

    buckets = seed_revenue_buckets(start, end)
    return sum(r.revenue_amount for _day, r in _successful_in_window(canonical, buckets, tz))


__all__ = [
    "RevenueSummary",
    "aggregate_revenue",
    "reporting_date",
    "seed_revenue_buckets",
    "window_revenue",
]
