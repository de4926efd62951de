from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from chronosnap_reports import TransactionRecord, ValidationError
from chronosnap_reports.aggregation import (
    aggregate_revenue,
    reporting_date,
    seed_revenue_buckets,
    window_revenue,
)


def _mk_paid(
    id: str,
    created: datetime,
    amount: int | None = 10000,
    *,
    status: str = "PAID",
    method: str | None = "QRIS",
) -> TransactionRecord:
    return TransactionRecord(id=id, status=status, amount=amount, method=method, created_at=created)


def _at(day: int, hour: int = 12) -> datetime:
    return datetime(2024, 1, day, hour, tzinfo=UTC)


def test_three_day_window_with_one_paid_and_one_failed():
    records = [
        _mk_paid("ok", _at(9), 50000),
        _mk_paid("bad", _at(9), 99999, status="FAILED"),
    ]

    s = aggregate_revenue(records, start=date(2024, 1, 8), end=date(2024, 1, 10), tz=UTC)

    assert [(b.date, b.amount) for b in s.revenue_by_day] == [
        (date(2024, 1, 8), 0),
        (date(2024, 1, 9), 50000),
        (date(2024, 1, 10), 0),
    ]
    assert s.total_revenue == 50000
    assert s.transaction_count == 1
    assert s.average_transaction_value == 50000.0
    assert s.method_counts == {"QRIS": 1}


def test_buckets_are_contiguous_and_complete():
    start, end = date(2024, 2, 25), date(2024, 3, 2)

    s = aggregate_revenue([], start=start, end=end, tz=UTC)

    dates = [b.date for b in s.revenue_by_day]
    assert len(dates) == (end - start).days + 1
    assert dates[0] == start and dates[-1] == end
    assert all(b - a == timedelta(days=1) for a, b in zip(dates, dates[1:], strict=False))


def test_total_equals_sum_of_buckets():
    records = [
        _mk_paid("1", _at(1), 1000),
        _mk_paid("2", _at(2), 2500, status="SETTLED"),
        _mk_paid("3", _at(2, 23), 700),
        _mk_paid("4", _at(3), 10, status="PENDING"),
    ]

    s = aggregate_revenue(records, start=date(2024, 1, 1), end=date(2024, 1, 3), tz=UTC)

    assert s.total_revenue == sum(b.amount for b in s.revenue_by_day) == 4200
    assert s.transaction_count == 3
    assert s.average_transaction_value == pytest.approx(1400.0)


def test_out_of_window_transactions_are_dropped():
    records = [
        _mk_paid("before", _at(1), 111),
        _mk_paid("inside", _at(5), 222),
        _mk_paid("after", _at(20), 333),
    ]

    s = aggregate_revenue(records, start=date(2024, 1, 4), end=date(2024, 1, 6), tz=UTC)

    assert [b.date for b in s.revenue_by_day] == [date(2024, 1, d) for d in (4, 5, 6)]
    assert s.total_revenue == 222
    assert s.transaction_count == 1


def test_missing_method_and_amount():
    records = [
        _mk_paid("1", _at(2), None, method=None),
        _mk_paid("2", _at(2), 500, method="BANK_TRANSFER"),
        _mk_paid("3", _at(2), 500, method=None),
    ]

    s = aggregate_revenue(records, start=date(2024, 1, 2), end=date(2024, 1, 2), tz=UTC)

    assert s.method_counts == {"Unknown": 2, "BANK_TRANSFER": 1}
    assert s.total_revenue == 1000
    assert s.transaction_count == 3


def test_average_is_zero_without_successful_transactions():
    records = [_mk_paid("1", _at(2), 9000, status="EXPIRED")]

    s = aggregate_revenue(records, start=date(2024, 1, 1), end=date(2024, 1, 3), tz=UTC)

    assert s.transaction_count == 0
    assert s.average_transaction_value == 0.0
    assert s.method_counts == {}


def test_successful_record_without_created_at_is_skipped():
    records = [TransactionRecord(id="x", status="PAID", amount=100)]

    s = aggregate_revenue(records, start=date(2024, 1, 1), end=date(2024, 1, 1), tz=UTC)

    assert s.total_revenue == 0
    assert s.transaction_count == 0


def test_bucketing_uses_reporting_timezone():
    jakarta = ZoneInfo("Asia/Jakarta")  # UTC+7
    # 2024-01-09 20:00 UTC is already 2024-01-10 03:00 in Jakarta
    late = _mk_paid("late", datetime(2024, 1, 9, 20, tzinfo=UTC), 7000)

    utc_summary = aggregate_revenue([late], start=date(2024, 1, 9), end=date(2024, 1, 10), tz=UTC)
    jkt_summary = aggregate_revenue(
        [late], start=date(2024, 1, 9), end=date(2024, 1, 10), tz=jakarta
    )

    assert [b.amount for b in utc_summary.revenue_by_day] == [7000, 0]
    assert [b.amount for b in jkt_summary.revenue_by_day] == [0, 7000]


def test_reporting_date_of_naive_value_is_unchanged():
    assert reporting_date(datetime(2024, 1, 9, 23, 59), ZoneInfo("Asia/Jakarta")) == date(
        2024, 1, 9
    )


def test_window_revenue_counts_only_successful_inside_window():
    records = [
        _mk_paid("1", _at(1), 100),
        _mk_paid("2", _at(2), 200, status="FAILED"),
        _mk_paid("3", _at(3), 300, status="SETTLED"),
        _mk_paid("4", _at(4), 400),
    ]

    assert window_revenue(records, start=date(2024, 1, 1), end=date(2024, 1, 3), tz=UTC) == 400


def test_inverted_range_is_rejected():
    with pytest.raises(ValidationError):
        seed_revenue_buckets(date(2024, 1, 5), date(2024, 1, 4))
