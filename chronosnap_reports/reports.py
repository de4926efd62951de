"""Revenue report rows and CSV export.

Rows mirror the admin "Reports" export: one row per payment record, newest
first, with booth/organization names resolved and missing values replaced by
display placeholders. Rendering uses the stdlib ``csv`` writer, which quotes
cells containing commas, quotes, or newlines.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo
from typing import Any, NamedTuple

from .models import Transactions, parse_transaction


class Column(NamedTuple):
    key: str
    label: str


REVENUE_COLUMNS: tuple[Column, ...] = (
    Column("date", "Date"),
    Column("time", "Time"),
    Column("organization", "Organization"),
    Column("booth", "Booth"),
    Column("amount", "Amount (IDR)"),
    Column("status", "Status"),
    Column("payment_method", "Method"),
)


@dataclass(frozen=True, slots=True)
class ReportSummary:
    total_records: int
    date_range: str
    report_type: str
    generated_at: datetime


def build_revenue_rows(records: Transactions, *, tz: tzinfo = UTC) -> list[dict[str, Any]]:
    """Return report rows for ``records``, newest ``created_at`` first.

    Records without ``created_at`` sort last with empty date/time cells.
    """

    parsed = [parse_transaction(r) for r in records]
    parsed.sort(
        key=lambda r: r.created_at.timestamp() if r.created_at else float("-inf"),
        reverse=True,
    )

    rows: list[dict[str, Any]] = []
    for r in parsed:
        local = r.created_at.astimezone(tz) if r.created_at else None
        rows.append(
            {
                "id": r.id,
                "date": local.date().isoformat() if local else None,
                "time": local.strftime("%H:%M:%S") if local else None,
                "amount": r.amount,
                "status": r.status,
                "payment_method": r.method or "-",
                "booth": r.booth_name or "Unknown",
                "organization": r.organization_name or "Unknown",
            }
        )
    return rows


def render_csv(rows: Iterable[Mapping[str, Any]], columns: Sequence[Column]) -> str:
    """Render ``rows`` as CSV with a header of column labels.

    ``None`` cells become empty strings. Lines end with ``\\n``.
    """

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow([c.label for c in columns])
    for row in rows:
        writer.writerow(["" if row.get(c.key) is None else row.get(c.key) for c in columns])
    return buf.getvalue()


def report_filename(report_type: str, start: date, end: date) -> str:
    return f"{report_type}-report-{start.isoformat()}-{end.isoformat()}.csv"


def summarize(
    rows: Sequence[Mapping[str, Any]],
    *,
    report_type: str,
    start: date,
    end: date,
    now: datetime | None = None,
) -> ReportSummary:
    return ReportSummary(
        total_records=len(rows),
        date_range=f"{start.isoformat()} to {end.isoformat()}",
        report_type=report_type,
        generated_at=now or datetime.now(UTC),
    )


__all__ = [
    "REVENUE_COLUMNS",
    "Column",
    "ReportSummary",
    "build_revenue_rows",
    "render_csv",
    "report_filename",
    "summarize",
]
