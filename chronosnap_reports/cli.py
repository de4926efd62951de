"""CLI for the ``chronosnap_reports`` package.

This module exposes callable command handlers (``cmd_analytics``,
``cmd_payments``, ``cmd_export_revenue``, ``cmd_booths``) that return a process
exit code, plus a Typer-based console interface wrapping them. Environment
variables (notably ``DATABASE_URL`` and ``CHRONOSNAP_REPORT_TZ``) are loaded
from a local ``.env`` using ``python-dotenv`` before any command runs.

Every command reads either from the database (``--database-url`` or
``DATABASE_URL``) or from ``--json-path``, a JSON array exported from the
hosted tables. Exit codes: ``0`` success, ``1`` data-source failure, ``2``
invalid input.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, date, datetime, tzinfo
from pathlib import Path
from typing import Any, TypeVar

import typer
from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from .api import reconcile_and_aggregate
from .aggregation import reporting_date
from .booths import BoothRecord, booth_performance, top_booths_by_revenue
from .config import Settings, load_settings
from .db.client import get_engine, get_session_factory, session_scope
from .db.repository import PaymentRepository
from .dedup import deduplicate_transactions
from .errors import ValidationError
from .growth import trend_label
from .logging_setup import configure_logging, get_logger
from .models import ReportWindow, TransactionRecord, parse_transaction
from .payments import booth_label, list_payments, organization_label
from .reports import (
    REVENUE_COLUMNS,
    build_revenue_rows,
    render_csv,
    report_filename,
    summarize,
)

logger = get_logger(__name__)

T = TypeVar("T")

# Errors reported as "the data could not be loaded" (exit code 1).
_SOURCE_ERRORS = (
    OSError,
    UnicodeDecodeError,
    json.JSONDecodeError,
    RuntimeError,
    SQLAlchemyError,
)


# ---- Small module-level helpers used by CLI commands -------------------------


def _read_json_array(path: Path) -> list[Mapping[str, Any]]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list) or not all(isinstance(item, Mapping) for item in data):
        raise ValidationError(f"{path} must contain a JSON array of objects")
    return data


def _with_repository(
    settings: Settings,
    database_url: str | None,
    fn: Callable[[PaymentRepository], T],
) -> T:
    """Run ``fn(repository)`` inside a short read-only session scope.

    ``database_url`` (the command-line override) wins over the configured URL.
    """

    engine = get_engine(database_url=database_url or settings.database_url)
    try:
        with session_scope(get_session_factory(engine)) as session:
            return fn(PaymentRepository(session))
    finally:
        engine.dispose()


def _in_window(
    records: Iterable[TransactionRecord], start: date, end: date, tz: tzinfo
) -> list[TransactionRecord]:
    return [
        r
        for r in records
        if r.created_at is not None and start <= reporting_date(r.created_at, tz) <= end
    ]


def _resolve_window(
    settings: Settings,
    *,
    days: int | None,
    start_date: str | None,
    end_date: str | None,
) -> ReportWindow:
    if start_date is not None or end_date is not None:
        return ReportWindow.coerce({"start_date": start_date, "end_date": end_date})
    return ReportWindow(days=days if days is not None else settings.default_days)


def _fmt_amount(value: int | float | None) -> str:
    if value is None:
        return "-"
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,.2f}"
    return f"{int(value):,}"


def _fmt_ts(ts: datetime | None, settings: Settings) -> str:
    if ts is None:
        return "-"
    return ts.astimezone(settings.report_timezone).strftime("%Y-%m-%d %H:%M:%S")


def _fail(message: str, code: int) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return code


# ---- Command handlers --------------------------------------------------------


def cmd_analytics(
    *,
    days: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    compare: bool = True,
    as_json: bool = False,
    json_path: Path | None = None,
    database_url: str | None = None,
) -> int:
    """Print revenue analytics for a window, optionally against the prior window.

    With ``json_path`` the same record set feeds both windows; the engine keeps
    only the transactions dated inside each window.
    """

    try:
        settings = load_settings()
        window = _resolve_window(settings, days=days, start_date=start_date, end_date=end_date)
        tz = settings.report_timezone
        today = datetime.now(tz).date()
        start, end = window.bounds(today)
        prev_start, prev_end = window.previous_bounds(today)

        if json_path is not None:
            current: list[Any] = list(_read_json_array(json_path))
            previous: list[Any] | None = current if compare else None
        else:

            def _fetch(
                repo: PaymentRepository,
            ) -> tuple[list[TransactionRecord], list[TransactionRecord]]:
                cur = repo.fetch_for_dates(start, end, tz=tz)
                prev = repo.fetch_for_dates(prev_start, prev_end, tz=tz) if compare else []
                return cur, prev

            fetched_cur, fetched_prev = _with_repository(settings, database_url, _fetch)
            current = list(fetched_cur)
            previous = list(fetched_prev) if compare else None

        report = reconcile_and_aggregate(
            current, window, previous_transactions=previous, today=today, tz=tz
        )
    except ValidationError as e:
        return _fail(str(e), 2)
    except _SOURCE_ERRORS as e:
        return _fail(f"failed to load transactions: {e}", 1)

    if as_json:
        print(json.dumps(report.as_dict(), indent=2))
        return 0

    console = Console()
    stats = Table(title=f"Revenue {start.isoformat()} to {end.isoformat()}")
    stats.add_column("Metric")
    stats.add_column("Value", justify="right")
    stats.add_row("Total revenue", _fmt_amount(report.total_revenue))
    stats.add_row("Transactions", str(report.transaction_count))
    stats.add_row("Average value", _fmt_amount(report.average_transaction_value))
    if report.growth_percent is not None:
        stats.add_row(
            "Growth vs previous",
            f"{report.growth_percent:+d}% ({trend_label(report.growth_percent)})",
        )
    console.print(stats)

    by_day = Table(title="Revenue by day")
    by_day.add_column("Date")
    by_day.add_column("Amount", justify="right")
    for bucket in report.revenue_by_day:
        by_day.add_row(bucket.date.isoformat(), _fmt_amount(bucket.amount))
    console.print(by_day)

    methods = Table(title="Payment methods")
    methods.add_column("Method")
    methods.add_column("Count", justify="right")
    for method, count in report.method_counts.items():
        methods.add_row(method, str(count))
    console.print(methods)

    top = top_booths_by_revenue(report.canonical_transactions)
    if top:
        booths = Table(title="Top booths")
        booths.add_column("Booth")
        booths.add_column("Organization")
        booths.add_column("Revenue", justify="right")
        for b in top:
            booths.add_row(b.name, b.organization, _fmt_amount(b.revenue))
        console.print(booths)
    return 0


def cmd_payments(
    *,
    page: int = 1,
    page_size: int = 10,
    status: str | None = None,
    as_json: bool = False,
    json_path: Path | None = None,
    database_url: str | None = None,
) -> int:
    """Print one page of deduplicated payments, newest first."""

    try:
        settings = load_settings()
        if json_path is not None:
            records: list[Any] = list(_read_json_array(json_path))
        else:
            records = list(
                _with_repository(settings, database_url, lambda repo: repo.fetch_transactions())
            )
        result = list_payments(records, page=page, page_size=page_size, status=status)
    except ValidationError as e:
        return _fail(str(e), 2)
    except _SOURCE_ERRORS as e:
        return _fail(f"failed to load payments: {e}", 1)

    if as_json:
        payload = {
            "data": [
                {
                    **r.model_dump(mode="json"),
                    "booth_name": booth_label(r),
                    "organization_name": organization_label(r),
                }
                for r in result.items
            ],
            "total": result.total,
            "page": result.page,
            "pageSize": result.page_size,
            "totalPages": result.total_pages,
        }
        print(json.dumps(payload, indent=2))
        return 0

    table = Table(title=f"Payments (page {result.page}/{result.total_pages}, {result.total} total)")
    for col in ("Created", "Invoice", "Booth", "Organization", "Amount", "Status", "Method"):
        table.add_column(col, justify="right" if col == "Amount" else "left")
    for r in result.items:
        table.add_row(
            _fmt_ts(r.created_at, settings),
            r.invoice_id or r.id or "-",
            booth_label(r),
            organization_label(r),
            _fmt_amount(r.amount),
            r.status,
            r.method or "-",
        )
    Console().print(table)
    return 0


def cmd_export_revenue(
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    output: Path | None = None,
    json_path: Path | None = None,
    database_url: str | None = None,
) -> int:
    """Write the revenue report CSV for ``start_date..end_date`` (default: last 30 days)."""

    try:
        settings = load_settings()
        tz = settings.report_timezone
        if start_date is None and end_date is None:
            window = ReportWindow(days=settings.default_days)
        else:
            today_iso = datetime.now(tz).date().isoformat()
            window = ReportWindow.coerce(
                {"start_date": start_date or today_iso, "end_date": end_date or today_iso}
            )
        start, end = window.bounds(datetime.now(tz).date())

        if json_path is not None:
            parsed = [parse_transaction(r) for r in _read_json_array(json_path)]
            records: list[TransactionRecord] = _in_window(parsed, start, end, tz)
        else:
            records = _with_repository(
                settings, database_url, lambda repo: repo.fetch_for_dates(start, end, tz=tz)
            )
        rows = build_revenue_rows(records, tz=tz)
    except ValidationError as e:
        return _fail(str(e), 2)
    except _SOURCE_ERRORS as e:
        return _fail(f"failed to load payments: {e}", 1)

    text = render_csv(rows, REVENUE_COLUMNS)
    summary = summarize(rows, report_type="revenue", start=start, end=end)
    if output is None:
        sys.stdout.write(text)
    else:
        target = output if output.suffix else output / report_filename("revenue", start, end)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            return _fail(f"failed to write {target}: {e}", 1)
        print(f"Wrote {summary.total_records} rows ({summary.date_range}) to {target}")
    logger.info("Revenue report: %d rows for %s", summary.total_records, summary.date_range)
    return 0


def cmd_booths(
    *,
    days: int | None = None,
    as_json: bool = False,
    json_path: Path | None = None,
    payments_json_path: Path | None = None,
    database_url: str | None = None,
) -> int:
    """Print every booth with online status and successful revenue over ``days``.

    With ``json_path`` booths come from that file and payments from
    ``payments_json_path`` (no payments when omitted).
    """

    try:
        settings = load_settings()
        tz = settings.report_timezone
        window = ReportWindow(days=days if days is not None else settings.default_days)
        start, end = window.bounds(datetime.now(tz).date())

        if json_path is not None:
            booths = [BoothRecord.model_validate(b) for b in _read_json_array(json_path)]
            payments: list[TransactionRecord] = []
            if payments_json_path is not None:
                payments = [parse_transaction(r) for r in _read_json_array(payments_json_path)]
        else:

            def _fetch(
                repo: PaymentRepository,
            ) -> tuple[list[BoothRecord], list[TransactionRecord]]:
                return repo.fetch_booths(), repo.fetch_for_dates(start, end, tz=tz)

            booths, payments = _with_repository(settings, database_url, _fetch)

        canonical = deduplicate_transactions(_in_window(payments, start, end, tz))
    except (ValidationError, PydanticValidationError) as e:
        return _fail(str(e), 2)
    except _SOURCE_ERRORS as e:
        return _fail(f"failed to load booths: {e}", 1)

    rows, totals = booth_performance(
        booths, canonical, now=datetime.now(UTC), threshold=settings.online_threshold
    )

    if as_json:
        payload = {
            "booths": [
                {
                    "id": r.booth_id,
                    "name": r.name,
                    "organization": r.organization,
                    "location": r.location,
                    "price": r.price,
                    "status": r.status,
                    "is_online": r.is_online,
                    "revenue": r.revenue,
                    "last_heartbeat": r.last_heartbeat.isoformat() if r.last_heartbeat else None,
                }
                for r in rows
            ],
            "totals": {
                "totalBooths": totals.total_booths,
                "onlineBooths": totals.online_booths,
                "totalRevenue": totals.total_revenue,
            },
            "windowStart": start.isoformat(),
            "windowEnd": end.isoformat(),
        }
        print(json.dumps(payload, indent=2))
        return 0

    table = Table(
        title=(
            f"Booths ({totals.online_booths}/{totals.total_booths} online, "
            f"revenue {_fmt_amount(totals.total_revenue)} {start.isoformat()} to {end.isoformat()})"
        )
    )
    columns = ("Name", "Organization", "Location", "Status", "Online", "Revenue", "Last heartbeat")
    for col in columns:
        table.add_column(col, justify="right" if col == "Revenue" else "left")
    for r in rows:
        table.add_row(
            r.name,
            r.organization,
            r.location,
            r.status or "-",
            "Yes" if r.is_online else "No",
            _fmt_amount(r.revenue),
            _fmt_ts(r.last_heartbeat, settings),
        )
    Console().print(table)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Payment reconciliation and revenue reports for the ChronoSnap backoffice. "
        "Loads DATABASE_URL and CHRONOSNAP_* settings from a local .env before running."
    ),
)

# Options shared by every command (ruff B008: no calls in defaults).
JSON_PATH_OPTION = typer.Option(
    None,
    "--json-path",
    help="Read records from a JSON array file instead of the database.",
    dir_okay=False,
    file_okay=True,
    exists=False,  # a missing file exits 1 from the handler
)
DATABASE_URL_OPTION = typer.Option(None, help="Override DATABASE_URL (falls back to env var).")
AS_JSON_OPTION = typer.Option(False, "--json", help="Print JSON instead of tables.")


@app.command("analytics")
def analytics_cmd(
    *,
    days: int | None = typer.Option(
        None, help="Window length in days ending today (default CHRONOSNAP_DEFAULT_DAYS)."
    ),
    start_date: str | None = typer.Option(None, help="Explicit window start (YYYY-MM-DD)."),
    end_date: str | None = typer.Option(None, help="Explicit window end (YYYY-MM-DD)."),
    compare: bool = typer.Option(
        True, "--compare/--no-compare", help="Compute growth against the previous window."
    ),
    as_json: bool = AS_JSON_OPTION,
    json_path: Path | None = JSON_PATH_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Revenue by day, payment methods, and period-over-period growth."""

    raise typer.Exit(
        cmd_analytics(
            days=days,
            start_date=start_date,
            end_date=end_date,
            compare=compare,
            as_json=as_json,
            json_path=json_path,
            database_url=database_url,
        )
    )


@app.command("payments")
def payments_cmd(
    *,
    page: int = typer.Option(1, help="1-based page number."),
    page_size: int = typer.Option(10, help="Payments per page."),
    status: str | None = typer.Option(None, help="Filter by status (or 'all')."),
    as_json: bool = AS_JSON_OPTION,
    json_path: Path | None = JSON_PATH_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """List deduplicated payments, newest first."""

    raise typer.Exit(
        cmd_payments(
            page=page,
            page_size=page_size,
            status=status,
            as_json=as_json,
            json_path=json_path,
            database_url=database_url,
        )
    )


@app.command("export-revenue")
def export_revenue_cmd(
    *,
    start_date: str | None = typer.Option(None, help="Report start (YYYY-MM-DD)."),
    end_date: str | None = typer.Option(None, help="Report end (YYYY-MM-DD)."),
    output: Path | None = typer.Option(
        None, help="Output file, or a directory to receive the default file name."
    ),
    json_path: Path | None = JSON_PATH_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Export the revenue report as CSV."""

    raise typer.Exit(
        cmd_export_revenue(
            start_date=start_date,
            end_date=end_date,
            output=output,
            json_path=json_path,
            database_url=database_url,
        )
    )


@app.command("booths")
def booths_cmd(
    *,
    days: int | None = typer.Option(
        None, help="Revenue window in days ending today (default CHRONOSNAP_DEFAULT_DAYS)."
    ),
    as_json: bool = AS_JSON_OPTION,
    json_path: Path | None = JSON_PATH_OPTION,
    payments_json_path: Path | None = typer.Option(
        None,
        "--payments-json-path",
        help="Payments JSON array used with --json-path for per-booth revenue.",
        dir_okay=False,
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """List every booth with online status and revenue, highest revenue first."""

    raise typer.Exit(
        cmd_booths(
            days=days,
            as_json=as_json,
            json_path=json_path,
            payments_json_path=payments_json_path,
            database_url=database_url,
        )
    )


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Logging level (default CHRONOSNAP_LOG_LEVEL or INFO)."
    ),
) -> None:
    """Load ``.env`` from the current directory and configure logging."""

    # override=False keeps variables that are already set in the environment
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    main()
