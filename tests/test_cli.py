from __future__ import annotations

import csv
import io
import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

from typer.testing import CliRunner

from chronosnap_reports.cli import app
from tests.helpers.db import bootstrap_sqlite_db, seed

runner = CliRunner()


def _write_json(path: Path, rows: list[dict]) -> Path:
    path.write_text(json.dumps(rows), encoding="utf-8")
    return path


def _payments_file(tmp_path: Path) -> Path:
    return _write_json(
        tmp_path / "payments.json",
        [
            {
                "id": "p1",
                "xendit_invoice_id": "INV1",
                "status": "PENDING",
                "amount": 50000,
                "payment_method": "QRIS",
                "created_at": "2024-01-09T10:00:00Z",
            },
            {
                "id": "p2",
                "xendit_invoice_id": "INV1",
                "status": "PAID",
                "amount": 50000,
                "payment_method": "QRIS",
                "created_at": "2024-01-09T10:01:00Z",
                "booth": {"id": "b1", "name": "Lobby", "organization": {"name": "Acme"}},
            },
            {
                "id": "p3",
                "status": "FAILED",
                "amount": 99999,
                "created_at": "2024-01-09T11:00:00Z",
            },
            {
                "id": "p4",
                "status": "SETTLED",
                "amount": 25000,
                "created_at": "2024-01-06T09:00:00Z",
            },
        ],
    )


def test_analytics_json_from_file(tmp_path: Path):
    path = _payments_file(tmp_path)

    result = runner.invoke(
        app,
        [
            "analytics",
            "--start-date",
            "2024-01-08",
            "--end-date",
            "2024-01-10",
            "--json",
            "--json-path",
            str(path),
        ],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["revenueByDay"] == [
        {"date": "2024-01-08", "amount": 0},
        {"date": "2024-01-09", "amount": 50000},
        {"date": "2024-01-10", "amount": 0},
    ]
    assert data["totalRevenue"] == 50000
    assert data["transactionCount"] == 1
    assert data["methodCounts"] == {"QRIS": 1}
    # Previous window 2024-01-05..2024-01-07 holds the 25000 SETTLED payment
    assert data["growthPercent"] == 100


def test_analytics_without_comparison(tmp_path: Path):
    path = _payments_file(tmp_path)

    result = runner.invoke(
        app,
        [
            "analytics",
            "--start-date",
            "2024-01-08",
            "--end-date",
            "2024-01-10",
            "--no-compare",
            "--json",
            "--json-path",
            str(path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "growthPercent" not in json.loads(result.stdout)


def test_analytics_table_output(tmp_path: Path):
    path = _payments_file(tmp_path)

    result = runner.invoke(
        app,
        ["analytics", "--start-date", "2024-01-08", "--end-date", "2024-01-10"]
        + ["--json-path", str(path)],
    )

    assert result.exit_code == 0, result.output
    assert "Revenue by day" in result.stdout
    assert "2024-01-09" in result.stdout


def test_analytics_rejects_inverted_range(tmp_path: Path):
    path = _payments_file(tmp_path)

    result = runner.invoke(
        app,
        ["analytics", "--start-date", "2024-01-10", "--end-date", "2024-01-08"]
        + ["--json-path", str(path)],
    )

    assert result.exit_code == 2
    assert "Error:" in result.output


def test_analytics_without_data_source_fails():
    result = runner.invoke(app, ["analytics", "--json"])

    assert result.exit_code == 1
    assert "DATABASE_URL" in result.output


def test_analytics_missing_file(tmp_path: Path):
    result = runner.invoke(app, ["analytics", "--json-path", str(tmp_path / "nope.json")])

    assert result.exit_code == 1


def test_analytics_from_database(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "reports.db")
    earlier = datetime.now(UTC) - timedelta(hours=1)
    seed(
        url,
        payments=[
            {"id": "a", "amount": 12000, "status": "PAID", "created_at": earlier},
            {"id": "b", "amount": 8000, "status": "EXPIRED", "created_at": earlier},
        ],
    )

    result = runner.invoke(app, ["analytics", "--days", "3", "--json", "--database-url", url])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["totalRevenue"] == 12000
    assert data["transactionCount"] == 1
    assert len(data["revenueByDay"]) == 3
    # Nothing in the previous window
    assert data["growthPercent"] == 0


def test_payments_json(tmp_path: Path):
    path = _payments_file(tmp_path)

    result = runner.invoke(
        app, ["payments", "--page-size", "2", "--json", "--json-path", str(path)]
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [p["id"] for p in data["data"]] == ["p3", "p2"]
    assert data["data"][1]["booth_name"] == "Lobby"
    assert data["data"][0]["booth_name"] == "Unknown Booth"
    assert data["data"][0]["organization_name"] == "Unknown Org"
    assert (data["total"], data["page"], data["pageSize"], data["totalPages"]) == (3, 1, 2, 2)


def test_payments_invalid_page(tmp_path: Path):
    path = _payments_file(tmp_path)

    result = runner.invoke(app, ["payments", "--page", "0", "--json-path", str(path)])

    assert result.exit_code == 2


def test_export_revenue_to_stdout(tmp_path: Path):
    path = _payments_file(tmp_path)

    result = runner.invoke(
        app,
        [
            "export-revenue",
            "--start-date",
            "2024-01-09",
            "--end-date",
            "2024-01-09",
            "--json-path",
            str(path),
        ],
    )

    assert result.exit_code == 0, result.output
    rows = list(csv.reader(io.StringIO(result.stdout)))
    assert rows[0] == ["Date", "Time", "Organization", "Booth", "Amount (IDR)", "Status", "Method"]
    assert [r[5] for r in rows[1:]] == ["FAILED", "PAID", "PENDING"]
    assert rows[2] == ["2024-01-09", "10:01:00", "Acme", "Lobby", "50000", "PAID", "QRIS"]


def test_export_revenue_to_directory(tmp_path: Path):
    path = _payments_file(tmp_path)
    out_dir = tmp_path / "exports"

    result = runner.invoke(
        app,
        [
            "export-revenue",
            "--start-date",
            "2024-01-01",
            "--end-date",
            "2024-01-31",
            "--output",
            str(out_dir),
            "--json-path",
            str(path),
        ],
    )

    assert result.exit_code == 0, result.output
    target = out_dir / "revenue-report-2024-01-01-2024-01-31.csv"
    assert target.exists()
    assert len(target.read_text(encoding="utf-8").splitlines()) == 5


def test_booths_json(tmp_path: Path):
    now = datetime.now(UTC)
    fresh = now - timedelta(minutes=1)
    path = _write_json(
        tmp_path / "booths.json",
        [
            {"id": "b1", "name": "Lobby", "last_heartbeat": fresh.isoformat()},
            {"id": "b2", "name": "Mall", "last_heartbeat": (now - timedelta(hours=1)).isoformat()},
            {"id": "b3", "name": "New"},
        ],
    )

    result = runner.invoke(app, ["booths", "--json", "--json-path", str(path)])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [b["is_online"] for b in data["booths"]] == [True, False, False]
    assert [b["revenue"] for b in data["booths"]] == [0, 0, 0]
    assert data["totals"] == {"totalBooths": 3, "onlineBooths": 1, "totalRevenue": 0}


def test_booths_revenue_from_payments_file(tmp_path: Path):
    earlier = datetime.now(UTC) - timedelta(hours=1)
    booths = _write_json(
        tmp_path / "booths.json",
        [{"id": "b1", "name": "Lobby"}, {"id": "b2", "name": "Mall"}, {"id": "b3"}],
    )
    payments = _write_json(
        tmp_path / "payments.json",
        [
            {"id": "p1", "booth_id": "b2", "status": "PAID", "amount": 20000,
             "created_at": earlier.isoformat()},
            {"id": "p2", "booth_id": "b2", "status": "PENDING", "amount": 5000,
             "created_at": earlier.isoformat()},
            {"id": "p3", "booth_id": "b3", "status": "SETTLED", "amount": 7000,
             "created_at": (earlier - timedelta(days=10)).isoformat()},
            {"id": "p4", "booth_id": "gone", "status": "PAID", "amount": 9000,
             "created_at": earlier.isoformat()},
        ],
    )

    result = runner.invoke(
        app,
        ["booths", "--days", "3", "--json", "--json-path", str(booths)]
        + ["--payments-json-path", str(payments)],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [(b["id"], b["revenue"]) for b in data["booths"]] == [
        ("b2", 20000),
        ("b1", 0),
        ("b3", 0),
    ]
    assert data["booths"][2]["name"] == "Unnamed"
    assert data["totals"]["totalRevenue"] == 20000


def test_dotenv_is_loaded_from_working_directory(tmp_path: Path):
    # conftest runs each test from tmp_path
    (tmp_path / ".env").write_text("CHRONOSNAP_DEFAULT_DAYS=4\n", encoding="utf-8")
    path = _write_json(tmp_path / "empty.json", [])

    result = runner.invoke(app, ["analytics", "--json", "--no-compare", "--json-path", str(path)])

    assert result.exit_code == 0, result.output
    assert len(json.loads(result.stdout)["revenueByDay"]) == 4


def test_booths_invalid_record(tmp_path: Path):
    path = _write_json(tmp_path / "booths.json", [{"name": "No id"}])

    result = runner.invoke(app, ["booths", "--json-path", str(path)])

    assert result.exit_code == 2


def test_booths_revenue_from_database(tmp_path: Path, monkeypatch):
    url = bootstrap_sqlite_db(tmp_path / "reports.db")
    earlier = datetime.now(UTC) - timedelta(hours=1)
    seed(
        url,
        booths=[{"id": "b1", "name": "Lobby"}, {"id": "b2", "name": "Idle"}],
        payments=[
            {"id": "p1", "booth_id": "b1", "amount": 15000, "status": "SETTLED",
             "created_at": earlier},
        ],
    )
    # Configured URL, no --database-url
    monkeypatch.setenv("DATABASE_URL", url)

    result = runner.invoke(app, ["booths", "--days", "2", "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert {b["id"]: b["revenue"] for b in data["booths"]} == {"b1": 15000, "b2": 0}
    assert data["totals"]["totalRevenue"] == 15000


def test_non_utf8_json_file_is_reported(tmp_path: Path):
    bad = tmp_path / "payments.json"
    bad.write_bytes(b'[{"id": "\xff"}]')

    for command in (["analytics", "--days", "3"], ["payments"], ["booths"]):
        result = runner.invoke(app, [*command, "--json-path", str(bad)])

        assert result.exit_code == 1, result.output
        assert "Error: failed to load" in result.output
