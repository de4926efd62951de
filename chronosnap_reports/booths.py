"""Booth connectivity and revenue ranking.

A booth is online when its last heartbeat is strictly newer than ``now`` minus
a freshness threshold (five minutes by default, configurable through
``CHRONOSNAP_ONLINE_THRESHOLD_MINUTES``).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .config import DEFAULT_ONLINE_THRESHOLD_MINUTES
from .errors import ValidationError
from .models import TransactionRecord

DEFAULT_ONLINE_THRESHOLD = timedelta(minutes=DEFAULT_ONLINE_THRESHOLD_MINUTES)


class BoothRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str | None = None
    organization_id: str | None = None
    organization_name: str | None = None
    location: str | None = None
    price: int | None = None
    status: str | None = None
    last_heartbeat: datetime | None = None

    @field_validator(
        "id", "name", "organization_id", "organization_name", "location", mode="before"
    )
    @classmethod
    def _blank_to_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        s = str(v).strip()
        return s if s else None

    @field_validator("last_heartbeat")
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


def is_online(
    last_heartbeat: datetime | None,
    *,
    now: datetime,
    threshold: timedelta = DEFAULT_ONLINE_THRESHOLD,
) -> bool:
    if last_heartbeat is None:
        return False
    if last_heartbeat.tzinfo is None:
        last_heartbeat = last_heartbeat.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return last_heartbeat > now - threshold


def count_online(
    booths: Iterable[BoothRecord],
    *,
    now: datetime,
    threshold: timedelta = DEFAULT_ONLINE_THRESHOLD,
) -> int:
    return sum(1 for b in booths if is_online(b.last_heartbeat, now=now, threshold=threshold))


@dataclass(frozen=True, slots=True)
class BoothRevenue:
    booth_id: str
    name: str
    organization: str
    revenue: int


def top_booths_by_revenue(
    canonical: Iterable[TransactionRecord], *, limit: int = 5
) -> list[BoothRevenue]:
    """Rank booths by successful revenue, highest first.

    Expects deduplicated records. Transactions without a ``booth_id`` are
    skipped. Equal revenue keeps the order in which booths first appear.
    """

    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationError(f"limit must be a positive integer, got {limit!r}")

    by_booth: dict[str, dict[str, Any]] = {}
    for record in canonical:
        if not record.is_successful or record.booth_id is None:
            continue
        entry = by_booth.setdefault(
            record.booth_id,
            {
                "name": record.booth_name or "Unknown",
                "organization": record.organization_name or "Unknown",
                "revenue": 0,
            },
        )
        entry["revenue"] += record.revenue_amount

    ranked = sorted(by_booth.items(), key=lambda kv: kv[1]["revenue"], reverse=True)
    return [
        BoothRevenue(
            booth_id=booth_id,
            name=entry["name"],
            organization=entry["organization"],
            revenue=entry["revenue"],
        )
        for booth_id, entry in ranked[:limit]
    ]


@dataclass(frozen=True, slots=True)
class BoothPerformance:
    booth_id: str
    name: str
    organization: str
    location: str
    price: int
    status: str | None
    is_online: bool
    revenue: int
    last_heartbeat: datetime | None


@dataclass(frozen=True, slots=True)
class BoothTotals:
    total_booths: int
    online_booths: int
    total_revenue: int


def booth_performance(
    booths: Iterable[BoothRecord],
    canonical: Iterable[TransactionRecord],
    *,
    now: datetime,
    threshold: timedelta = DEFAULT_ONLINE_THRESHOLD,
) -> tuple[list[BoothPerformance], BoothTotals]:
    """Every booth with its successful revenue, highest first, plus fleet totals.

    Booths without payments report ``0``. Revenue from transactions whose
    ``booth_id`` matches no listed booth is not counted. The caller restricts
    ``canonical`` to the reporting window.
    """

    revenue: dict[str, int] = {}
    for record in canonical:
        if record.is_successful and record.booth_id is not None:
            revenue[record.booth_id] = revenue.get(record.booth_id, 0) + record.revenue_amount

    rows = [
        BoothPerformance(
            booth_id=b.id,
            name=b.name or "Unnamed",
            organization=b.organization_name or "Unknown",
            location=b.location or "-",
            price=b.price or 0,
            status=b.status,
            is_online=is_online(b.last_heartbeat, now=now, threshold=threshold),
            revenue=revenue.get(b.id, 0),
            last_heartbeat=b.last_heartbeat,
        )
        for b in booths
    ]
    # Stable: equal revenue keeps the input order.
    rows.sort(key=lambda r: r.revenue, reverse=True)

    totals = BoothTotals(
        total_booths=len(rows),
        online_booths=sum(1 for r in rows if r.is_online),
        total_revenue=sum(r.revenue for r in rows),
    )
    return rows, totals


__all__ = [
    "DEFAULT_ONLINE_THRESHOLD",
    "BoothRecord",
    "BoothRevenue",
    "BoothPerformance",
    "BoothTotals",
    "booth_performance",
    "count_online",
    "is_online",
    "top_booths_by_revenue",
]
