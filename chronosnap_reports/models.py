"""Data models and type aliases for ``chronosnap_reports``.

Input records arrive from two places: rows read by the data-fetch collaborator
(``chronosnap_reports.db.repository``) and JSON exports of the hosted
``payments`` table. Both are validated into :class:`TransactionRecord` at the
boundary so the engine works on one immutable, explicitly-optional shape.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from enum import StrEnum
from typing import Any, NamedTuple, TypeAlias

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

# ---------------------------------------------------------------------------
# Statuses
# ---------------------------------------------------------------------------


class TransactionStatus(StrEnum):
    """Payment-gateway statuses for a single payment attempt."""

    SETTLED = "SETTLED"
    PAID = "PAID"
    PENDING = "PENDING"
    EXPIRED = "EXPIRED"
    FAILED = "FAILED"


SUCCESSFUL_STATUSES: frozenset[str] = frozenset(
    {TransactionStatus.SETTLED.value, TransactionStatus.PAID.value}
)

UNKNOWN_METHOD = "Unknown"


def _norm_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s if s else None


# ---------------------------------------------------------------------------
# Transaction record
# ---------------------------------------------------------------------------


class TransactionRecord(BaseModel):
    """Validated, immutable view of one payment attempt.

    Accepts snake_case keys, the camelCase keys used by the admin API, and the
    raw column names of the hosted ``payments`` table (``xendit_invoice_id``,
    ``payment_method``). A nested ``booth`` object as returned by joined
    selects (``booth: {name, organization: {name}}``) is flattened into
    ``booth_name``/``organization_name``.

    Naive timestamps are interpreted as UTC. ``status`` is trimmed and
    upper-cased; values outside :class:`TransactionStatus` are kept verbatim
    and rank lowest during deduplication.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | None = None
    invoice_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("invoice_id", "invoiceId", "xendit_invoice_id"),
    )
    amount: int | None = None
    status: str
    method: str | None = Field(
        default=None,
        validation_alias=AliasChoices("method", "payment_method", "paymentMethod"),
    )
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    updated_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("updated_at", "updatedAt")
    )
    paid_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("paid_at", "paidAt")
    )
    booth_id: str | None = Field(
        default=None, validation_alias=AliasChoices("booth_id", "boothId")
    )
    booth_name: str | None = Field(
        default=None, validation_alias=AliasChoices("booth_name", "boothName")
    )
    organization_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("organization_name", "organizationName"),
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten_joined_booth(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        booth = data.get("booth")
        if not isinstance(booth, Mapping):
            return data
        out = dict(data)
        out.setdefault("booth_name", booth.get("name"))
        org = booth.get("organization")
        if isinstance(org, Mapping):
            out.setdefault("organization_name", org.get("name"))
        if booth.get("id") is not None:
            out.setdefault("booth_id", booth.get("id"))
        return out

    @field_validator(
        "id", "invoice_id", "method", "booth_id", "booth_name", "organization_name",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v: Any) -> str | None:
        return _norm_str(v)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("created_at", "updated_at", "paid_at")
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def correlation_key(self) -> str:
        """``invoice_id`` when present, else ``id``; raises when both are absent."""

        key = self.invoice_id or self.id
        if key is None:
            raise ValidationError("transaction record has neither an invoice id nor an id")
        return key

    @property
    def effective_timestamp(self) -> datetime | None:
        return self.updated_at or self.created_at

    @property
    def revenue_amount(self) -> int:
        return self.amount or 0

    @property
    def is_successful(self) -> bool:
        return self.status in SUCCESSFUL_STATUSES


def parse_transaction(raw: TransactionRecord | Mapping[str, Any]) -> TransactionRecord:
    """Validate ``raw`` into a :class:`TransactionRecord` (instances pass through)."""

    if isinstance(raw, TransactionRecord):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(
            f"transaction must be a mapping or TransactionRecord, got {type(raw).__name__}"
        )
    try:
        return TransactionRecord.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"invalid transaction record: {e}") from e


Transactions: TypeAlias = Iterable[TransactionRecord | Mapping[str, Any]]
"""Engine input: validated records or raw mappings validated on entry."""


# ---------------------------------------------------------------------------
# Reporting window
# ---------------------------------------------------------------------------


def _coerce_date(value: Any, name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as e:
            raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from e
    raise ValidationError(f"{name} must be a date, got {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class ReportWindow:
    """A reporting window: the last ``days`` days, or an explicit date range.

    Exactly one form must be provided. ``start_date``/``end_date`` are inclusive
    calendar dates in the reporting timezone. Construction validates the
    bounds; the engine calls :meth:`validate` again before using a window.
    """

    days: int | None = None
    start_date: date | None = None
    end_date: date | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        has_range = self.start_date is not None or self.end_date is not None
        if self.days is None and not has_range:
            raise ValidationError("ReportWindow requires either days or start_date/end_date")
        if self.days is not None and has_range:
            raise ValidationError("ReportWindow accepts days or start_date/end_date, not both")
        if self.days is not None:
            # Booleans are ints; disallow them explicitly.
            if isinstance(self.days, bool) or not isinstance(self.days, int) or self.days <= 0:
                raise ValidationError(f"days must be a positive integer, got {self.days!r}")
            return
        if self.start_date is None or self.end_date is None:
            raise ValidationError("start_date and end_date must be provided together")
        if self.end_date < self.start_date:
            raise ValidationError(
                f"end_date {self.end_date.isoformat()} is before "
                f"start_date {self.start_date.isoformat()}"
            )

    @classmethod
    def coerce(cls, value: ReportWindow | Mapping[str, Any]) -> ReportWindow:
        """Build a window from an instance or a ``{"days": n}``/date-range mapping.

        Mapping keys may be snake_case or the camelCase query-string names
        (``startDate``/``endDate``). ``days`` may be an int or a numeric string.
        """

        if isinstance(value, ReportWindow):
            value.validate()
            return value
        if not isinstance(value, Mapping):
            raise ValidationError(
                f"window must be a ReportWindow or mapping, got {type(value).__name__}"
            )

        raw_days = value.get("days")
        raw_start = value.get("start_date") or value.get("startDate")
        raw_end = value.get("end_date") or value.get("endDate")

        days: int | None = None
        if raw_days is not None:
            if isinstance(raw_days, str):
                try:
                    days = int(raw_days.strip())
                except ValueError as e:
                    raise ValidationError(f"days must be an integer, got {raw_days!r}") from e
            else:
                days = raw_days

        return cls(
            days=days,
            start_date=_coerce_date(raw_start, "start_date") if raw_start is not None else None,
            end_date=_coerce_date(raw_end, "end_date") if raw_end is not None else None,
        )

    def bounds(self, today: date) -> tuple[date, date]:
        """Return the inclusive ``(start, end)`` dates of this window."""

        if self.days is not None:
            return today - timedelta(days=self.days - 1), today
        assert self.start_date is not None and self.end_date is not None  # validated
        return self.start_date, self.end_date

    def length_days(self, today: date) -> int:
        start, end = self.bounds(today)
        return (end - start).days + 1

    def previous_bounds(self, today: date) -> tuple[date, date]:
        """Return the equal-length window ending the day before this one starts."""

        start, _end = self.bounds(today)
        n = self.length_days(today)
        return start - timedelta(days=n), start - timedelta(days=1)


# ---------------------------------------------------------------------------
# Engine outputs
# ---------------------------------------------------------------------------


class RevenueBucket(NamedTuple):
    """Revenue total for one calendar day of a reporting window."""

    date: date
    amount: int


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    """Output of :func:`chronosnap_reports.api.reconcile_and_aggregate`.

    ``growth_percent`` is ``None`` when no prior-period comparison was
    requested. ``method_counts`` keeps insertion order of first occurrence.
    """

    canonical_transactions: tuple[TransactionRecord, ...]
    revenue_by_day: tuple[RevenueBucket, ...]
    method_counts: dict[str, int] = field(default_factory=dict)
    total_revenue: int = 0
    transaction_count: int = 0
    average_transaction_value: float = 0.0
    growth_percent: int | None = None
    window_start: date | None = None
    window_end: date | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return the JSON-friendly camelCase shape used by admin API consumers."""

        out: dict[str, Any] = {
            "canonicalTransactions": [
                t.model_dump(mode="json") for t in self.canonical_transactions
            ],
            "revenueByDay": [
                {"date": b.date.isoformat(), "amount": b.amount} for b in self.revenue_by_day
            ],
            "methodCounts": dict(self.method_counts),
            "totalRevenue": self.total_revenue,
            "transactionCount": self.transaction_count,
            "averageTransactionValue": self.average_transaction_value,
            "windowStart": self.window_start.isoformat() if self.window_start else None,
            "windowEnd": self.window_end.isoformat() if self.window_end else None,
        }
        if self.growth_percent is not None:
            out["growthPercent"] = self.growth_percent
        return out


__all__ = [
    "SUCCESSFUL_STATUSES",
    "UNKNOWN_METHOD",
    "ReconciliationReport",
    "ReportWindow",
    "RevenueBucket",
    "TransactionRecord",
    "TransactionStatus",
    "Transactions",
    "parse_transaction",
]
