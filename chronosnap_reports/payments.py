"""Deduplicated, paginated payment listing for the admin payments view."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .dedup import deduplicate_transactions
from .errors import ValidationError
from .models import TransactionRecord, Transactions, parse_transaction

UNKNOWN_BOOTH = "Unknown Booth"
UNKNOWN_ORG = "Unknown Org"


@dataclass(frozen=True, slots=True)
class PaymentPage:
    """One page of canonical payments, newest first.

    ``total`` counts invoices after deduplication; ``total_pages`` is at least 1
    so an empty listing still renders a single (empty) page.
    """

    items: tuple[TransactionRecord, ...]
    total: int
    page: int
    page_size: int
    total_pages: int


def booth_label(record: TransactionRecord) -> str:
    return record.booth_name or UNKNOWN_BOOTH


def organization_label(record: TransactionRecord) -> str:
    return record.organization_name or UNKNOWN_ORG


def _newest_first_key(record: TransactionRecord) -> float:
    ts = record.created_at
    return ts.timestamp() if ts is not None else float("-inf")


def list_payments(
    records: Transactions,
    *,
    page: int = 1,
    page_size: int = 10,
    status: str | None = None,
) -> PaymentPage:
    """Filter by ``status``, deduplicate by invoice, sort newest first, and page.

    ``status`` of ``None``, ``""`` or ``"all"`` disables filtering; any other
    value is compared case-insensitively against the record status.
    """

    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValidationError(f"page must be a positive integer, got {page!r}")
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
        raise ValidationError(f"page_size must be a positive integer, got {page_size!r}")

    wanted = (status or "").strip().upper()
    parsed = [parse_transaction(r) for r in records]
    if wanted and wanted != "ALL":
        parsed = [r for r in parsed if r.status == wanted]

    canonical = deduplicate_transactions(parsed)
    # Stable sort keeps first-appearance order among equal timestamps.
    canonical.sort(key=_newest_first_key, reverse=True)

    total = len(canonical)
    offset = (page - 1) * page_size
    return PaymentPage(
        items=tuple(canonical[offset : offset + page_size]),
        total=total,
        page=page,
        page_size=page_size,
        total_pages=max(1, math.ceil(total / page_size)),
    )


__all__ = [
    "UNKNOWN_BOOTH",
    "UNKNOWN_ORG",
    "PaymentPage",
    "booth_label",
    "list_payments",
    "organization_label",
]
