"""Collapse payment attempts that refer to the same invoice.

The payment gateway may report several attempts for one logical invoice (a
PENDING attempt later PAID, an EXPIRED retry, a correction with a newer
``updated_at``). Reports must count each invoice once, using its most
authoritative attempt.

Public surface:
- ``status_priority``: rank of a status in the SETTLED > PAID > PENDING >
  EXPIRED > FAILED order (unknown statuses rank 0).
- ``deduplicate_transactions``: one canonical record per correlation key.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from .logging_setup import get_logger
from .models import TransactionRecord, TransactionStatus

logger = get_logger(__name__)

STATUS_PRIORITY: dict[str, int] = {
    TransactionStatus.SETTLED.value: 5,
    TransactionStatus.PAID.value: 4,
    TransactionStatus.PENDING.value: 3,
    TransactionStatus.EXPIRED.value: 2,
    TransactionStatus.FAILED.value: 1,
}

# Records without any timestamp lose every recency comparison.
_NO_TIMESTAMP = datetime.min.replace(tzinfo=UTC)


def status_priority(status: str | None) -> int:
    """Return the dedup priority of ``status`` (0 for unrecognized values)."""

    if status is None:
        return 0
    return STATUS_PRIORITY.get(status, 0)


def _recency(record: TransactionRecord) -> datetime:
    ts = record.effective_timestamp
    return ts if ts is not None else _NO_TIMESTAMP


def _supersedes(incoming: TransactionRecord, chosen: TransactionRecord) -> bool:
    incoming_rank = status_priority(incoming.status)
    chosen_rank = status_priority(chosen.status)
    if incoming_rank != chosen_rank:
        return incoming_rank > chosen_rank
    # Same rank: only a strictly newer record replaces; ties keep input order.
    return _recency(incoming) > _recency(chosen)


def deduplicate_transactions(records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    """Return one canonical record per invoice, in order of first appearance.

    The correlation key is ``invoice_id`` when present, else ``id``. Within a
    key, a higher status priority always wins; on equal priority the record
    with the strictly later effective timestamp (``updated_at`` falling back to
    ``created_at``) wins, and an exact tie keeps the earlier-processed record.

    Raises :class:`~chronosnap_reports.errors.ValidationError` on the first
    record that has neither an invoice id nor an id. Input records are never
    mutated; the chosen objects are returned as-is.
    """

    chosen: dict[str, TransactionRecord] = {}
    seen = 0
    for record in records:
        seen += 1
        key = record.correlation_key
        current = chosen.get(key)
        if current is None or _supersedes(record, current):
            chosen[key] = record

    logger.debug("Deduplicated %d transaction records into %d invoices", seen, len(chosen))
    return list(chosen.values())


__all__ = ["STATUS_PRIORITY", "deduplicate_transactions", "status_priority"]
