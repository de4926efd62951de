"""Data-fetch collaborator: read payments and booths for the reports.

The repository wraps a caller-owned ``Session`` (constructor-injected) and
returns validated :class:`~chronosnap_reports.models.TransactionRecord` /
:class:`~chronosnap_reports.booths.BoothRecord` objects, so the engine never
touches ORM rows. Each call is a single bulk read.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta, tzinfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..booths import BoothRecord
from ..logging_setup import get_logger
from ..models import TransactionRecord
from .models import Booth, Organization, Payment

logger = get_logger(__name__)


def day_bounds(start: date, end: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Half-open ``[start 00:00, end+1 00:00)`` in ``tz``, expressed in UTC.

    Stored timestamps are UTC; binding UTC values keeps comparisons correct on
    backends that drop the offset (SQLite).
    """

    return (
        datetime.combine(start, time.min, tzinfo=tz).astimezone(UTC),
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz).astimezone(UTC),
    )


class PaymentRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def fetch_transactions(
        self,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[TransactionRecord]:
        """Return payments with ``start <= created_at < end``, newest first.

        Either bound may be omitted.

        Booth and organization names are resolved through outer joins; a
        payment whose booth no longer exists is still returned.
        """

        stmt = (
            select(Payment, Booth.name, Organization.name)
            .outerjoin(Booth, Payment.booth_id == Booth.id)
            .outerjoin(Organization, Booth.organization_id == Organization.id)
        )
        if start is not None:
            stmt = stmt.where(Payment.created_at >= start)
        if end is not None:
            stmt = stmt.where(Payment.created_at < end)
        if statuses is not None:
            stmt = stmt.where(Payment.status.in_(list(statuses)))
        stmt = stmt.order_by(Payment.created_at.desc(), Payment.id)

        records: list[TransactionRecord] = []
        for payment, booth_name, org_name in self._session.execute(stmt).all():
            records.append(
                TransactionRecord.model_validate(
                    {
                        "id": payment.id,
                        "xendit_invoice_id": payment.xendit_invoice_id,
                        "amount": payment.amount,
                        "status": payment.status,
                        "payment_method": payment.payment_method,
                        "created_at": payment.created_at,
                        "updated_at": payment.updated_at,
                        "paid_at": payment.paid_at,
                        "booth_id": payment.booth_id,
                        "booth_name": booth_name,
                        "organization_name": org_name,
                    }
                )
            )
        logger.debug("Fetched %d payments (start=%s, end=%s)", len(records), start, end)
        return records

    def fetch_for_dates(
        self,
        start: date,
        end: date,
        *,
        tz: tzinfo,
        statuses: Iterable[str] | None = None,
    ) -> list[TransactionRecord]:
        """Fetch payments created on the inclusive calendar dates ``start..end`` in ``tz``."""

        lo, hi = day_bounds(start, end, tz)
        return self.fetch_transactions(start=lo, end=hi, statuses=statuses)

    def fetch_booths(self) -> list[BoothRecord]:
        stmt = (
            select(Booth, Organization.name)
            .outerjoin(Organization, Booth.organization_id == Organization.id)
            .order_by(Booth.created_at.desc(), Booth.id)
        )
        return [
            BoothRecord(
                id=booth.id,
                name=booth.name,
                organization_id=booth.organization_id,
                organization_name=org_name,
                location=booth.location,
                price=booth.price,
                status=booth.status,
                last_heartbeat=booth.last_heartbeat,
            )
            for booth, org_name in self._session.execute(stmt).all()
        ]


__all__ = ["PaymentRepository", "day_bounds"]
