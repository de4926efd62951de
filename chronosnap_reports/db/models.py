"""ORM models for the hosted tables read by the reports.

Only the columns the reports consume are mapped. The hosted schema owns the
tables; this package never creates or migrates them outside of tests.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: organizations
# ---------------------------


class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    slug: Mapped[str | None] = mapped_column(String, nullable=True)
    subscription_plan: Mapped[str] = mapped_column(String, nullable=False, default="basic")
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------
# Booths
# ---------------------------


class Booth(Base):
    __tablename__ = "booths"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    organization_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("organizations.id"), nullable=True
    )
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Updated by the booth app; drives online/offline status.
    last_heartbeat: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    organization: Mapped[Organization | None] = relationship()


# ---------------------------
# Core: payments
# ---------------------------


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    booth_id: Mapped[str | None] = mapped_column(String, ForeignKey("booths.id"), nullable=True)
    session_id: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    # Shared by every attempt against the same gateway invoice.
    xendit_invoice_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    xendit_invoice_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    booth: Mapped[Booth | None] = relationship()

    __table_args__ = (
        CheckConstraint(
            "status in ('PENDING','PAID','SETTLED','EXPIRED','FAILED')",
            name="ck_payments_status",
        ),
    )


__all__ = [
    "Base",
    "Booth",
    "Organization",
    "Payment",
]
