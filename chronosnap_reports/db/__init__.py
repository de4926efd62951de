"""db: data-fetch layer over the hosted ChronoSnap database (SQLAlchemy).

Public exports
--------------
- ``Base`` and the ORM models in ``chronosnap_reports.db.models``
- Engine/session helpers in ``chronosnap_reports.db.client``
- ``PaymentRepository`` in ``chronosnap_reports.db.repository``
"""

from __future__ import annotations

from .client import get_engine, get_session_factory, session_scope
from .models import Base, Booth, Organization, Payment
from .repository import PaymentRepository

metadata = Base.metadata

__all__ = [
    "Base",
    "Booth",
    "Organization",
    "Payment",
    "PaymentRepository",
    "get_engine",
    "get_session_factory",
    "metadata",
    "session_scope",
]
