# Overview: Service-layer operations for document numbering; per-period atomic counters.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import insert, select, update
from sqlalchemy.dialects import postgresql, sqlite

from ..extensions import db
from ..models import DocumentSequence
from ..time_utils import utcnow

TRANSACTION_DOCUMENT = "TXN"
INVOICE_DOCUMENT = "INV"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _ensure_sequence_row(document_type: str, period: str) -> None:
    """
    Create the (document_type, period) counter if it does not exist yet.

    Two first-of-the-day callers may race here; the losing INSERT is a no-op
    instead of an IntegrityError so the caller's transaction stays usable.
    """
    values = {
        "document_type": document_type,
        "period": period,
        "next_number": 1,
        "updated_at": utcnow(),
    }
    dialect = db.session.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite.insert(DocumentSequence).values(**values).on_conflict_do_nothing()
    elif dialect == "postgresql":
        stmt = postgresql.insert(DocumentSequence).values(**values).on_conflict_do_nothing()
    else:
        exists = db.session.execute(
            select(DocumentSequence.id).filter_by(document_type=document_type, period=period)
        ).first()
        if exists:
            return
        stmt = insert(DocumentSequence).values(**values)
    db.session.execute(stmt)


def next_sequence_value(document_type: str, period: str) -> int:
    """
    Atomically allocate the next number for (document_type, period).

    Runs inside the caller's transaction: if the caller rolls back, the
    number is released together with the document that would have used it.
    Numbers start at 1 for every new period.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    if not period:
        raise DocumentSequenceError("period is required")

    _ensure_sequence_row(document_type, period)

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.period == period,
        )
        .values(next_number=DocumentSequence.next_number + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise DocumentSequenceError(f"Could not allocate {document_type} number for {period}")

    current = db.session.execute(
        select(DocumentSequence.next_number).filter_by(document_type=document_type, period=period)
    ).scalar_one()
    return current - 1


def next_transaction_number(now: datetime | None = None) -> str:
    """TXN<YYYYMMDD><NNNN>; the counter restarts every UTC calendar day."""
    now = now or utcnow()
    period = now.strftime("%Y%m%d")
    number = next_sequence_value(TRANSACTION_DOCUMENT, period)
    return f"{TRANSACTION_DOCUMENT}{period}{number:04d}"


def next_invoice_number(now: datetime | None = None) -> str:
    """INV-<YYYYMM>-<NNNN>; the counter restarts every UTC calendar month."""
    now = now or utcnow()
    period = now.strftime("%Y%m")
    number = next_sequence_value(INVOICE_DOCUMENT, period)
    return f"{INVOICE_DOCUMENT}-{period}-{number:04d}"
