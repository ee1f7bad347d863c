from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.redis import delete_cache, get_cache, set_cache
from app.models.enums import PaymentStatus
from app.models.payment_ledger import PaymentLedgerEntry

SUMMARY_CACHE_KEY = "payments:summary"


def list_entries(
    db: Session,
    status: PaymentStatus | None = None,
    payment_mode: str | None = None,
    booking_id: int | None = None,
) -> list[PaymentLedgerEntry]:
    q = db.query(PaymentLedgerEntry)
    if status is not None:
        q = q.filter(PaymentLedgerEntry.status == status)
    if payment_mode:
        q = q.filter(PaymentLedgerEntry.payment_mode == payment_mode)
    if booking_id is not None:
        q = q.filter(PaymentLedgerEntry.booking_id == booking_id)
    return q.order_by(PaymentLedgerEntry.id.desc()).all()


def entries_for_booking(db: Session, booking_id: int) -> list[PaymentLedgerEntry]:
    return (
        db.query(PaymentLedgerEntry)
        .filter(PaymentLedgerEntry.booking_id == booking_id)
        .order_by(PaymentLedgerEntry.id.asc())
        .all()
    )


def success_entry(db: Session, booking_id: int) -> PaymentLedgerEntry | None:
    return (
        db.query(PaymentLedgerEntry)
        .filter(
            PaymentLedgerEntry.booking_id == booking_id,
            PaymentLedgerEntry.status == PaymentStatus.SUCCESS,
        )
        .first()
    )


def summary(db: Session) -> dict:
    cached = get_cache(SUMMARY_CACHE_KEY)
    if cached is not None:
        return cached

    rows = (
        db.query(
            PaymentLedgerEntry.status,
            func.count(PaymentLedgerEntry.id),
            func.coalesce(func.sum(PaymentLedgerEntry.amount), 0),
        )
        .group_by(PaymentLedgerEntry.status)
        .all()
    )
    counts = {s.value: 0 for s in PaymentStatus}
    collected = 0
    for status, count, amount in rows:
        counts[PaymentStatus(status).value] = count
        if status == PaymentStatus.SUCCESS:
            collected = int(amount)

    result = {
        "total": sum(counts.values()),
        "success": counts[PaymentStatus.SUCCESS.value],
        "pending": counts[PaymentStatus.PENDING.value],
        "failed": counts[PaymentStatus.FAILED.value],
        "collected_amount": collected,
    }
    set_cache(SUMMARY_CACHE_KEY, result)
    return result


def invalidate_summary():
    delete_cache(SUMMARY_CACHE_KEY)
