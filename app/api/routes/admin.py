from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.dependencies import Principal, require_admin
from app.core.logging_config import get_logger
from app.db.session import get_db
from app.models.enums import Actor, BookingStatus, PaymentStatus
from app.schemas.booking import BookingOut
from app.schemas.payment import AuditEntryOut, LedgerEntryOut, PaymentSummaryOut
from app.services import booking_service, ledger_reports
from app.services.audit_service import list_audit

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = get_logger()


def _parse(enum_cls, value, field):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {field}: {value}")


# =====================================================================
# BOOKINGS
# =====================================================================
@router.get("/bookings", response_model=list[BookingOut])
def all_bookings(
    status: Optional[str] = None,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    bookings = booking_service.list_bookings(db, _parse(BookingStatus, status, "status"))
    return [BookingOut.from_booking(b) for b in bookings]


@router.post("/bookings/{booking_id}/pickup", response_model=BookingOut)
def confirm_pickup(booking_id: int, admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    booking = booking_service.confirm_pickup(db, booking_id, admin.id)
    logger.bind(log_type="admin").info(f"Admin {admin.id} confirmed pickup for booking {booking_id}")
    return BookingOut.from_booking(booking)


@router.post("/bookings/{booking_id}/dropoff", response_model=BookingOut)
def confirm_dropoff(booking_id: int, admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    booking = booking_service.confirm_dropoff(db, booking_id, admin.id)
    logger.bind(log_type="admin").info(f"Admin {admin.id} confirmed drop-off for booking {booking_id}")
    return BookingOut.from_booking(booking)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(
    booking_id: int,
    reason: Optional[str] = None,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    booking = booking_service.cancel_booking(db, booking_id, Actor.ADMIN, admin.id, reason)
    logger.bind(log_type="admin").info(f"Admin {admin.id} cancelled booking {booking_id}")
    return BookingOut.from_booking(booking)


@router.put("/bookings/{booking_id}/status", response_model=BookingOut)
def update_booking_status(
    booking_id: int,
    status: str,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    target = _parse(BookingStatus, status, "status")
    booking = booking_service.change_status(db, booking_id, target, Actor.ADMIN, admin.id)
    logger.bind(log_type="admin").info(f"Admin {admin.id} set booking {booking_id} -> {target.value}")
    return BookingOut.from_booking(booking)


# =====================================================================
# PAYMENTS
# =====================================================================
@router.get("/payments", response_model=list[LedgerEntryOut])
def all_payments(
    status: Optional[str] = None,
    payment_mode: Optional[str] = None,
    booking_id: Optional[int] = None,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    entries = ledger_reports.list_entries(
        db,
        status=_parse(PaymentStatus, status, "payment status"),
        payment_mode=payment_mode,
        booking_id=booking_id,
    )
    return [LedgerEntryOut.from_entry(e) for e in entries]


@router.get("/payments/summary", response_model=PaymentSummaryOut)
def payments_summary(admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    result = ledger_reports.summary(db)
    logger.bind(log_type="admin").info(f"Admin {admin.id} checked payments summary -> {result['collected_amount']}")
    return result


# =====================================================================
# AUDIT (includes payments needing manual reconciliation)
# =====================================================================
@router.get("/audit", response_model=list[AuditEntryOut])
def audit_trail(
    action: Optional[str] = None,
    entity_id: Optional[str] = None,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [AuditEntryOut.from_log(a) for a in list_audit(db, action=action, entity_id=entity_id)]
