from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.dependencies import Principal, get_current_principal, require_user
from app.db.session import get_db
from app.models.enums import PaymentStatus
from app.schemas.payment import (
    CheckoutOptionsOut,
    CreateOrderIn,
    LedgerEntryOut,
    VerifyPaymentIn,
    VerifyPaymentOut,
)
from app.services import booking_service, ledger_reports
from app.services.payment_orders import checkout_options, open_order
from app.services.reconciler import CallbackPayload, PaymentReconciler
from app.utils.razorpay_client import get_gateway

router = APIRouter(prefix="/payments", tags=["Payments"])


# ---------------------------------------------------------------------
# CREATE ORDER
# ---------------------------------------------------------------------
@router.post("/create-order", response_model=CheckoutOptionsOut)
def create_order(
    data: CreateOrderIn,
    user: Principal = Depends(require_user),
    db: Session = Depends(get_db),
    gateway=Depends(get_gateway),
):
    booking = booking_service.get_booking(db, data.booking_id)
    if booking.customer_id != user.id:
        raise HTTPException(status_code=403, detail="Not your booking")

    order = open_order(db, booking.id, gateway, amount=data.amount, actor_id=user.id)
    prefill = data.prefill.model_dump() if data.prefill else None
    return checkout_options(order, booking, gateway, prefill)


# ---------------------------------------------------------------------
# VERIFY PAYMENT (checkout callback)
# ---------------------------------------------------------------------
@router.post("/verify", response_model=VerifyPaymentOut)
def verify_payment(data: VerifyPaymentIn, db: Session = Depends(get_db), gateway=Depends(get_gateway)):
    result = PaymentReconciler(db, gateway).reconcile(CallbackPayload(
        gateway_order_ref=data.razorpay_order_id,
        gateway_payment_ref=data.razorpay_payment_id,
        signature=data.razorpay_signature,
        outcome=data.status,
        amount=data.amount,
        payment_mode=data.payment_mode,
        error_code=data.error_code,
        error_description=data.error_description,
    ))

    entry = result.entry
    if result.stale:
        message = "Payment received. Our team will contact you about this booking."
    elif result.duplicate and entry.status == PaymentStatus.SUCCESS:
        message = "Payment already verified"
    elif result.confirmed:
        message = "Payment successful. Your booking has been confirmed."
    elif entry.status == PaymentStatus.PENDING:
        message = "Payment is being processed"
    else:
        message = "Payment failed. Please try again."

    return VerifyPaymentOut(
        message=message,
        booking_id=result.booking_id,
        booking_status=result.booking_status.value,
        payment_status=entry.status.value,
        txn_ref=entry.gateway_payment_ref,
        retry_allowed=entry.status == PaymentStatus.FAILED,
    )


# ---------------------------------------------------------------------
# PAYMENTS OF A BOOKING
# ---------------------------------------------------------------------
@router.get("/booking/{booking_id}", response_model=list[LedgerEntryOut])
def booking_payments(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    booking = booking_service.get_booking(db, booking_id)
    if not principal.is_admin and booking.customer_id != principal.id:
        raise HTTPException(status_code=403, detail="Not your booking")
    return [LedgerEntryOut.from_entry(e) for e in ledger_reports.entries_for_booking(db, booking_id)]
