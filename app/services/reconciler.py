"""Payment reconciliation.

Applies a Razorpay checkout callback to its booking exactly once:

1. the order must be one we opened (``UnknownOrder`` otherwise),
2. the callback must be authentic (``SignatureInvalid`` otherwise). Success
   needs a valid signature. Razorpay does not sign failures, so an unsigned
   failed / pending outcome is accepted only if the Razorpay API reports
   that payment against this order with a matching status,
3. a booking that already has a SUCCESS ledger entry absorbs the callback,
   and a second, different capture is flagged for manual reconciliation,
4. success appends SUCCESS, consumes the order and confirms the booking,
   or reports ``STALE_BOOKING_STATE`` if the booking can no longer be
   confirmed,
5. failure / pending append a ledger row and leave the booking alone.

Steps 1 and 2 write nothing, so a forged callback leaves no trace in the
ledger.
"""
import json
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import PAYMENT_MODE
from app.core.exceptions import AmountMismatch, SignatureInvalid, StaleBookingState, UnknownOrder
from app.core.logging_config import get_logger, get_review_logger
from app.models.booking import Booking
from app.models.enums import Actor, BookingStatus, OrderStatus, PaymentOutcome, PaymentStatus
from app.models.payment_ledger import PaymentLedgerEntry
from app.models.payment_order import PaymentOrder
from app.services.audit_service import list_audit, log_audit
from app.services.booking_state import transition
from app.services.ledger_reports import invalidate_summary, success_entry
from app.services.payment_orders import expire_open_orders

logger = get_logger()

STALE_BOOKING_STATE = "STALE_BOOKING_STATE"
GATEWAY_ACTOR = "razorpay"

_LEDGER_STATUS = {
    PaymentOutcome.SUCCESS: PaymentStatus.SUCCESS,
    PaymentOutcome.PENDING: PaymentStatus.PENDING,
    PaymentOutcome.FAILED: PaymentStatus.FAILED,
}


@dataclass
class CallbackPayload:
    gateway_order_ref: str
    gateway_payment_ref: str
    signature: str
    outcome: str = PaymentOutcome.SUCCESS.value
    amount: Optional[int] = None
    payment_mode: str = PAYMENT_MODE
    error_code: Optional[str] = None
    error_description: Optional[str] = None


@dataclass
class ReconcileResult:
    entry: PaymentLedgerEntry
    booking_id: int
    booking_status: BookingStatus
    duplicate: bool = False
    condition: Optional[str] = None

    @property
    def stale(self) -> bool:
        return self.condition == STALE_BOOKING_STATE

    @property
    def confirmed(self) -> bool:
        return self.entry.status == PaymentStatus.SUCCESS and self.booking_status == BookingStatus.CONFIRMED


class PaymentReconciler:
    def __init__(self, db: Session, gateway):
        self.db = db
        self.gateway = gateway
        self.log = logger.bind(log_type="payment")

    def reconcile(self, payload: CallbackPayload) -> ReconcileResult:
        outcome = PaymentOutcome(payload.outcome)

        order = (
            self.db.query(PaymentOrder)
            .filter(PaymentOrder.gateway_order_ref == payload.gateway_order_ref)
            .first()
        )
        if not order:
            self.log.warning(f"Callback for unknown order {payload.gateway_order_ref!r} rejected")
            raise UnknownOrder(gateway_order_ref=payload.gateway_order_ref)

        if not self._authentic(payload, outcome):
            self.log.warning(
                f"Signature mismatch | Order={payload.gateway_order_ref} | Payment={payload.gateway_payment_ref} | "
                f"outcome={outcome.value}"
            )
            raise SignatureInvalid(gateway_order_ref=payload.gateway_order_ref)

        if payload.amount is not None and payload.amount != order.amount:
            self.log.warning(
                f"Callback amount {payload.amount} != order amount {order.amount} | Order={order.gateway_order_ref}"
            )
            raise AmountMismatch(
                f"Callback amount {payload.amount} does not match order amount {order.amount}",
                gateway_order_ref=order.gateway_order_ref,
            )

        booking = self.db.get(Booking, order.booking_id)

        existing = success_entry(self.db, booking.id)
        if existing:
            self.log.info(f"Duplicate callback absorbed | Booking={booking.id} | Payment={payload.gateway_payment_ref}")
            if outcome is PaymentOutcome.SUCCESS:
                self._flag_second_capture(existing, order, payload)
            return self._result(existing, booking, duplicate=True)

        status = _LEDGER_STATUS[outcome]
        repeat = self._same_attempt(order, payload.gateway_payment_ref, status)
        if repeat:
            return self._result(repeat, booking, duplicate=True)

        if outcome is PaymentOutcome.SUCCESS:
            return self._settle(order, booking, payload)
        return self._record_attempt(order, booking, payload, status)

    # -----------------------------------------------------------------
    def _settle(self, order: PaymentOrder, booking: Booking, payload: CallbackPayload) -> ReconcileResult:
        entry = self._entry(order, payload, PaymentStatus.SUCCESS)
        self.db.add(entry)
        order.status = OrderStatus.CONSUMED
        expire_open_orders(self.db, booking.id, keep=order.id)

        try:
            self.db.flush()
        except IntegrityError:
            # A concurrent callback recorded SUCCESS first
            self.db.rollback()
            existing = success_entry(self.db, booking.id)
            self.log.info(f"Concurrent duplicate callback absorbed | Booking={booking.id}")
            self._flag_second_capture(existing, order, payload)
            return self._result(existing, self.db.get(Booking, booking.id), duplicate=True)

        condition = None
        try:
            transition(
                self.db,
                booking,
                BookingStatus.CONFIRMED,
                Actor.SYSTEM,
                actor_id=GATEWAY_ACTOR,
                expected=BookingStatus.PENDING_PAYMENT,
                reason=f"payment {payload.gateway_payment_ref}",
            )
        except StaleBookingState as e:
            condition = STALE_BOOKING_STATE
            current = self.db.query(Booking.status).filter(Booking.id == booking.id).scalar()
            log_audit(
                self.db,
                actor=GATEWAY_ACTOR,
                action="payment.stale_booking_state",
                entity_type="booking",
                entity_id=booking.id,
                details={
                    "booking_status": current.value,
                    "gateway_order_ref": order.gateway_order_ref,
                    "gateway_payment_ref": payload.gateway_payment_ref,
                    "amount": order.amount,
                    "error": str(e),
                },
            )
            get_review_logger(booking_id=booking.id, gateway_payment_ref=payload.gateway_payment_ref).warning(
                f"MANUAL RECONCILIATION NEEDED | Booking={booking.id} is {current.value} "
                f"but payment {payload.gateway_payment_ref} captured {order.amount} {order.currency}"
            )

        self.db.commit()
        invalidate_summary()
        self.db.refresh(entry)
        self.db.refresh(booking)

        self.log.info(
            f"Payment SUCCESS | Booking={booking.id} | Order={order.gateway_order_ref} | "
            f"Payment={payload.gateway_payment_ref} | amount={entry.amount}"
            + (f" | {condition}" if condition else "")
        )
        return self._result(entry, booking, condition=condition)

    def _record_attempt(self, order, booking, payload, status: PaymentStatus) -> ReconcileResult:
        entry = self._entry(order, payload, status)
        self.db.add(entry)
        self.db.commit()
        invalidate_summary()
        self.db.refresh(entry)

        self.log.info(
            f"Payment {status.value} | Booking={booking.id} | Order={order.gateway_order_ref} | "
            f"Payment={payload.gateway_payment_ref}"
            + (f" | {payload.error_code}: {payload.error_description}" if payload.error_code else "")
        )
        return self._result(entry, booking)

    # -----------------------------------------------------------------
    def _authentic(self, payload: CallbackPayload, outcome: PaymentOutcome) -> bool:
        if payload.signature and self.gateway.verify_signature(
            payload.gateway_order_ref, payload.gateway_payment_ref, payload.signature
        ):
            return True
        # Razorpay signs only successful checkouts
        if outcome is PaymentOutcome.SUCCESS:
            return False
        confirmed = self.gateway.confirm_unsigned(
            payload.gateway_order_ref, payload.gateway_payment_ref, outcome.value
        )
        if confirmed:
            self.log.info(
                f"Unsigned {outcome.value} confirmed with Razorpay | Order={payload.gateway_order_ref} | "
                f"Payment={payload.gateway_payment_ref}"
            )
        return confirmed

    def _flag_second_capture(self, existing: PaymentLedgerEntry, order: PaymentOrder, payload: CallbackPayload):
        """A different payment was captured for an already paid booking. The ledger keeps one SUCCESS."""
        if existing.gateway_payment_ref == payload.gateway_payment_ref:
            return
        booking_id = existing.booking_id
        already_flagged = any(
            json.loads(a.details_json or "{}").get("gateway_payment_ref") == payload.gateway_payment_ref
            for a in list_audit(self.db, action="payment.duplicate_capture", entity_id=booking_id)
        )
        if already_flagged:
            return

        log_audit(
            self.db,
            actor=GATEWAY_ACTOR,
            action="payment.duplicate_capture",
            entity_type="booking",
            entity_id=booking_id,
            details={
                "gateway_order_ref": order.gateway_order_ref,
                "gateway_payment_ref": payload.gateway_payment_ref,
                "amount": order.amount,
                "settled_by": existing.gateway_payment_ref,
            },
        )
        self.db.commit()
        get_review_logger(booking_id=booking_id, gateway_payment_ref=payload.gateway_payment_ref).warning(
            f"MANUAL RECONCILIATION NEEDED | Booking={booking_id} already paid by {existing.gateway_payment_ref} "
            f"but payment {payload.gateway_payment_ref} on order {order.gateway_order_ref} "
            f"captured {order.amount} {order.currency}"
        )

    def _same_attempt(self, order, payment_ref, status) -> PaymentLedgerEntry | None:
        return (
            self.db.query(PaymentLedgerEntry)
            .filter(
                PaymentLedgerEntry.payment_order_id == order.id,
                PaymentLedgerEntry.gateway_payment_ref == payment_ref,
                PaymentLedgerEntry.status == status,
            )
            .first()
        )

    def _entry(self, order, payload, status) -> PaymentLedgerEntry:
        return PaymentLedgerEntry(
            payment_order_id=order.id,
            booking_id=order.booking_id,
            amount=order.amount,
            payment_mode=payload.payment_mode or PAYMENT_MODE,
            gateway_payment_ref=payload.gateway_payment_ref,
            status=status,
            error_code=payload.error_code,
            error_description=payload.error_description,
        )

    @staticmethod
    def _result(entry, booking, duplicate=False, condition=None) -> ReconcileResult:
        return ReconcileResult(
            entry=entry,
            booking_id=booking.id,
            booking_status=BookingStatus(booking.status),
            duplicate=duplicate,
            condition=condition,
        )
