from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import CHECKOUT_NAME
from app.core.exceptions import AmountMismatch, BookingNotFound, BookingNotPayable, StaleBookingState
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.enums import BookingStatus, OrderStatus
from app.models.payment_order import PaymentOrder
from app.services.audit_service import log_audit

logger = get_logger()


def expire_open_orders(db: Session, booking_id: int, keep: int | None = None) -> list[int]:
    """Expire every ``opened`` order of a booking except ``keep``. Returns the expired ids."""
    q = db.query(PaymentOrder).filter(
        PaymentOrder.booking_id == booking_id,
        PaymentOrder.status == OrderStatus.OPENED,
    )
    if keep is not None:
        q = q.filter(PaymentOrder.id != keep)

    orders = q.all()
    for order in orders:
        order.status = OrderStatus.EXPIRED
    return [o.id for o in orders]


def open_order(db: Session, booking_id: int, gateway, amount: int | None = None, actor_id: str | None = None) -> PaymentOrder:
    """Open a gateway order for the booking's persisted total.

    A previously opened order for the same booking is superseded (expired)
    in the same commit, so at most one order is ever open per booking.
    """
    booking = db.get(Booking, booking_id)
    if not booking:
        raise BookingNotFound(booking_id=booking_id)

    if amount is not None and amount != booking.total_amount:
        logger.bind(log_type="payment").warning(
            f"Order rejected | Booking={booking.id} | amount={amount} != total={booking.total_amount}"
        )
        raise AmountMismatch(
            f"Amount {amount} does not match booking total {booking.total_amount}",
            booking_id=booking.id, amount=amount, expected=booking.total_amount,
        )

    if booking.status != BookingStatus.PENDING_PAYMENT:
        raise BookingNotPayable(
            f"Booking {booking.id} is {booking.status.value}",
            booking_id=booking.id, status=booking.status,
        )

    attempt = db.query(PaymentOrder).filter(PaymentOrder.booking_id == booking.id).count() + 1
    receipt = f"booking_{booking.id}_{attempt}"

    # Gateway first: if it fails nothing local has changed
    gateway_order_ref = gateway.create_order(booking.total_amount, booking.currency, receipt)

    superseded = expire_open_orders(db, booking.id)
    db.flush()

    order = PaymentOrder(
        booking_id=booking.id,
        amount=booking.total_amount,
        currency=booking.currency,
        gateway_order_ref=gateway_order_ref,
        receipt=receipt,
        status=OrderStatus.OPENED,
    )
    db.add(order)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        # The Razorpay order exists but will never be paid through us
        logger.bind(log_type="payment").warning(
            f"Orphaned gateway order | Booking={booking_id} | Order={gateway_order_ref} | receipt={receipt} | "
            f"another checkout was opened concurrently"
        )
        raise StaleBookingState(
            f"Another checkout was opened concurrently for booking {booking_id}",
            booking_id=booking_id, orphaned_order_ref=gateway_order_ref,
        )

    log_audit(
        db,
        actor=actor_id or booking.customer_id,
        action="payment_order.opened",
        entity_type="payment_order",
        entity_id=order.id,
        details={"booking_id": booking.id, "gateway_order_ref": gateway_order_ref, "superseded": superseded},
    )
    db.commit()
    db.refresh(order)

    logger.bind(log_type="payment").info(
        f"Order opened | Booking={booking.id} | Order={gateway_order_ref} | amount={order.amount} {order.currency}"
        + (f" | superseded={superseded}" if superseded else "")
    )
    return order


def checkout_options(order: PaymentOrder, booking: Booking, gateway, prefill: dict | None = None) -> dict:
    """Options the client hands to Razorpay Checkout. Prefill is passed in, never looked up."""
    prefill = prefill or {}
    return {
        "key": gateway.key_id,
        "amount": order.amount,
        "currency": order.currency,
        "name": CHECKOUT_NAME,
        "description": f"Booking for bike {booking.bike_id}",
        "order_id": order.gateway_order_ref,
        "booking_id": booking.id,
        "prefill": {
            "name": prefill.get("name") or "",
            "email": prefill.get("email") or "",
            "contact": prefill.get("contact") or "",
        },
    }


def list_orders(db: Session, booking_id: int) -> list[PaymentOrder]:
    return (
        db.query(PaymentOrder)
        .filter(PaymentOrder.booking_id == booking_id)
        .order_by(PaymentOrder.id.asc())
        .all()
    )
