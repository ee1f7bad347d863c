from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.core.config import CURRENCY, GST_PERCENT, WEEKLY_DISCOUNT_PERCENT
from app.core.exceptions import BookingNotFound, InvalidPickup
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.enums import Actor, BookingStatus, PickupType
from app.services.audit_service import log_audit
from app.services.booking_state import transition
from app.utils.pricing import RentalOffer, Quote, parse_tier, quote

logger = get_logger()


def quote_offer(offer: RentalOffer) -> Quote:
    return quote(offer, weekly_discount_percent=WEEKLY_DISCOUNT_PERCENT, tax_percent=GST_PERCENT)


def _validate_pickup(pickup_type, pickup_location_id, delivery_address):
    try:
        pickup_type = PickupType(pickup_type)
    except ValueError:
        raise InvalidPickup(f"Unknown pickup type: {pickup_type!r}")

    if pickup_type is PickupType.STATION:
        if pickup_location_id is None:
            raise InvalidPickup("Please select a pickup station")
        return pickup_type, pickup_location_id, None

    if not (delivery_address or "").strip():
        raise InvalidPickup("Please enter your delivery address")
    return pickup_type, None, delivery_address.strip()


def create_booking(
    db: Session,
    customer_id: str,
    offer: RentalOffer,
    pickup_ts: datetime,
    pickup_type,
    pickup_location_id: int | None = None,
    delivery_address: str | None = None,
) -> Booking:
    # Everything is validated and priced before anything is written
    tier = parse_tier(offer.duration_tier)
    pickup_type, pickup_location_id, delivery_address = _validate_pickup(
        pickup_type, pickup_location_id, delivery_address
    )
    q = quote_offer(offer)

    booking = Booking(
        customer_id=str(customer_id),
        bike_id=str(offer.bike_id),
        pickup_ts=pickup_ts,
        drop_ts=pickup_ts + timedelta(days=tier.days),
        duration_tier=tier,
        pickup_type=pickup_type,
        pickup_location_id=pickup_location_id,
        delivery_address=delivery_address,
        base_amount=q.base,
        discount_amount=q.discount,
        tax_amount=q.tax,
        total_amount=q.total,
        currency=CURRENCY,
        status=BookingStatus.PENDING_PAYMENT,
    )
    db.add(booking)
    db.flush()
    log_audit(db, customer_id, "booking.created", "booking", booking.id, {"quote": q.as_dict(), "tier": tier.value})
    db.commit()
    db.refresh(booking)

    logger.bind(log_type="booking").info(
        f"Booking Created | Customer={booking.customer_id} | Bike={booking.bike_id} | "
        f"Tier={tier.value} | Total={booking.total_amount} {booking.currency}"
    )
    return booking


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = db.get(Booking, booking_id)
    if not booking:
        raise BookingNotFound(booking_id=booking_id)
    return booking


def list_bookings(db: Session, status: BookingStatus | None = None) -> list[Booking]:
    q = db.query(Booking)
    if status is not None:
        q = q.filter(Booking.status == status)
    return q.order_by(Booking.created_at.desc(), Booking.id.desc()).all()


def list_customer_bookings(db: Session, customer_id: str) -> list[Booking]:
    return (
        db.query(Booking)
        .filter(Booking.customer_id == str(customer_id))
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .all()
    )


# ---------------------------------------------------------------------
# STATUS COMMANDS
# ---------------------------------------------------------------------
def change_status(
    db: Session,
    booking_id: int,
    target: BookingStatus,
    actor: Actor,
    actor_id: str | None = None,
    reason: str | None = None,
) -> Booking:
    booking = get_booking(db, booking_id)
    try:
        transition(db, booking, target, actor, actor_id=actor_id, reason=reason)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)
    return booking


def cancel_booking(db: Session, booking_id: int, actor: Actor, actor_id: str | None = None, reason: str | None = None) -> Booking:
    return change_status(db, booking_id, BookingStatus.CANCELLED, actor, actor_id, reason)


def confirm_pickup(db: Session, booking_id: int, admin_id: str) -> Booking:
    return change_status(db, booking_id, BookingStatus.ONGOING, Actor.ADMIN, admin_id)


def confirm_dropoff(db: Session, booking_id: int, admin_id: str) -> Booking:
    return change_status(db, booking_id, BookingStatus.COMPLETED, Actor.ADMIN, admin_id)
