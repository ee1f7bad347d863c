"""Booking status state machine.

Transitions are compare-and-set: the status is re-read and the UPDATE only
matches the row if it still holds the status the transition started from.
A lost race raises ``StaleBookingState`` and leaves the row alone.
"""
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.core.exceptions import IllegalStateTransition, StaleBookingState
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.enums import Actor, BookingStatus
from app.services.audit_service import log_audit
from app.services.payment_orders import expire_open_orders

logger = get_logger()

S = BookingStatus

# (from, to) -> actors allowed to take the edge
TRANSITIONS = {
    (S.PENDING_PAYMENT, S.CONFIRMED): {Actor.SYSTEM},
    (S.PENDING_PAYMENT, S.CANCELLED): {Actor.CUSTOMER, Actor.ADMIN},
    (S.CONFIRMED, S.ONGOING): {Actor.ADMIN},
    (S.CONFIRMED, S.CANCELLED): {Actor.CUSTOMER, Actor.ADMIN},
    (S.ONGOING, S.COMPLETED): {Actor.ADMIN},
}


def allowed_targets(current: BookingStatus, actor: Actor) -> list[BookingStatus]:
    return [to for (frm, to), actors in TRANSITIONS.items() if frm == current and actor in actors]


def assert_transition(current: BookingStatus, target: BookingStatus, actor: Actor) -> None:
    current, target, actor = BookingStatus(current), BookingStatus(target), Actor(actor)
    actors = TRANSITIONS.get((current, target))
    if actors is None:
        raise IllegalStateTransition(
            f"Invalid booking transition: {current.value} -> {target.value}",
            current=current, target=target,
        )
    if actor not in actors:
        raise IllegalStateTransition(
            f"{actor.value} may not move a booking {current.value} -> {target.value}",
            current=current, target=target, actor=actor,
        )


def transition(
    db: Session,
    booking: Booking,
    target: BookingStatus,
    actor: Actor,
    *,
    actor_id: str | None = None,
    expected: BookingStatus | None = None,
    reason: str | None = None,
) -> Booking:
    """Move ``booking`` to ``target`` inside the caller's unit of work.

    ``expected`` pins the status the caller's decision was based on; if the
    row has moved on since, ``StaleBookingState`` is raised instead of
    overwriting. The caller commits.
    """
    target = BookingStatus(target)
    current = db.query(Booking.status).filter(Booking.id == booking.id).scalar()

    if expected is not None and current != expected:
        raise StaleBookingState(
            f"Booking {booking.id} is {current.value}, expected {BookingStatus(expected).value}",
            booking_id=booking.id, current=current, expected=expected,
        )

    assert_transition(current, target, actor)

    updated = (
        db.query(Booking)
        .filter(Booking.id == booking.id, Booking.status == current)
        .update(
            {Booking.status: target, Booking.updated_at: datetime.now(timezone.utc)},
            synchronize_session="fetch",
        )
    )
    if updated != 1:
        raise StaleBookingState(
            f"Booking {booking.id} changed while moving {current.value} -> {target.value}",
            booking_id=booking.id, current=current, expected=current,
        )

    expired = []
    if target is BookingStatus.CANCELLED:
        expired = expire_open_orders(db, booking.id)

    log_audit(
        db,
        actor=actor_id or Actor(actor).value,
        action=f"booking.{target.value.lower()}",
        entity_type="booking",
        entity_id=booking.id,
        details={
            "from": current.value,
            "to": target.value,
            "actor_role": Actor(actor).value,
            "reason": reason,
            "expired_orders": expired,
        },
    )
    logger.bind(log_type="booking").info(
        f"Booking {booking.id} | {current.value} -> {target.value} | by={actor_id or Actor(actor).value}"
    )
    return booking
