from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.dependencies import Principal, get_current_principal, require_user
from app.core.logging_config import get_logger
from app.db.session import get_db
from app.schemas.booking import BookingCreate, BookingOut, QuoteOut, RentalOfferIn
from app.services import booking_service
from app.utils.pricing import RentalOffer

router = APIRouter(prefix="/bookings", tags=["Bookings"])
logger = get_logger()


def _offer(data: RentalOfferIn) -> RentalOffer:
    return RentalOffer(
        bike_id=data.bike_id,
        daily_rate=data.daily_rate,
        weekly_rate=data.weekly_rate,
        duration_tier=data.duration_tier,
    )


def _owned_booking(db: Session, booking_id: int, principal: Principal):
    booking = booking_service.get_booking(db, booking_id)
    if not principal.is_admin and booking.customer_id != principal.id:
        raise HTTPException(status_code=403, detail="Not your booking")
    return booking


# ---------------------------------------------------------------------
# QUOTE
# ---------------------------------------------------------------------
@router.post("/quote", response_model=QuoteOut)
def quote_booking(data: RentalOfferIn):
    q = booking_service.quote_offer(_offer(data))
    return QuoteOut(**q.as_dict())


# ---------------------------------------------------------------------
# CREATE BOOKING
# ---------------------------------------------------------------------
@router.post("/", response_model=BookingOut)
def create_booking(
    data: BookingCreate,
    user: Principal = Depends(require_user),
    db: Session = Depends(get_db),
):
    booking = booking_service.create_booking(
        db,
        customer_id=user.id,
        offer=_offer(data.offer),
        pickup_ts=data.pickup_ts,
        pickup_type=data.pickup_type,
        pickup_location_id=data.pickup_location_id,
        delivery_address=data.delivery_address,
    )
    return BookingOut.from_booking(booking)


# ---------------------------------------------------------------------
# USER: MY BOOKINGS
# ---------------------------------------------------------------------
@router.get("/my", response_model=list[BookingOut])
def my_bookings(user: Principal = Depends(require_user), db: Session = Depends(get_db)):
    return [BookingOut.from_booking(b) for b in booking_service.list_customer_bookings(db, user.id)]


@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return BookingOut.from_booking(_owned_booking(db, booking_id, principal))


# ---------------------------------------------------------------------
# CANCEL BOOKING (customer)
# ---------------------------------------------------------------------
@router.delete("/{booking_id}", response_model=BookingOut)
def cancel_booking(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    _owned_booking(db, booking_id, principal)
    booking = booking_service.cancel_booking(db, booking_id, principal.actor, principal.id)
    return BookingOut.from_booking(booking)
