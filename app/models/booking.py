from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Enum as SAEnum
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import BookingStatus, DurationTier, PickupType, enum_values


def _utcnow():
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    # Owned by the user / catalog services; referenced by id only
    customer_id = Column(String(64), index=True, nullable=False)
    bike_id = Column(String(64), index=True, nullable=False)

    pickup_ts = Column(DateTime(timezone=True), nullable=False)
    drop_ts = Column(DateTime(timezone=True), nullable=False)
    duration_tier = Column(SAEnum(DurationTier, name="durationtier", native_enum=False, values_callable=enum_values), nullable=False)

    pickup_type = Column(SAEnum(PickupType, name="pickuptype", native_enum=False, values_callable=enum_values), nullable=False)
    pickup_location_id = Column(Integer, nullable=True)
    delivery_address = Column(String(500), nullable=True)

    # Quote snapshot, minor units. Fixed at creation.
    base_amount = Column(Integer, nullable=False)
    discount_amount = Column(Integer, nullable=False, default=0)
    tax_amount = Column(Integer, nullable=False)
    total_amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")

    status = Column(
        SAEnum(BookingStatus, name="bookingstatus", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=BookingStatus.PENDING_PAYMENT,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    payment_orders = relationship("PaymentOrder", back_populates="booking", order_by="PaymentOrder.id")
    ledger_entries = relationship("PaymentLedgerEntry", back_populates="booking", order_by="PaymentLedgerEntry.id")
