from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, Enum as SAEnum, text
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import OrderStatus, enum_values


class PaymentOrder(Base):
    __tablename__ = "payment_orders"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), index=True, nullable=False)

    amount = Column(Integer, nullable=False)  # minor units, equals booking.total_amount
    currency = Column(String(3), nullable=False, default="INR")

    gateway_order_ref = Column(String(64), unique=True, index=True, nullable=False)  # razorpay order_id
    receipt = Column(String(64), nullable=False)

    status = Column(
        SAEnum(OrderStatus, name="orderstatus", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=OrderStatus.OPENED,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    booking = relationship("Booking", back_populates="payment_orders")
    ledger_entries = relationship("PaymentLedgerEntry", back_populates="payment_order")

    __table_args__ = (
        # Exactly one open order per booking
        Index(
            "uq_payment_orders_one_open",
            "booking_id",
            unique=True,
            sqlite_where=text("status = 'opened'"),
            postgresql_where=text("status = 'opened'"),
        ),
    )
