from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, Enum as SAEnum, text
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import PaymentStatus, enum_values


class PaymentLedgerEntry(Base):
    """One payment attempt outcome. Rows are only ever inserted."""

    __tablename__ = "payment_ledger"

    id = Column(Integer, primary_key=True, index=True)
    payment_order_id = Column(Integer, ForeignKey("payment_orders.id"), index=True, nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), index=True, nullable=False)

    amount = Column(Integer, nullable=False)
    payment_mode = Column(String(32), nullable=False, default="RAZORPAY")
    gateway_payment_ref = Column(String(64), index=True, nullable=True)  # razorpay payment_id (txn ref)

    status = Column(SAEnum(PaymentStatus, name="paymentstatus", native_enum=False, values_callable=enum_values), nullable=False)
    error_code = Column(String(64), nullable=True)
    error_description = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    booking = relationship("Booking", back_populates="ledger_entries")
    payment_order = relationship("PaymentOrder", back_populates="ledger_entries")

    __table_args__ = (
        # At most one SUCCESS per booking, even under concurrent callbacks
        Index(
            "uq_payment_ledger_one_success",
            "booking_id",
            unique=True,
            sqlite_where=text("status = 'SUCCESS'"),
            postgresql_where=text("status = 'SUCCESS'"),
        ),
    )
