from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text

from app.db.session import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor = Column(String(64), index=True, nullable=False)  # customer id, admin id or "system"
    action = Column(String(80), index=True, nullable=False)  # e.g. booking.cancel, payment.stale_booking_state
    entity_type = Column(String(40), index=True, nullable=False)  # booking, payment_order, payment
    entity_id = Column(String(64), index=True, nullable=False)
    details_json = Column(Text, default="{}")
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
