import json
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


class Prefill(BaseModel):
    name: str = ""
    email: str = ""
    contact: str = ""


class CreateOrderIn(BaseModel):
    booking_id: int
    amount: Optional[int] = None  # if sent, must equal the booking total
    prefill: Optional[Prefill] = None


class CheckoutOptionsOut(BaseModel):
    key: str
    amount: int
    currency: str
    name: str
    description: str
    order_id: str
    booking_id: int
    prefill: Prefill


class VerifyPaymentIn(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str = ""  # Razorpay leaves failed checkouts unsigned
    status: Literal["success", "pending", "failed"] = "success"
    amount: Optional[int] = None
    payment_mode: str = "RAZORPAY"
    error_code: Optional[str] = None
    error_description: Optional[str] = None


class LedgerEntryOut(BaseModel):
    id: int
    payment_order_id: int
    booking_id: int
    amount: int
    payment_mode: str
    txn_ref: Optional[str] = None
    status: str
    error_code: Optional[str] = None
    error_description: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entry(cls, e):
        return cls(
            id=e.id,
            payment_order_id=e.payment_order_id,
            booking_id=e.booking_id,
            amount=e.amount,
            payment_mode=e.payment_mode,
            txn_ref=e.gateway_payment_ref,
            status=e.status.value,
            error_code=e.error_code,
            error_description=e.error_description,
            created_at=e.created_at,
        )


class VerifyPaymentOut(BaseModel):
    message: str
    booking_id: int
    booking_status: str
    payment_status: str
    txn_ref: Optional[str] = None
    retry_allowed: bool = False


class PaymentSummaryOut(BaseModel):
    total: int
    success: int
    pending: int
    failed: int
    collected_amount: int


class AuditEntryOut(BaseModel):
    id: int
    actor: str
    action: str
    entity_type: str
    entity_id: str
    details: dict
    created_at: datetime

    @classmethod
    def from_log(cls, a):
        return cls(
            id=a.id,
            actor=a.actor,
            action=a.action,
            entity_type=a.entity_type,
            entity_id=a.entity_id,
            details=json.loads(a.details_json or "{}"),
            created_at=a.created_at,
        )
