from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RentalOfferIn(BaseModel):
    bike_id: str
    daily_rate: int = Field(ge=0, description="Published per-day rate, minor units")
    weekly_rate: Optional[int] = Field(default=None, ge=0, description="Published 7-day rate, minor units")
    # Plain str so unknown tiers reach the pricing engine and fail as InvalidDurationTier
    duration_tier: str


class QuoteOut(BaseModel):
    base: int
    discount: int
    tax: int
    total: int


class BookingCreate(BaseModel):
    offer: RentalOfferIn
    pickup_ts: datetime
    pickup_type: str = "STATION"  # STATION | DOORSTEP
    pickup_location_id: Optional[int] = None
    delivery_address: Optional[str] = None


class BookingOut(BaseModel):
    id: int
    customer_id: str
    bike_id: str
    pickup_ts: datetime
    drop_ts: datetime
    duration_tier: str
    pickup_type: str
    pickup_location_id: Optional[int] = None
    delivery_address: Optional[str] = None

    base_amount: int
    discount_amount: int
    tax_amount: int
    total_amount: int
    currency: str

    status: str
    created_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_booking(cls, b):
        return cls(
            id=b.id,
            customer_id=b.customer_id,
            bike_id=b.bike_id,
            pickup_ts=b.pickup_ts,
            drop_ts=b.drop_ts,
            duration_tier=b.duration_tier.value,
            pickup_type=b.pickup_type.value,
            pickup_location_id=b.pickup_location_id,
            delivery_address=b.delivery_address,
            base_amount=b.base_amount,
            discount_amount=b.discount_amount,
            tax_amount=b.tax_amount,
            total_amount=b.total_amount,
            currency=b.currency,
            status=b.status.value,
            created_at=b.created_at,
        )
