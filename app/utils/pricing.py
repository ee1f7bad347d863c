"""Rental pricing.

All amounts are integers in minor units. Percentages are applied with
Decimal and rounded half-up to a whole unit, so the same offer always
produces the same quote.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from app.core.exceptions import InvalidDurationTier
from app.models.enums import DurationTier


@dataclass(frozen=True)
class RentalOffer:
    bike_id: str
    daily_rate: int
    duration_tier: str
    weekly_rate: Optional[int] = None


@dataclass(frozen=True)
class Quote:
    base: int
    discount: int
    tax: int
    total: int

    def as_dict(self):
        return {"base": self.base, "discount": self.discount, "tax": self.tax, "total": self.total}


def parse_tier(value) -> DurationTier:
    if isinstance(value, DurationTier):
        return value
    try:
        return DurationTier(value)
    except ValueError:
        raise InvalidDurationTier(f"Unknown duration tier: {value!r}", tier=value)


def percent_of(amount: int, percent: int) -> int:
    """`percent`% of `amount`, rounded half-up to a whole unit."""
    value = Decimal(amount) * Decimal(percent) / Decimal(100)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _check_rate(name, value):
    if value is None or isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer amount in minor units")
    if value < 0:
        raise ValueError(f"{name} cannot be negative")


def quote(offer: RentalOffer, *, weekly_discount_percent: int = 10, tax_percent: int = 18) -> Quote:
    tier = parse_tier(offer.duration_tier)
    _check_rate("daily_rate", offer.daily_rate)

    if tier is DurationTier.ONE_DAY:
        base = offer.daily_rate
        discount = 0
    else:
        # Fallback happens before the discount so it is applied exactly once
        if offer.weekly_rate:
            _check_rate("weekly_rate", offer.weekly_rate)
            base = offer.weekly_rate
        else:
            base = offer.daily_rate * 7
        discount = percent_of(base, weekly_discount_percent)

    tax = percent_of(base - discount, tax_percent)
    return Quote(base=base, discount=discount, tax=tax, total=base - discount + tax)
