from enum import Enum


class BookingStatus(str, Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


class DurationTier(str, Enum):
    ONE_DAY = "1-day"
    SEVEN_DAY = "7-day"

    @property
    def days(self) -> int:
        return 7 if self is DurationTier.SEVEN_DAY else 1


class PickupType(str, Enum):
    STATION = "STATION"
    DOORSTEP = "DOORSTEP"


class OrderStatus(str, Enum):
    OPENED = "opened"
    CONSUMED = "consumed"
    EXPIRED = "expired"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class PaymentOutcome(str, Enum):
    # What the checkout callback reports; maps onto a ledger PaymentStatus
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"


class Actor(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"


def enum_values(enum_cls):
    """Persist enum values ("opened") rather than member names ("OPENED")."""
    return [member.value for member in enum_cls]
