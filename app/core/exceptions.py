"""Domain errors for the booking and payment core.

Services raise these; the HTTP layer turns them into responses in one place
(see ``app.main``). Each class carries the status code and the message a
customer may see, so internal class names never leak into responses.
"""


class BookingError(Exception):
    status_code = 400
    public_message = "Request could not be processed"
    # Whether str(exc) is safe to show to the caller
    expose_message = False

    def __init__(self, message: str | None = None, **context):
        super().__init__(message or self.public_message)
        self.context = context


class InvalidDurationTier(BookingError):
    public_message = "Unsupported rental duration"


class InvalidPickup(BookingError):
    public_message = "Pickup details are incomplete"
    expose_message = True


class BookingNotFound(BookingError):
    status_code = 404
    public_message = "Booking not found"


class AmountMismatch(BookingError):
    public_message = "Payment amount does not match the booking total"


class BookingNotPayable(BookingError):
    status_code = 409
    public_message = "This booking is not awaiting payment"


class UnknownOrder(BookingError):
    status_code = 404
    public_message = "Payment could not be verified"


class SignatureInvalid(BookingError):
    public_message = "Payment could not be verified"


class IllegalStateTransition(BookingError):
    status_code = 409
    public_message = "This action is not allowed for the booking's current status"


class StaleBookingState(BookingError):
    status_code = 409
    public_message = "Booking was updated by another request, please refresh"


class GatewayUnavailable(BookingError):
    status_code = 502
    public_message = "Payment gateway is unavailable, please try again"
