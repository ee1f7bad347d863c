import razorpay
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError
from requests.exceptions import RequestException

from app.core.config import RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET
from app.core.exceptions import GatewayUnavailable

# Razorpay payment statuses that back an unsigned checkout outcome
UNSIGNED_OUTCOME_STATUSES = {
    "failed": {"failed"},
    "pending": {"created", "authorized"},
}


class RazorpayGateway:
    """Thin wrapper over the Razorpay SDK.

    Creates orders for a fixed amount and checks the signature Razorpay
    attaches to a successful checkout (HMAC-SHA256 of ``order_id|payment_id``
    with the key secret). Checkout failures come back unsigned, so those are
    confirmed by fetching the payment from the Razorpay API instead.
    """

    def __init__(self, key_id: str, key_secret: str):
        self.client = razorpay.Client(auth=(key_id, key_secret))

    @property
    def key_id(self) -> str:
        return self.client.auth[0]

    def create_order(self, amount: int, currency: str, receipt: str) -> str:
        try:
            order = self.client.order.create({
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
            })
        except (BadRequestError, GatewayError, ServerError, RequestException) as e:
            raise GatewayUnavailable(f"Razorpay order creation failed: {e}", receipt=receipt)
        return order["id"]

    def verify_signature(self, order_ref: str, payment_ref: str, signature: str) -> bool:
        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": order_ref,
                "razorpay_payment_id": payment_ref,
                "razorpay_signature": signature,
            })
        except SignatureVerificationError:
            return False
        return True

    def fetch_payment(self, payment_ref: str) -> dict | None:
        """Payment as Razorpay reports it, or None if Razorpay does not know the id."""
        try:
            return self.client.payment.fetch(payment_ref)
        except BadRequestError:
            return None
        except (GatewayError, ServerError, RequestException) as e:
            raise GatewayUnavailable(f"Razorpay payment lookup failed: {e}", payment_ref=payment_ref)

    def confirm_unsigned(self, order_ref: str, payment_ref: str, outcome: str) -> bool:
        accepted = UNSIGNED_OUTCOME_STATUSES.get(outcome)
        if not accepted or not payment_ref:
            return False
        payment = self.fetch_payment(payment_ref)
        if not payment:
            return False
        return payment.get("order_id") == order_ref and payment.get("status") in accepted


razorpay_gateway = RazorpayGateway(RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET)


def get_gateway() -> RazorpayGateway:
    return razorpay_gateway
