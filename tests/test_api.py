import hashlib
import hmac

import pytest

from app.core.config import RAZORPAY_KEY_SECRET


def _sign(order_ref, payment_ref, secret=RAZORPAY_KEY_SECRET):
    return hmac.new(secret.encode(), f"{order_ref}|{payment_ref}".encode(), hashlib.sha256).hexdigest()


def booking_payload(**overrides):
    payload = {
        "offer": {"bike_id": "bike-7", "daily_rate": 500, "duration_tier": "7-day"},
        "pickup_ts": "2026-11-02T09:00:00",
        "pickup_type": "STATION",
        "pickup_location_id": 3,
    }
    payload.update(overrides)
    return payload


def create_booking(client, token, **overrides):
    res = client.post("/bookings/", params={"token": token}, json=booking_payload(**overrides))
    assert res.status_code == 200, res.text
    return res.json()


def open_checkout(client, token, booking_id, **extra):
    return client.post("/payments/create-order", params={"token": token}, json={"booking_id": booking_id, **extra})


def verify(client, order_id, payment_id, status="success", signature=None, **extra):
    return client.post("/payments/verify", json={
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": signature or _sign(order_id, payment_id),
        "status": status,
        **extra,
    })


@pytest.fixture
def paid_booking(client, user_token):
    booking = create_booking(client, user_token)
    order_id = open_checkout(client, user_token, booking["id"]).json()["order_id"]
    assert verify(client, order_id, "pay_001").status_code == 200
    return booking


def test_root(client):
    res = client.get("/")
    assert res.status_code == 200
    assert res.json() == {"message": "Backend running successfully"}


# ---------------------------------------------------------------------
# QUOTE + BOOKING
# ---------------------------------------------------------------------
def test_quote_needs_no_login(client):
    res = client.post("/bookings/quote", json={"bike_id": "bike-7", "daily_rate": 500, "duration_tier": "7-day"})
    assert res.status_code == 200
    assert res.json() == {"base": 3500, "discount": 350, "tax": 567, "total": 3717}


def test_quote_rejects_unknown_tier_without_internal_names(client):
    res = client.post("/bookings/quote", json={"bike_id": "bike-7", "daily_rate": 500, "duration_tier": "2-day"})
    assert res.status_code == 400
    assert res.json() == {"detail": "Unsupported rental duration"}


def test_quote_rejects_negative_rates(client):
    res = client.post("/bookings/quote", json={"bike_id": "bike-7", "daily_rate": -5, "duration_tier": "1-day"})
    assert res.status_code == 422


def test_create_booking(client, user_token):
    booking = create_booking(client, user_token)

    assert booking["customer_id"] == "cust-1"
    assert booking["status"] == "PENDING_PAYMENT"
    assert booking["duration_tier"] == "7-day"
    assert booking["drop_ts"].startswith("2026-11-09T09:00")
    assert (booking["base_amount"], booking["discount_amount"], booking["tax_amount"], booking["total_amount"]) == (
        3500, 350, 567, 3717,
    )
    assert booking["currency"] == "INR"


def test_doorstep_booking_needs_an_address(client, user_token):
    res = client.post("/bookings/", params={"token": user_token}, json=booking_payload(
        pickup_type="DOORSTEP", pickup_location_id=None, delivery_address="   ",
    ))
    assert res.status_code == 400
    assert res.json() == {"detail": "Please enter your delivery address"}

    booking = create_booking(
        client, user_token, pickup_type="DOORSTEP", pickup_location_id=None, delivery_address=" 12 MG Road ",
    )
    assert booking["delivery_address"] == "12 MG Road"
    assert booking["pickup_location_id"] is None


def test_station_booking_needs_a_station(client, user_token):
    res = client.post("/bookings/", params={"token": user_token}, json=booking_payload(pickup_location_id=None))
    assert res.status_code == 400
    assert res.json() == {"detail": "Please select a pickup station"}


def test_booking_requires_a_customer_token(client, admin_token):
    assert client.post("/bookings/", json=booking_payload()).status_code == 422
    assert client.post("/bookings/", params={"token": "garbage"}, json=booking_payload()).status_code == 401
    assert client.post("/bookings/", params={"token": admin_token}, json=booking_payload()).status_code == 403


def test_customers_only_see_their_own_bookings(client, user_token, other_user_token, admin_token):
    booking = create_booking(client, user_token)
    create_booking(client, other_user_token)

    mine = client.get("/bookings/my", params={"token": user_token}).json()
    assert [b["id"] for b in mine] == [booking["id"]]

    assert client.get(f"/bookings/{booking['id']}", params={"token": other_user_token}).status_code == 403
    assert client.get(f"/bookings/{booking['id']}", params={"token": admin_token}).status_code == 200
    assert client.get("/bookings/999", params={"token": user_token}).status_code == 404


# ---------------------------------------------------------------------
# PAYMENTS
# ---------------------------------------------------------------------
def test_checkout_and_successful_payment(client, user_token):
    booking = create_booking(client, user_token)

    res = open_checkout(client, user_token, booking["id"], prefill={"name": "Asha", "contact": "9999999999"})
    assert res.status_code == 200
    options = res.json()
    assert options["amount"] == 3717
    assert options["currency"] == "INR"
    assert options["key"] == "rzp_test_key"
    assert options["booking_id"] == booking["id"]
    assert options["prefill"] == {"name": "Asha", "email": "", "contact": "9999999999"}

    res = verify(client, options["order_id"], "pay_001")
    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "Payment successful. Your booking has been confirmed."
    assert body["booking_status"] == "CONFIRMED"
    assert body["payment_status"] == "SUCCESS"
    assert body["txn_ref"] == "pay_001"
    assert body["retry_allowed"] is False

    again = verify(client, options["order_id"], "pay_001").json()
    assert again["message"] == "Payment already verified"

    ledger = client.get(f"/payments/booking/{booking['id']}", params={"token": user_token}).json()
    assert [(e["status"], e["amount"], e["txn_ref"]) for e in ledger] == [("SUCCESS", 3717, "pay_001")]


def test_checkout_amount_must_match_booking_total(client, user_token):
    booking = create_booking(client, user_token)
    res = open_checkout(client, user_token, booking["id"], amount=1)
    assert res.status_code == 400
    assert res.json() == {"detail": "Payment amount does not match the booking total"}


def test_checkout_for_someone_elses_booking(client, user_token, other_user_token):
    booking = create_booking(client, user_token)
    assert open_checkout(client, other_user_token, booking["id"]).status_code == 403
    assert client.get(f"/payments/booking/{booking['id']}", params={"token": other_user_token}).status_code == 403


def test_checkout_on_a_paid_booking_is_a_conflict(client, user_token, paid_booking):
    res = open_checkout(client, user_token, paid_booking["id"])
    assert res.status_code == 409
    assert res.json() == {"detail": "This booking is not awaiting payment"}


def test_forged_or_unknown_callbacks_are_rejected(client, user_token):
    booking = create_booking(client, user_token)
    order_id = open_checkout(client, user_token, booking["id"]).json()["order_id"]

    forged = verify(client, order_id, "pay_001", signature=_sign(order_id, "pay_001", secret="wrong"))
    assert forged.status_code == 400
    assert forged.json() == {"detail": "Payment could not be verified"}

    unknown = verify(client, "order_nope", "pay_001")
    assert unknown.status_code == 404

    ledger = client.get(f"/payments/booking/{booking['id']}", params={"token": user_token}).json()
    assert ledger == []


def test_failed_payment_can_be_retried(client, user_token):
    booking = create_booking(client, user_token)
    order_id = open_checkout(client, user_token, booking["id"]).json()["order_id"]

    body = verify(
        client, order_id, "pay_001", status="failed",
        error_code="BAD_REQUEST_ERROR", error_description="Card declined",
    ).json()
    assert body["message"] == "Payment failed. Please try again."
    assert body["payment_status"] == "FAILED"
    assert body["booking_status"] == "PENDING_PAYMENT"
    assert body["retry_allowed"] is True

    retry = open_checkout(client, user_token, booking["id"]).json()["order_id"]
    assert retry != order_id
    assert verify(client, retry, "pay_002").json()["booking_status"] == "CONFIRMED"


def test_unsigned_failure_is_checked_with_razorpay(client, user_token, gateway):
    booking = create_booking(client, user_token)
    order_id = open_checkout(client, user_token, booking["id"]).json()["order_id"]
    gateway.add_payment("pay_f1", order_id, "failed")

    res = client.post("/payments/verify", json={
        "razorpay_order_id": order_id,
        "razorpay_payment_id": "pay_f1",
        "status": "failed",
        "error_code": "BAD_REQUEST_ERROR",
        "error_description": "Payment failed",
    })
    assert res.status_code == 200
    assert res.json()["payment_status"] == "FAILED"
    assert res.json()["retry_allowed"] is True

    forged = client.post("/payments/verify", json={
        "razorpay_order_id": order_id,
        "razorpay_payment_id": "pay_f2",
        "status": "failed",
    })
    assert forged.status_code == 400

    ledger = client.get(f"/payments/booking/{booking['id']}", params={"token": user_token}).json()
    assert [(e["status"], e["txn_ref"]) for e in ledger] == [("FAILED", "pay_f1")]


def test_pending_payment(client, user_token):
    booking = create_booking(client, user_token)
    order_id = open_checkout(client, user_token, booking["id"]).json()["order_id"]

    body = verify(client, order_id, "pay_001", status="pending").json()
    assert body["message"] == "Payment is being processed"
    assert body["booking_status"] == "PENDING_PAYMENT"


def test_payment_after_cancel_is_flagged_for_admins(client, user_token, admin_token):
    booking = create_booking(client, user_token)
    order_id = open_checkout(client, user_token, booking["id"]).json()["order_id"]

    res = client.delete(f"/bookings/{booking['id']}", params={"token": user_token})
    assert res.json()["status"] == "CANCELLED"

    body = verify(client, order_id, "pay_001").json()
    assert body["message"] == "Payment received. Our team will contact you about this booking."
    assert body["booking_status"] == "CANCELLED"
    assert body["payment_status"] == "SUCCESS"

    audit = client.get(
        "/admin/audit", params={"token": admin_token, "action": "payment.stale_booking_state"},
    ).json()
    assert len(audit) == 1
    assert audit[0]["entity_id"] == str(booking["id"])
    assert audit[0]["details"]["gateway_payment_ref"] == "pay_001"


# ---------------------------------------------------------------------
# ADMIN
# ---------------------------------------------------------------------
def test_admin_routes_need_an_admin(client, user_token):
    assert client.get("/admin/bookings", params={"token": user_token}).status_code == 403
    assert client.get("/admin/payments/summary", params={"token": user_token}).status_code == 403


def test_admin_runs_a_rental_to_completion(client, admin_token, paid_booking):
    bid = paid_booking["id"]

    res = client.post(f"/admin/bookings/{bid}/pickup", params={"token": admin_token})
    assert res.status_code == 200
    assert res.json()["status"] == "ONGOING"

    res = client.post(f"/admin/bookings/{bid}/dropoff", params={"token": admin_token})
    assert res.json()["status"] == "COMPLETED"

    res = client.post(f"/admin/bookings/{bid}/cancel", params={"token": admin_token})
    assert res.status_code == 409
    assert res.json() == {"detail": "This action is not allowed for the booking's current status"}


def test_admin_cannot_confirm_without_payment(client, user_token, admin_token):
    booking = create_booking(client, user_token)

    res = client.put(f"/admin/bookings/{booking['id']}/status", params={"token": admin_token, "status": "CONFIRMED"})
    assert res.status_code == 409

    res = client.post(f"/admin/bookings/{booking['id']}/pickup", params={"token": admin_token})
    assert res.status_code == 409

    res = client.put(f"/admin/bookings/{booking['id']}/status", params={"token": admin_token, "status": "LOST"})
    assert res.status_code == 400


def test_admin_cancel_with_reason(client, user_token, admin_token):
    booking = create_booking(client, user_token)

    res = client.post(
        f"/admin/bookings/{booking['id']}/cancel", params={"token": admin_token, "reason": "bike under repair"},
    )
    assert res.json()["status"] == "CANCELLED"

    audit = client.get(
        "/admin/audit", params={"token": admin_token, "action": "booking.cancelled", "entity_id": booking["id"]},
    ).json()
    assert audit[0]["actor"] == "admin-1"
    assert audit[0]["details"]["reason"] == "bike under repair"


def test_admin_booking_and_payment_listings(client, user_token, admin_token, paid_booking):
    pending = create_booking(client, user_token)

    listed = client.get("/admin/bookings", params={"token": admin_token, "status": "PENDING_PAYMENT"}).json()
    assert [b["id"] for b in listed] == [pending["id"]]
    assert client.get("/admin/bookings", params={"token": admin_token, "status": "nope"}).status_code == 400

    payments = client.get("/admin/payments", params={"token": admin_token, "status": "SUCCESS"}).json()
    assert [p["booking_id"] for p in payments] == [paid_booking["id"]]

    summary = client.get("/admin/payments/summary", params={"token": admin_token}).json()
    assert summary == {"total": 1, "success": 1, "pending": 0, "failed": 0, "collected_amount": 3717}
