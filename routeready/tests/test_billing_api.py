from unittest.mock import Mock, patch

from routeready.features.billing.provider import CheckoutSessionInfo

SESSION_ID = "cs_test_a1B2c3D4e5F6g7H8i9J0"


def _provider(payment_status="paid", user_id="user_buyer"):
    provider = Mock()
    provider.create_checkout_session.return_value = CheckoutSessionInfo(
        session_id=SESSION_ID, payment_status="unpaid", metadata={}, url="https://checkout.stripe.com/pay"
    )
    provider.retrieve_checkout_session.return_value = CheckoutSessionInfo(
        session_id=SESSION_ID,
        payment_status=payment_status,
        metadata={"user_id": user_id, "user_email": "buyer@example.com"},
        customer_email="buyer@example.com",
        amount_total=4999,
        currency="usd",
    )
    return provider


def test_checkout_requires_sign_in(client):
    resp = client.post("/api/billing/checkout", headers={"Origin": "http://localhost:3000"})
    assert resp.status_code == 401


def test_checkout_returns_url(client, auth_headers):
    with patch("routeready.features.billing.service.get_provider", return_value=_provider()):
        resp = client.post(
            "/api/billing/checkout",
            headers={**auth_headers("user_buyer", "buyer@example.com"), "Origin": "http://localhost:3000"},
        )
    assert resp.status_code == 200
    assert resp.json() == {"url": "https://checkout.stripe.com/pay", "session_id": SESSION_ID}


def test_checkout_bad_origin(client, auth_headers):
    with patch("routeready.features.billing.service.get_provider", return_value=_provider()):
        resp = client.post(
            "/api/billing/checkout",
            headers={**auth_headers("user_buyer", "buyer@example.com"), "Origin": "https://phish.example"},
        )
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Invalid origin"


def test_checkout_billing_disabled(client, auth_headers):
    with patch("routeready.features.billing.service.get_provider", return_value=None):
        resp = client.post(
            "/api/billing/checkout",
            headers={**auth_headers("user_buyer", "buyer@example.com"), "Origin": "http://localhost:3000"},
        )
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "billing_disabled"


def test_verify_then_unlimited_use(client, auth_headers):
    headers = auth_headers("user_buyer", "buyer@example.com")
    for _ in range(5):
        client.post("/api/trips/plan", json={"departure": "10001", "destination": "60601"}, headers=headers)
    blocked = client.post("/api/trips/plan", json={"departure": "10001", "destination": "60601"}, headers=headers)
    assert blocked.json()["decision"] == "requires_payment"

    with patch("routeready.features.billing.service.get_provider", return_value=_provider()):
        resp = client.post("/api/billing/verify", json={"session_id": SESSION_ID}, headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"paid": True, "payment_status": "paid", "customer_email": "buyer@example.com"}

    for _ in range(3):
        body = client.post(
            "/api/trips/plan", json={"departure": "10001", "destination": "60601"}, headers=headers
        ).json()
        assert body["decision"] == "allowed"
        assert body["usage"]["state"] == "authenticated_paid"
        assert body["usage"]["usage_count"] == 5


def test_verify_invalid_session_id(client):
    with patch("routeready.features.billing.service.get_provider", return_value=_provider()):
        resp = client.post("/api/billing/verify", json={"session_id": "bogus"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "payment_verification_failed"
