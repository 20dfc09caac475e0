"""
Test billing service.

Tests with mocked Stripe provider (no real API calls).
"""
import pytest
from unittest.mock import Mock, patch
from sqlalchemy import select

from routeready.core.database import get_db_session, payment_events
from routeready.core.errors import (
    AuthenticationRequiredError,
    BillingDisabledError,
    PaymentVerificationError,
    ValidationError,
)
from routeready.core.metrics import payments_verified_total
from routeready.features.billing.provider import BillingProviderError, CheckoutSessionInfo
from routeready.features.billing.service import start_checkout, verify_payment
from routeready.features.entitlements.store import SqlEntitlementStore
from routeready.models.identity import Identity

SESSION_ID = "cs_test_a1B2c3D4e5F6g7H8i9J0"


def _session(payment_status="paid", metadata=None):
    return CheckoutSessionInfo(
        session_id=SESSION_ID,
        payment_status=payment_status,
        metadata={"user_id": "user_alice", "user_email": "alice@example.com"} if metadata is None else metadata,
        customer_email="alice@example.com",
        amount_total=4999,
        currency="usd",
    )


@pytest.fixture
def mock_stripe_provider():
    """Mock Stripe provider for testing."""
    provider = Mock()
    provider.create_checkout_session.return_value = CheckoutSessionInfo(
        session_id=SESSION_ID,
        payment_status="unpaid",
        metadata={},
        url="https://checkout.stripe.com/c/pay/cs_test_123",
    )
    provider.retrieve_checkout_session.return_value = _session()
    return provider


@pytest.fixture
def alice():
    return Identity.authenticated("user_alice", "alice@example.com")


def test_start_checkout_builds_one_time_payment(mock_stripe_provider, alice):
    session = start_checkout(alice, "http://localhost:3000/", provider=mock_stripe_provider)

    assert session.url == "https://checkout.stripe.com/c/pay/cs_test_123"
    assert session.session_id == SESSION_ID
    request = mock_stripe_provider.create_checkout_session.call_args.args[0]
    assert request.amount_cents == 4999
    assert request.currency == "usd"
    assert request.product_name == "Route Ready Premium Access"
    assert request.success_url == "http://localhost:3000/payment-success?session_id={CHECKOUT_SESSION_ID}"
    assert request.cancel_url == "http://localhost:3000/planner"
    assert request.metadata["user_id"] == "user_alice"
    assert request.metadata["user_email"] == "alice@example.com"
    assert "timestamp" in request.metadata
    assert request.expires_at


def test_start_checkout_rejects_unknown_origin(mock_stripe_provider, alice):
    with pytest.raises(ValidationError, match="Invalid origin"):
        start_checkout(alice, "https://evil.example", provider=mock_stripe_provider)
    mock_stripe_provider.create_checkout_session.assert_not_called()


def test_start_checkout_requires_account(mock_stripe_provider):
    with pytest.raises(AuthenticationRequiredError):
        start_checkout(Identity.anonymous("anon-checkout"), "http://localhost:3000", provider=mock_stripe_provider)


def test_start_checkout_requires_email(mock_stripe_provider):
    with pytest.raises(ValidationError):
        start_checkout(Identity.authenticated("user_noemail"), "http://localhost:3000", provider=mock_stripe_provider)


def test_start_checkout_billing_disabled(alice):
    with patch("routeready.features.billing.service.get_provider", return_value=None):
        with pytest.raises(BillingDisabledError):
            start_checkout(alice, "http://localhost:3000")


def test_verify_paid_session_unlocks_account(mock_stripe_provider):
    store = SqlEntitlementStore()

    result = verify_payment(SESSION_ID, provider=mock_stripe_provider, store=store)

    assert result.paid is True
    assert result.payment_status == "paid"
    assert result.customer_email == "alice@example.com"
    assert store.get_entitlement(Identity.authenticated("user_alice")).has_paid is True
    assert payments_verified_total.value() == 1


def test_verify_is_idempotent(mock_stripe_provider):
    verify_payment(SESSION_ID, provider=mock_stripe_provider)
    verify_payment(SESSION_ID, provider=mock_stripe_provider)

    with get_db_session() as session:
        rows = session.execute(select(payment_events)).all()
    assert len(rows) == 1
    assert rows[0].amount_total == 4999
    assert payments_verified_total.value() == 1


def test_verify_unpaid_leaves_account_locked(mock_stripe_provider):
    mock_stripe_provider.retrieve_checkout_session.return_value = _session(payment_status="unpaid")
    store = SqlEntitlementStore()

    result = verify_payment(SESSION_ID, provider=mock_stripe_provider, store=store)

    assert result.paid is False
    assert store.get_entitlement(Identity.authenticated("user_alice")).has_paid is False


@pytest.mark.parametrize("session_id", [None, "", "pi_123", "cs_short", "cs_bad id with spaces"])
def test_verify_rejects_bad_session_ids(mock_stripe_provider, session_id):
    with pytest.raises(PaymentVerificationError):
        verify_payment(session_id, provider=mock_stripe_provider)
    mock_stripe_provider.retrieve_checkout_session.assert_not_called()


def test_verify_requires_metadata(mock_stripe_provider):
    mock_stripe_provider.retrieve_checkout_session.return_value = _session(metadata={"user_id": "user_alice"})
    with pytest.raises(PaymentVerificationError, match="metadata"):
        verify_payment(SESSION_ID, provider=mock_stripe_provider)


def test_verify_unknown_session_suggests_support(mock_stripe_provider):
    mock_stripe_provider.retrieve_checkout_session.side_effect = BillingProviderError("No such checkout.session")
    with pytest.raises(PaymentVerificationError, match="contact support"):
        verify_payment(SESSION_ID, provider=mock_stripe_provider)


def test_verify_rejects_other_accounts_session(mock_stripe_provider):
    with pytest.raises(PaymentVerificationError):
        verify_payment(
            SESSION_ID,
            provider=mock_stripe_provider,
            identity=Identity.authenticated("user_mallory", "m@example.com"),
        )


def test_verify_store_failure_keeps_has_paid_false(mock_stripe_provider):
    broken = Mock()
    broken.set_paid.side_effect = RuntimeError("db down")
    with pytest.raises(PaymentVerificationError, match="contact support"):
        verify_payment(SESSION_ID, provider=mock_stripe_provider, store=broken)
    assert SqlEntitlementStore().get_entitlement(Identity.authenticated("user_alice")).has_paid is False


def test_verify_writes_one_audit_entry(mock_stripe_provider):
    from routeready.features.admin.service import list_audit_log

    verify_payment(SESSION_ID, provider=mock_stripe_provider)
    verify_payment(SESSION_ID, provider=mock_stripe_provider)

    entries = list_audit_log()
    assert len(entries) == 1
    assert entries[0]["action"] == "payment_verified"
    assert entries[0]["admin_user_id"] == "system:checkout"
    assert entries[0]["target_user_id"] == "user_alice"
    assert entries[0]["details"] == {
        "session_id": SESSION_ID,
        "amount": 4999,
        "currency": "usd",
        "customer_email": "alice@example.com",
    }


def test_verify_survives_audit_write_failure(mock_stripe_provider):
    from sqlalchemy.exc import OperationalError

    with patch(
        "routeready.features.billing.service.log_admin_action",
        side_effect=OperationalError("INSERT", {}, Exception("locked")),
    ):
        result = verify_payment(SESSION_ID, provider=mock_stripe_provider)

    assert result.paid is True
    assert SqlEntitlementStore().get_entitlement(Identity.authenticated("user_alice")).has_paid is True
