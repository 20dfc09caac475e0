"""
Billing service orchestrator.

Business logic for the one-time premium unlock:
- Hosted checkout creation (authenticated accounts, allow-listed origins)
- Server-side verification that flips has_paid
- Idempotent payment audit trail

All Stripe-specific code is in stripe_provider.py.
"""
import os
import re
import time
import logging
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from routeready.core.config import settings
from routeready.core.database import get_db_session, payment_events
from routeready.core.errors import (
    AppError,
    AuthenticationRequiredError,
    BillingDisabledError,
    PaymentVerificationError,
    ValidationError,
)
from routeready.core.logging import log_event
from routeready.core.metrics import payments_verified_total
from routeready.features.admin.service import ACTION_PAYMENT_VERIFIED, log_admin_action
from routeready.features.billing.provider import (
    BillingProviderError,
    CheckoutRequest,
    PaymentProvider,
)
from routeready.features.billing.stripe_provider import StripeProvider
from routeready.features.entitlements.store import EntitlementStore, SqlEntitlementStore
from routeready.models.identity import Identity
from routeready.models.payment import CheckoutSession, PaymentVerification

logger = logging.getLogger(__name__)

SESSION_ID_RE = re.compile(r"^cs_[a-zA-Z0-9_]{10,}$")
USER_ID_RE = re.compile(r"^[A-Za-z0-9_\-|:.]{1,100}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SUPPORT_HINT = "Please contact support if you were charged."


def payments_enabled() -> bool:
    """Check if payments are enabled (Stripe configured)."""
    return bool(settings.STRIPE_SECRET_KEY or os.getenv("STRIPE_SECRET_KEY"))


def get_provider() -> Optional[PaymentProvider]:
    """Get payment provider if payments are enabled."""
    if not payments_enabled():
        return None
    try:
        return StripeProvider(settings.STRIPE_SECRET_KEY, timeout_seconds=settings.STRIPE_TIMEOUT_SECONDS)
    except BillingProviderError as e:
        logger.warning("[billing] provider unavailable: %s", e)
        return None


def _validate_origin(origin: Optional[str]) -> str:
    normalized = (origin or "").strip().rstrip("/")
    if not normalized or normalized not in settings.checkout_origins():
        raise ValidationError("Invalid origin")
    return normalized


def start_checkout(
    identity: Identity,
    origin: Optional[str],
    *,
    provider: Optional[PaymentProvider] = None,
) -> CheckoutSession:
    """
    Open a hosted checkout for the premium unlock.

    Args:
        identity: Must be an authenticated account with an email
        origin: Request Origin; redirect URLs are built from it

    Returns:
        CheckoutSession with session_id and url

    Raises:
        AuthenticationRequiredError: Anonymous caller
        ValidationError: Missing/invalid email or origin not allow-listed
        BillingDisabledError: Stripe not configured
    """
    if not identity.is_authenticated:
        raise AuthenticationRequiredError("Sign in to unlock premium access")
    if not identity.email or not EMAIL_RE.match(identity.email):
        raise ValidationError("User not authenticated or email not available")

    base = _validate_origin(origin)

    provider = provider or get_provider()
    if provider is None:
        raise BillingDisabledError("Payments are not configured")

    request = CheckoutRequest(
        user_id=identity.key,
        email=identity.email,
        success_url=f"{base}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base}/planner",
        amount_cents=settings.PREMIUM_PRICE_CENTS,
        currency=settings.PREMIUM_CURRENCY,
        product_name=settings.PREMIUM_PRODUCT_NAME,
        product_description=settings.PREMIUM_PRODUCT_DESCRIPTION,
        expires_at=int(time.time()) + settings.CHECKOUT_EXPIRY_SECONDS,
        metadata={
            "user_id": identity.key,
            "user_email": identity.email,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
    try:
        info = provider.create_checkout_session(request)
    except BillingProviderError as e:
        logger.error("[billing] checkout creation failed: %s", e, extra={"identity_key": identity.key})
        raise AppError("Failed to create checkout session", code="checkout_failed", status_code=502)

    if not info.url:
        raise AppError("Failed to create checkout session", code="checkout_failed", status_code=502)

    logger.info("[billing] checkout created", extra={"identity_key": identity.key})
    return CheckoutSession(session_id=info.session_id, url=info.url)


def _record_payment_event(session_id: str, user_id: str, info) -> bool:
    """Insert the audit row. Returns False when this session was already recorded."""
    try:
        with get_db_session() as session:
            existing = session.execute(
                select(payment_events.c.id).where(payment_events.c.checkout_session_id == session_id)
            ).first()
            if existing:
                return False
            session.execute(
                insert(payment_events).values(
                    checkout_session_id=session_id,
                    user_id=user_id,
                    amount_total=info.amount_total,
                    currency=info.currency,
                    customer_email=info.customer_email,
                    note="Payment verified via checkout session",
                )
            )
    except IntegrityError:
        return False
    return True


def _audit_verified_payment(session_id: str, user_id: str, info) -> None:
    """Audit-log the unlock; a logging failure never fails the verification."""
    try:
        log_admin_action(
            "system:checkout",
            ACTION_PAYMENT_VERIFIED,
            target_user_id=user_id,
            details={
                "session_id": session_id,
                "amount": info.amount_total,
                "currency": info.currency,
                "customer_email": info.customer_email,
            },
        )
    except SQLAlchemyError:
        logger.warning("[billing] failed to write admin audit entry", exc_info=True, extra={"identity_key": user_id})


def verify_payment(
    session_id: Optional[str],
    *,
    provider: Optional[PaymentProvider] = None,
    store: Optional[EntitlementStore] = None,
    identity: Optional[Identity] = None,
) -> PaymentVerification:
    """
    Verify a completed checkout and unlock the account when paid.

    Idempotent: verifying the same paid session again leaves has_paid true
    and records no second audit row.

    Raises:
        PaymentVerificationError: Bad session id, unknown session, bad
            metadata, account mismatch or failure to persist has_paid
        BillingDisabledError: Stripe not configured
    """
    if not session_id or not isinstance(session_id, str):
        raise PaymentVerificationError("Session ID is required and must be a string")
    if not SESSION_ID_RE.match(session_id):
        raise PaymentVerificationError("Invalid session ID format")

    provider = provider or get_provider()
    if provider is None:
        raise BillingDisabledError("Payments are not configured")

    try:
        info = provider.retrieve_checkout_session(session_id)
    except BillingProviderError as e:
        logger.warning("[billing] session lookup failed: %s", e)
        raise PaymentVerificationError(f"Session not found. {SUPPORT_HINT}")

    user_id = info.metadata.get("user_id")
    user_email = info.metadata.get("user_email")
    if not user_id or not user_email:
        raise PaymentVerificationError("Invalid session metadata")
    if not USER_ID_RE.match(str(user_id)):
        raise PaymentVerificationError("Invalid user ID format")
    if identity is not None and identity.is_authenticated and identity.key != user_id:
        raise PaymentVerificationError("Checkout session belongs to a different account")

    paid = info.payment_status == "paid"
    if paid:
        store = store or SqlEntitlementStore()
        try:
            store.set_paid(user_id, user_email)
        except Exception as exc:
            logger.error("[billing] failed to set has_paid", exc_info=True, extra={"identity_key": user_id})
            raise PaymentVerificationError(f"Failed to update payment status. {SUPPORT_HINT}") from exc

        try:
            newly_recorded = _record_payment_event(session_id, user_id, info)
        except SQLAlchemyError:
            logger.warning("[billing] failed to record payment event", exc_info=True, extra={"identity_key": user_id})
            newly_recorded = False
        if newly_recorded:
            payments_verified_total.inc()
            _audit_verified_payment(session_id, user_id, info)
            log_event(
                "info",
                "[billing] payment verified",
                identity_kind="authenticated",
                identity_key=user_id,
                event_type="payment.verified",
                extra={"amount_total": info.amount_total, "currency": info.currency},
            )
    else:
        logger.info(
            "[billing] payment not completed",
            extra={"identity_key": user_id, "status": info.payment_status},
        )

    return PaymentVerification(
        session_id=session_id,
        paid=paid,
        payment_status=info.payment_status,
        user_id=user_id,
        customer_email=info.customer_email,
        amount_total=info.amount_total,
        currency=info.currency,
    )
