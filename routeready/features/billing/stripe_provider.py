"""
Stripe payment provider implementation.

Implements PaymentProvider protocol using the Stripe API
(one-time `payment` mode checkout with inline price data).
"""
import os
from typing import Any, Dict, Optional
import stripe

from routeready.features.billing.provider import (
    BillingProviderError,
    CheckoutRequest,
    CheckoutSessionInfo,
)

DEFAULT_TIMEOUT_SECONDS = 20.0

# Timeout the shared Stripe HTTP client was last built with
_configured_timeout: Optional[float] = None


def _configure_http_client(timeout_seconds: float) -> None:
    """Install a Stripe HTTP client with an explicit network timeout."""
    global _configured_timeout
    if _configured_timeout == timeout_seconds:
        return
    stripe.default_http_client = stripe.RequestsClient(timeout=timeout_seconds)
    _configured_timeout = timeout_seconds


class StripeProvider:
    """Stripe implementation of PaymentProvider protocol."""

    def __init__(self, secret_key: Optional[str] = None, timeout_seconds: Optional[float] = None):
        """
        Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key (defaults to STRIPE_SECRET_KEY env var)
            timeout_seconds: Network timeout per Stripe request
                (defaults to STRIPE_TIMEOUT_SECONDS env var, then 20s)
        """
        self.secret_key = secret_key or os.getenv("STRIPE_SECRET_KEY")

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")
        if not self.secret_key.startswith("sk_"):
            raise BillingProviderError("Invalid Stripe configuration")

        stripe.api_key = self.secret_key
        self.timeout_seconds = timeout_seconds or float(os.getenv("STRIPE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
        _configure_http_client(self.timeout_seconds)

    def find_customer_id(self, email: str) -> Optional[str]:
        """Return the id of an existing Stripe customer with this email, if any."""
        try:
            customers = stripe.Customer.list(email=email, limit=1)
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe customer lookup failed: {e}")
        data = _field(customers, "data") or []
        return _field(data[0], "id") if data else None

    def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSessionInfo:
        """Create Stripe checkout session, reusing the payer's customer record when one exists."""
        params: Dict[str, Any] = {
            "line_items": [
                {
                    "price_data": {
                        "currency": request.currency,
                        "product_data": {
                            "name": request.product_name,
                            "description": request.product_description,
                        },
                        "unit_amount": request.amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            "mode": "payment",
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
            "metadata": request.metadata,
        }
        customer_id = self.find_customer_id(request.email)
        if customer_id:
            params["customer"] = customer_id
        else:
            params["customer_email"] = request.email
        if request.expires_at:
            params["expires_at"] = request.expires_at
        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")
        return self._to_info(session)

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionInfo:
        """Fetch Stripe checkout session."""
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session retrieval failed: {e}")
        if not session:
            raise BillingProviderError("Session not found")
        return self._to_info(session)

    def _to_info(self, session: Any) -> CheckoutSessionInfo:
        metadata = _field(session, "metadata") or {}
        if hasattr(metadata, "to_dict"):
            metadata = metadata.to_dict()
        customer_details = _field(session, "customer_details")
        email = _field(customer_details, "email") if customer_details else None
        return CheckoutSessionInfo(
            session_id=_field(session, "id"),
            payment_status=_field(session, "payment_status") or "unpaid",
            metadata=dict(metadata),
            customer_email=email or _field(session, "customer_email"),
            amount_total=_field(session, "amount_total"),
            currency=_field(session, "currency"),
            url=_field(session, "url"),
        )


def _field(obj: Any, name: str) -> Any:
    """Read a field from a StripeObject or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)
