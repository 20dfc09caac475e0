"""
Payment provider protocol.

Defines the interface for one-time payment providers (Stripe, etc.).
This allows swapping providers without changing business logic.
"""
from typing import Protocol, Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class CheckoutRequest:
    """Everything needed to open a hosted one-time checkout."""
    user_id: str
    email: str
    success_url: str
    cancel_url: str
    amount_cents: int
    currency: str
    product_name: str
    product_description: str
    expires_at: Optional[int] = None  # unix seconds
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class CheckoutSessionInfo:
    """Normalized view of a provider checkout session."""
    session_id: str
    payment_status: str  # paid, unpaid, no_payment_required
    metadata: Dict[str, Any]
    customer_email: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    url: Optional[str] = None


class PaymentProvider(Protocol):
    """
    Protocol for payment providers.

    Implementations must handle:
    - Hosted checkout session creation
    - Checkout session retrieval for server-side verification
    """

    def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSessionInfo:
        """
        Create a hosted checkout session for a one-time payment.

        Returns:
            CheckoutSessionInfo with session_id and url

        Raises:
            BillingProviderError: If session creation fails
        """
        ...

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionInfo:
        """
        Fetch a checkout session by id.

        Raises:
            BillingProviderError: If the session cannot be retrieved
        """
        ...


class BillingProviderError(Exception):
    """Base exception for billing provider errors."""
    pass
