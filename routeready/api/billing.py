"""
Billing API routes.

Minimal surface:
- POST /api/billing/checkout: Create a one-time premium checkout session
- POST /api/billing/verify: Verify a completed checkout and unlock the account
"""
from typing import Optional
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from routeready.api.deps import get_gate
from routeready.core.auth import get_identity, require_user
from routeready.features.billing.service import start_checkout, verify_payment
from routeready.features.entitlements.service import UsageGate
from routeready.models.identity import Identity


router = APIRouter(prefix="/billing", tags=["billing"])


class CheckoutResponse(BaseModel):
    """Response with checkout URL."""
    url: str
    session_id: str


class VerifyRequest(BaseModel):
    session_id: Optional[str] = None


class VerifyResponse(BaseModel):
    paid: bool
    payment_status: str
    customer_email: Optional[str] = None


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(req: Request, identity: Identity = Depends(require_user)):
    """
    Create Stripe checkout session for the premium unlock.

    Errors:
        401: Not signed in
        400: Invalid origin or missing email
        503: Billing disabled (STRIPE_SECRET_KEY not set)
        502: Stripe API error
    """
    session = start_checkout(identity, req.headers.get("origin"))
    return CheckoutResponse(url=session.url, session_id=session.session_id)


@router.post("/verify", response_model=VerifyResponse)
def verify(
    body: VerifyRequest,
    identity: Identity = Depends(get_identity),
    gate: UsageGate = Depends(get_gate),
):
    """
    Verify a checkout session; flips has_paid when Stripe reports it paid.

    Errors:
        400: Invalid session id, unknown session or verification failure
        503: Billing disabled
    """
    result = verify_payment(body.session_id, store=gate.store, identity=identity)
    return VerifyResponse(
        paid=result.paid,
        payment_status=result.payment_status,
        customer_email=result.customer_email,
    )
