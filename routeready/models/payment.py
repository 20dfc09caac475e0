from typing import Optional
from pydantic import BaseModel, ConfigDict


class CheckoutSession(BaseModel):
    """Hosted checkout created for an account."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    url: str


class PaymentVerification(BaseModel):
    """Outcome of server-side checkout verification."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    paid: bool
    payment_status: str
    user_id: Optional[str] = None
    customer_email: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None
