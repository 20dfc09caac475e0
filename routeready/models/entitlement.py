"""
routeready/models/entitlement.py

Entitlement state and gate vocabulary.

An identity's entitlement is its usage count plus paid flag. The gate maps
it onto one of five states and answers each calculation request with a
decision.
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, model_validator

from routeready.models.identity import IdentityKind

FREE_USAGE_LIMIT = 5


class GateDecision(str, Enum):
    ALLOWED = "allowed"
    REQUIRES_AUTHENTICATION = "requires_authentication"
    REQUIRES_PAYMENT = "requires_payment"


class GateState(str, Enum):
    UNAUTHENTICATED_UNDER_LIMIT = "unauthenticated_under_limit"
    UNAUTHENTICATED_AT_LIMIT = "unauthenticated_at_limit"
    AUTHENTICATED_FREE_UNDER_LIMIT = "authenticated_free_under_limit"
    AUTHENTICATED_FREE_AT_LIMIT = "authenticated_free_at_limit"
    AUTHENTICATED_PAID = "authenticated_paid"


class EntitlementState(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity_kind: IdentityKind
    usage_count: int = Field(default=0, ge=0)
    has_paid: bool = False
    free_limit: int = Field(default=FREE_USAGE_LIMIT, ge=0)

    @model_validator(mode="after")
    def _anonymous_never_paid(self) -> "EntitlementState":
        if self.has_paid and self.identity_kind == IdentityKind.ANONYMOUS:
            raise ValueError("anonymous identities cannot have paid")
        return self

    @property
    def at_limit(self) -> bool:
        return self.usage_count >= self.free_limit

    @property
    def remaining_uses(self) -> int:
        return max(0, self.free_limit - self.usage_count)

    @property
    def state(self) -> GateState:
        if self.identity_kind == IdentityKind.ANONYMOUS:
            if self.at_limit:
                return GateState.UNAUTHENTICATED_AT_LIMIT
            return GateState.UNAUTHENTICATED_UNDER_LIMIT
        if self.has_paid:
            return GateState.AUTHENTICATED_PAID
        if self.at_limit:
            return GateState.AUTHENTICATED_FREE_AT_LIMIT
        return GateState.AUTHENTICATED_FREE_UNDER_LIMIT
