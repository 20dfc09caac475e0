"""
Usage API.

GET /api/usage returns the caller's entitlement: count, remaining free
uses, paid flag and gate state.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from routeready.api.deps import get_gate
from routeready.core.auth import get_identity
from routeready.features.entitlements.service import UsageGate, decide
from routeready.models.entitlement import EntitlementState, GateDecision, GateState
from routeready.models.identity import Identity, IdentityKind

router = APIRouter(prefix="/api/usage", tags=["usage"])


class UsageResponse(BaseModel):
    identity_kind: IdentityKind
    usage_count: int
    free_limit: int
    remaining_uses: int
    has_paid: bool
    state: GateState
    next_decision: GateDecision


def usage_payload(identity: Identity, entitlement: EntitlementState) -> UsageResponse:
    return UsageResponse(
        identity_kind=identity.kind,
        usage_count=entitlement.usage_count,
        free_limit=entitlement.free_limit,
        remaining_uses=entitlement.remaining_uses,
        has_paid=entitlement.has_paid,
        state=entitlement.state,
        next_decision=decide(entitlement),
    )


@router.get("", response_model=UsageResponse)
def get_usage(identity: Identity = Depends(get_identity), gate: UsageGate = Depends(get_gate)):
    return usage_payload(identity, gate.entitlement_for(identity))
