"""
Trip planning API.

POST /api/trips/plan runs the gated flow for the caller's identity. A gate
refusal is a 200 call to action (sign in / pay), not an error.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from routeready.api.calculator import formatted_times
from routeready.api.deps import get_gate, get_oracle
from routeready.api.usage import UsageResponse, usage_payload
from routeready.core.auth import get_identity
from routeready.core.config import settings
from routeready.features.distance.provider import DistanceOracle
from routeready.features.entitlements.service import UsageGate
from routeready.features.planner.service import plan_trip
from routeready.models.entitlement import GateDecision
from routeready.models.identity import Identity
from routeready.models.travel import RouteDistance, TravelCalculation

router = APIRouter(prefix="/api/trips", tags=["trips"])


class PlanRequest(BaseModel):
    departure: str
    destination: str


class PlanResponse(BaseModel):
    decision: GateDecision
    departure: str
    destination: str
    usage: UsageResponse
    route: Optional[RouteDistance] = None
    calculation: Optional[TravelCalculation] = None
    formatted: Optional[dict] = None
    share_text: Optional[str] = None
    warnings: List[str] = []


@router.post("/plan", response_model=PlanResponse)
async def plan(
    body: PlanRequest,
    identity: Identity = Depends(get_identity),
    gate: UsageGate = Depends(get_gate),
    oracle: DistanceOracle = Depends(get_oracle),
):
    """
    Errors:
        422: Invalid departure/destination
        502: Distance lookup failed (usage not charged)
    """
    outcome = await plan_trip(
        identity,
        body.departure,
        body.destination,
        gate=gate,
        oracle=oracle,
        strict=settings.LOCATION_VALIDATION_STRICT,
    )
    return PlanResponse(
        decision=outcome.decision,
        departure=outcome.departure,
        destination=outcome.destination,
        usage=usage_payload(identity, outcome.entitlement),
        route=outcome.route,
        calculation=outcome.calculation,
        formatted=formatted_times(outcome.calculation) if outcome.calculation else None,
        share_text=outcome.share_text,
        warnings=outcome.warnings,
    )
