"""
routeready/features/planner/service.py

Trip planning flow: validate -> gate -> distance lookup -> calculate -> record.

The whole sequence runs under the gate's per-identity guard, so a double
submit at the last free use cannot both pass the check. Store calls are
blocking (SQLAlchemy), so they run on the threadpool and never stall the
event loop while the guard is held. Usage is consumed only after the
lookup and calculation succeed; a failed store update still returns the
result with a warning.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging

from starlette.concurrency import run_in_threadpool

from routeready.core.errors import StoreUpdateError
from routeready.features.calculator.service import build_share_text, calculate
from routeready.features.distance.provider import DistanceOracle
from routeready.features.distance.service import lookup_route
from routeready.features.entitlements.service import UsageGate
from routeready.features.locations.validators import validate_location
from routeready.models.entitlement import EntitlementState, GateDecision
from routeready.models.identity import Identity
from routeready.models.travel import RouteDistance, TravelCalculation

logger = logging.getLogger(__name__)

WARNING_USAGE_NOT_RECORDED = "usage_not_recorded"


@dataclass
class PlanOutcome:
    decision: GateDecision
    entitlement: EntitlementState
    departure: str
    destination: str
    route: Optional[RouteDistance] = None
    calculation: Optional[TravelCalculation] = None
    share_text: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def allowed(self) -> bool:
        return self.decision == GateDecision.ALLOWED


async def plan_trip(
    identity: Identity,
    departure: str,
    destination: str,
    *,
    gate: UsageGate,
    oracle: DistanceOracle,
    strict: bool = True,
    timeout_seconds: Optional[float] = None,
) -> PlanOutcome:
    """
    Run one gated calculation for an identity.

    Raises:
        InputFormatError: Invalid departure/destination (nothing is charged)
        OracleUnavailableError: Lookup failed or timed out (nothing is charged)
    """
    origin = validate_location(departure, field="departure", strict=strict)
    target = validate_location(destination, field="destination", strict=strict)

    async with gate.guard(identity):
        decision = await run_in_threadpool(gate.request_calculation, identity)
        if decision != GateDecision.ALLOWED:
            return PlanOutcome(
                decision=decision,
                entitlement=await run_in_threadpool(gate.entitlement_for, identity),
                departure=origin,
                destination=target,
            )

        route = await lookup_route(oracle, origin, target, timeout_seconds=timeout_seconds)
        calculation = calculate(route.distance_miles)

        warnings: List[str] = []
        try:
            entitlement = await run_in_threadpool(gate.record_successful_use, identity)
        except StoreUpdateError:
            warnings.append(WARNING_USAGE_NOT_RECORDED)
            entitlement = await run_in_threadpool(_last_known, gate, identity)

    return PlanOutcome(
        decision=decision,
        entitlement=entitlement,
        departure=origin,
        destination=target,
        route=route,
        calculation=calculation,
        share_text=build_share_text(origin, target, calculation),
        warnings=warnings,
    )


def _last_known(gate: UsageGate, identity: Identity) -> EntitlementState:
    """Best-effort re-read after a failed update; falls back to an empty state."""
    try:
        return gate.entitlement_for(identity)
    except Exception:
        logger.warning("[planner] entitlement re-read failed", exc_info=True, extra={"identity_key": identity.key})
        return EntitlementState(identity_kind=identity.kind, free_limit=gate.free_limit)
