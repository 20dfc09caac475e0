import pytest

from routeready.core.errors import InputFormatError
from routeready.features.entitlements.service import UsageGate
from routeready.features.planner.service import plan_trip
from routeready.models.entitlement import GateDecision
from routeready.models.identity import Identity
from routeready.models.travel import Recommendation
from routeready.tests.mocks import FakeOracle


@pytest.mark.asyncio
async def test_allowed_plan_carries_route_calculation_and_share_text():
    oracle = FakeOracle(distance_miles=570, duration_hours=9.4)
    outcome = await plan_trip(
        Identity.anonymous("anon-planner"), "10001", "k1a0b1", gate=UsageGate(), oracle=oracle
    )

    assert outcome.decision == GateDecision.ALLOWED
    assert outcome.destination == "K1A 0B1"
    assert outcome.route.distance_miles == 570
    assert outcome.calculation.recommendation == Recommendation.FLIGHT
    assert outcome.share_text.startswith("Travel Route: 10001 to K1A 0B1")
    assert outcome.entitlement.usage_count == 1
    assert outcome.warnings == []
    assert oracle.calls[0].origin == "10001"
    assert oracle.calls[0].destination == "K1A 0B1"


@pytest.mark.asyncio
async def test_invalid_location_never_reaches_oracle_or_counter():
    gate = UsageGate()
    oracle = FakeOracle()
    identity = Identity.anonymous("anon-invalid")

    with pytest.raises(InputFormatError) as exc:
        await plan_trip(identity, "10001", "<b>nowhere</b>", gate=gate, oracle=oracle)

    assert exc.value.field == "destination"
    assert oracle.calls == []
    assert gate.entitlement_for(identity).usage_count == 0


@pytest.mark.asyncio
async def test_lenient_mode_accepts_city_names():
    outcome = await plan_trip(
        Identity.anonymous("anon-lenient"),
        "Denver, CO",
        "Boulder, CO",
        gate=UsageGate(),
        oracle=FakeOracle(distance_miles=30),
        strict=False,
    )
    assert outcome.calculation.recommendation == Recommendation.MOTORCOACH
