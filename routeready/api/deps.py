"""
Shared FastAPI dependencies: the usage gate and the distance oracle.

Both are process-wide singletons; tests swap them via app.dependency_overrides.
"""
from typing import Optional

from routeready.core.config import settings
from routeready.features.distance.provider import DistanceOracle
from routeready.features.distance.service import get_oracle as build_oracle
from routeready.features.entitlements.service import UsageGate

_gate: Optional[UsageGate] = None
_oracle: Optional[DistanceOracle] = None


def get_gate() -> UsageGate:
    global _gate
    if _gate is None:
        _gate = UsageGate(free_limit=settings.FREE_USAGE_LIMIT)
    return _gate


def get_oracle() -> DistanceOracle:
    global _oracle
    if _oracle is None:
        _oracle = build_oracle()
    return _oracle


def reset_dependencies() -> None:
    """Drop cached singletons (anonymous counters included)."""
    global _gate, _oracle
    _gate = None
    _oracle = None
