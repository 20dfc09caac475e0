import asyncio
import os
import threading
import time
from typing import List, Optional

import jwt

from routeready.features.distance.provider import DistanceRequest, OracleResponse, STATUS_OK


class FakeOracle:
    """Distance oracle returning a fixed answer and recording calls."""

    def __init__(self, distance_miles: float = 570.0, duration_hours: float = 9.5, delay: float = 0.0):
        self.distance_miles = distance_miles
        self.duration_hours = duration_hours
        self.delay = delay
        self.calls: List[DistanceRequest] = []

    async def route(self, request: DistanceRequest) -> OracleResponse:
        self.calls.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        return OracleResponse(
            status=STATUS_OK,
            distance_in_miles=self.distance_miles,
            duration_in_hours=self.duration_hours,
        )


class FailingOracle:
    """Always answers with a non-OK status."""

    def __init__(self, status: str = "ZERO_RESULTS", error: Optional[str] = None):
        self.status = status
        self.error = error
        self.calls: List[DistanceRequest] = []

    async def route(self, request: DistanceRequest) -> OracleResponse:
        self.calls.append(request)
        return OracleResponse.failure(self.status, self.error)


class HangingOracle:
    """Never answers within any reasonable timeout."""

    def __init__(self):
        self.calls: List[DistanceRequest] = []

    async def route(self, request: DistanceRequest) -> OracleResponse:
        self.calls.append(request)
        await asyncio.sleep(3600)
        raise AssertionError("unreachable")


class BrokenStore:
    """Entitlement store whose writes always fail."""

    def __init__(self, inner):
        self.inner = inner

    def get_entitlement(self, identity):
        return self.inner.get_entitlement(identity)

    def increment_usage(self, identity):
        raise RuntimeError("database is down")

    def set_paid(self, user_id, email=None):
        raise RuntimeError("database is down")


class ThreadRecordingStore:
    """Pass-through entitlement store that records which thread served each call."""

    def __init__(self, inner):
        self.inner = inner
        self.threads: List[int] = []

    def get_entitlement(self, identity):
        self.threads.append(threading.get_ident())
        return self.inner.get_entitlement(identity)

    def increment_usage(self, identity):
        self.threads.append(threading.get_ident())
        return self.inner.increment_usage(identity)

    def set_paid(self, user_id, email=None):
        return self.inner.set_paid(user_id, email)


def make_token(user_id: str, email: Optional[str] = None, *, expires_in: int = 3600, role: Optional[str] = None) -> str:
    """HS256 Clerk-style session token signed with the test secret."""
    claims = {"sub": user_id, "exp": int(time.time()) + expires_in}
    if email:
        claims["email"] = email
    if role:
        claims["public_metadata"] = {"role": role}
    return jwt.encode(claims, os.environ["CLERK_SECRET_KEY"], algorithm="HS256")
