"""
routeready/features/entitlements/service.py

Usage gate: free-tier counting, authentication escalation and paid bypass.

Handles:
- Decision before the distance lookup (request_calculation)
- Consumption after a successful calculation (record_successful_use)
- Per-identity serialization of check -> lookup -> record (guard)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Optional
import logging

from routeready.core.errors import StoreUpdateError
from routeready.core.metrics import gate_decisions_total, usage_recorded_total, usage_record_failures_total
from routeready.features.entitlements.store import EntitlementStore, IdentityEntitlementStore
from routeready.models.entitlement import EntitlementState, GateDecision, GateState, FREE_USAGE_LIMIT
from routeready.models.identity import Identity, IdentityKind

logger = logging.getLogger(__name__)


def decide(entitlement: EntitlementState) -> GateDecision:
    """Pure mapping from entitlement state to gate decision."""
    state = entitlement.state
    if state == GateState.UNAUTHENTICATED_AT_LIMIT:
        return GateDecision.REQUIRES_AUTHENTICATION
    if state == GateState.AUTHENTICATED_FREE_AT_LIMIT:
        return GateDecision.REQUIRES_PAYMENT
    return GateDecision.ALLOWED


class UsageGate:
    """
    Entitlement state machine over an EntitlementStore.

    Callers must hold guard(identity) across request_calculation, the
    distance lookup and record_successful_use; otherwise two in-flight
    requests at free_limit - 1 could both be allowed.
    """

    def __init__(self, store: Optional[EntitlementStore] = None, free_limit: int = FREE_USAGE_LIMIT):
        self.free_limit = free_limit
        self.store = store or IdentityEntitlementStore(free_limit=free_limit)
        # Entries live only while a request holds or waits on the key
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    def _lock_for(self, identity: Identity) -> asyncio.Lock:
        key = identity.lock_key
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._waiters[key] = self._waiters.get(key, 0) + 1
        return lock

    def _release(self, identity: Identity) -> None:
        key = identity.lock_key
        remaining = self._waiters.get(key, 1) - 1
        if remaining > 0:
            self._waiters[key] = remaining
            return
        self._waiters.pop(key, None)
        self._locks.pop(key, None)

    @asynccontextmanager
    async def guard(self, identity: Identity):
        lock = self._lock_for(identity)
        try:
            async with lock:
                yield
        finally:
            self._release(identity)

    @property
    def active_guards(self) -> int:
        """Identities currently holding or waiting on a guard."""
        return len(self._locks)

    def entitlement_for(self, identity: Identity) -> EntitlementState:
        return self.store.get_entitlement(identity)

    def state_for(self, identity: Identity) -> GateState:
        return self.entitlement_for(identity).state

    def request_calculation(self, identity: Identity) -> GateDecision:
        entitlement = self.entitlement_for(identity)
        decision = decide(entitlement)
        gate_decisions_total.inc(labels={"decision": decision.value})
        logger.info(
            "[gate] decision",
            extra={
                "identity_kind": identity.kind.value,
                "identity_key": identity.key,
                "decision": decision.value,
                "usage_count": entitlement.usage_count,
            },
        )
        return decision

    def record_successful_use(self, identity: Identity) -> EntitlementState:
        """
        Consume one free use after the lookup and calculation succeeded.

        Paid accounts are never incremented.

        Raises:
            StoreUpdateError: If the store could not record the use
        """
        try:
            current = self.store.get_entitlement(identity)
            if identity.kind == IdentityKind.AUTHENTICATED and current.has_paid:
                return current
            updated = self.store.increment_usage(identity)
        except Exception as exc:
            usage_record_failures_total.inc()
            logger.error(
                "[gate] failed to record usage",
                exc_info=True,
                extra={"identity_kind": identity.kind.value, "identity_key": identity.key},
            )
            raise StoreUpdateError("Usage could not be recorded") from exc

        usage_recorded_total.inc(labels={"kind": identity.kind.value})
        logger.info(
            "[gate] usage recorded",
            extra={
                "identity_kind": identity.kind.value,
                "identity_key": identity.key,
                "usage_count": updated.usage_count,
            },
        )
        return updated
