"""
routeready/features/entitlements/store.py

Identity & entitlement store.

Anonymous sessions are counted in memory (lost on restart, like a browser
session). Accounts are persisted in the profiles table; increments are a
single conditional UPDATE so the database does the read-modify-write.
"""

import threading
from typing import Dict, Optional, Protocol
import logging
from sqlalchemy import select, insert, update
from sqlalchemy.sql import func

from routeready.core.database import get_db_session, profiles
from routeready.features.usage.service import emit_usage_event, USAGE_KEY_CALCULATION
from routeready.models.entitlement import EntitlementState, FREE_USAGE_LIMIT
from routeready.models.identity import Identity, IdentityKind

logger = logging.getLogger(__name__)


class EntitlementStore(Protocol):
    def get_entitlement(self, identity: Identity) -> EntitlementState:
        ...

    def increment_usage(self, identity: Identity) -> EntitlementState:
        """Consume one calculation. Paid accounts are left untouched."""
        ...

    def set_paid(self, user_id: str, email: Optional[str] = None) -> EntitlementState:
        """One-way transition to paid. Only the verified payment path calls this."""
        ...


class AnonymousUsageStore:
    """In-memory counters keyed by anonymous session id."""

    def __init__(self, free_limit: int = FREE_USAGE_LIMIT):
        self.free_limit = free_limit
        self._counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    def _state(self, count: int) -> EntitlementState:
        return EntitlementState(
            identity_kind=IdentityKind.ANONYMOUS,
            usage_count=count,
            has_paid=False,
            free_limit=self.free_limit,
        )

    def get_entitlement(self, identity: Identity) -> EntitlementState:
        with self._lock:
            return self._state(self._counts.get(identity.key, 0))

    def increment_usage(self, identity: Identity) -> EntitlementState:
        with self._lock:
            count = self._counts.get(identity.key, 0) + 1
            self._counts[identity.key] = count
        return self._state(count)

    def set_paid(self, user_id: str, email: Optional[str] = None) -> EntitlementState:
        raise ValueError("anonymous sessions cannot be marked paid")

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()


class SqlEntitlementStore:
    """Account entitlements backed by the profiles table."""

    def __init__(self, free_limit: int = FREE_USAGE_LIMIT):
        self.free_limit = free_limit

    def _state(self, usage_count: int, has_paid: bool) -> EntitlementState:
        return EntitlementState(
            identity_kind=IdentityKind.AUTHENTICATED,
            usage_count=usage_count,
            has_paid=has_paid,
            free_limit=self.free_limit,
        )

    def _read(self, session, user_id: str) -> Optional[EntitlementState]:
        row = session.execute(
            select(profiles.c.usage_count, profiles.c.has_paid).where(profiles.c.user_id == user_id)
        ).first()
        if row is None:
            return None
        return self._state(row.usage_count, bool(row.has_paid))

    def get_entitlement(self, identity: Identity) -> EntitlementState:
        with get_db_session() as session:
            state = self._read(session, identity.key)
        return state or self._state(0, False)

    def increment_usage(self, identity: Identity) -> EntitlementState:
        user_id = identity.key
        with get_db_session() as session:
            result = session.execute(
                update(profiles)
                .where(profiles.c.user_id == user_id)
                .where(profiles.c.has_paid == False)  # noqa: E712
                .values(usage_count=profiles.c.usage_count + 1, updated_at=func.now())
            )
            if result.rowcount == 0:
                current = self._read(session, user_id)
                if current is not None and current.has_paid:
                    return current
                if current is None:
                    session.execute(
                        insert(profiles).values(user_id=user_id, email=identity.email, usage_count=1, has_paid=False)
                    )
            state = self._read(session, user_id)
            emit_usage_event(
                session,
                user_id,
                USAGE_KEY_CALCULATION,
                metadata={"usage_count": state.usage_count},
            )
        return state

    def set_paid(self, user_id: str, email: Optional[str] = None) -> EntitlementState:
        with get_db_session() as session:
            result = session.execute(
                update(profiles)
                .where(profiles.c.user_id == user_id)
                .values(has_paid=True, updated_at=func.now())
            )
            if result.rowcount == 0:
                session.execute(
                    insert(profiles).values(user_id=user_id, email=email, usage_count=0, has_paid=True)
                )
            state = self._read(session, user_id)
        logger.info("[entitlements] account marked paid", extra={"identity_key": user_id})
        return state


class IdentityEntitlementStore:
    """Routes each identity to the store that owns its kind."""

    def __init__(
        self,
        anonymous: Optional[AnonymousUsageStore] = None,
        accounts: Optional[SqlEntitlementStore] = None,
        free_limit: int = FREE_USAGE_LIMIT,
    ):
        self.anonymous = anonymous or AnonymousUsageStore(free_limit)
        self.accounts = accounts or SqlEntitlementStore(free_limit)

    def _for(self, identity: Identity):
        if identity.kind == IdentityKind.ANONYMOUS:
            return self.anonymous
        return self.accounts

    def get_entitlement(self, identity: Identity) -> EntitlementState:
        return self._for(identity).get_entitlement(identity)

    def increment_usage(self, identity: Identity) -> EntitlementState:
        return self._for(identity).increment_usage(identity)

    def set_paid(self, user_id: str, email: Optional[str] = None) -> EntitlementState:
        return self.accounts.set_paid(user_id, email)
