"""
Admin service for account operations.

Provides:
- Account listing with payment status
- One-way premium grant (has_paid never flips back to false)
- Per-account usage history
- Audit log writes and reads
"""
import logging
from typing import Any, Dict, List, Optional
from sqlalchemy import insert, select, update
from sqlalchemy.sql import func

from routeready.core.database import admin_audit_log, get_db_session, profiles
from routeready.core.errors import NotFoundError
from routeready.features.usage.service import get_usage_events, reduce_usage

logger = logging.getLogger(__name__)

ACTION_PAYMENT_STATUS_CHANGED = "payment_status_changed"
ACTION_PAYMENT_VERIFIED = "payment_verified"
AUDIT_LOG_DEFAULT_LIMIT = 50
AUDIT_LOG_MAX_LIMIT = 200


def log_admin_action(
    admin_user_id: str,
    action: str,
    target_user_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    session=None,
) -> None:
    """
    Record an admin action in the audit log.

    Args:
        admin_user_id: Acting admin's user id, or "system:<source>" for automated changes
        action: Action name (e.g., "payment_status_changed")
        target_user_id: Account affected by the action (optional)
        details: Additional context (old/new status, session id, ...)
        session: Open session to write within; a new one is used when omitted
    """
    values = dict(
        admin_user_id=admin_user_id,
        action=action,
        target_user_id=target_user_id,
        details=details,
    )
    if session is not None:
        session.execute(insert(admin_audit_log).values(**values))
        return
    with get_db_session() as own_session:
        own_session.execute(insert(admin_audit_log).values(**values))


def list_profiles() -> List[Dict[str, Any]]:
    """All accounts, newest first."""
    with get_db_session() as session:
        rows = session.execute(
            select(profiles).order_by(profiles.c.created_at.desc(), profiles.c.user_id)
        ).all()
    return [
        {
            "user_id": row.user_id,
            "email": row.email,
            "usage_count": row.usage_count,
            "has_paid": bool(row.has_paid),
            "created_at": row.created_at,
        }
        for row in rows
    ]


def grant_paid(admin_user_id: str, user_id: str) -> Dict[str, Any]:
    """
    Unlock premium for an account on an admin's behalf.

    The update and its audit entry commit together. Granting an account
    that is already paid changes nothing and writes no audit entry.

    Returns:
        Dict with user_id, has_paid and changed

    Raises:
        NotFoundError: Unknown account
    """
    with get_db_session() as session:
        row = session.execute(
            select(profiles.c.email, profiles.c.has_paid).where(profiles.c.user_id == user_id)
        ).first()
        if row is None:
            raise NotFoundError("User not found")

        result = session.execute(
            update(profiles)
            .where(profiles.c.user_id == user_id)
            .where(profiles.c.has_paid == False)  # noqa: E712
            .values(has_paid=True, updated_at=func.now())
        )
        changed = result.rowcount > 0
        if changed:
            log_admin_action(
                admin_user_id,
                ACTION_PAYMENT_STATUS_CHANGED,
                target_user_id=user_id,
                details={"old_status": False, "new_status": True, "target_email": row.email},
                session=session,
            )

    if changed:
        logger.info("[admin] premium granted", extra={"identity_key": user_id, "admin_user_id": admin_user_id})
    return {"user_id": user_id, "has_paid": True, "changed": changed}


def get_account_usage(user_id: str) -> Dict[str, Any]:
    """
    Usage history for one account: the counter, per-key totals and events.

    Raises:
        NotFoundError: Unknown account
    """
    with get_db_session() as session:
        row = session.execute(
            select(profiles.c.usage_count, profiles.c.has_paid).where(profiles.c.user_id == user_id)
        ).first()
        if row is None:
            raise NotFoundError("User not found")
        events = get_usage_events(session, user_id)
        counts = reduce_usage(session, user_id)
    return {
        "user_id": user_id,
        "usage_count": row.usage_count,
        "has_paid": bool(row.has_paid),
        "totals": counts,
        "events": events,
    }


def list_audit_log(limit: int = AUDIT_LOG_DEFAULT_LIMIT) -> List[Dict[str, Any]]:
    """Most recent audit entries, newest first."""
    limit = max(1, min(limit, AUDIT_LOG_MAX_LIMIT))
    with get_db_session() as session:
        rows = session.execute(
            select(admin_audit_log)
            .order_by(admin_audit_log.c.created_at.desc(), admin_audit_log.c.id.desc())
            .limit(limit)
        ).all()
    return [
        {
            "id": row.id,
            "admin_user_id": row.admin_user_id,
            "action": row.action,
            "target_user_id": row.target_user_id,
            "details": row.details,
            "created_at": row.created_at,
        }
        for row in rows
    ]
