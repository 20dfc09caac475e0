"""
Admin API routes for account operations.

All routes except /me require an admin account (Clerk role or ADMIN_USER_IDS).
"""
from fastapi import APIRouter, Depends, Query

from routeready.core.auth import get_admin_status, require_admin
from routeready.features.admin.service import (
    AUDIT_LOG_DEFAULT_LIMIT,
    AUDIT_LOG_MAX_LIMIT,
    get_account_usage,
    grant_paid,
    list_audit_log,
    list_profiles,
)
from routeready.models.identity import Identity

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/me")
def admin_status(is_admin: bool = Depends(get_admin_status)) -> dict:
    """Whether the signed-in caller may use the admin panel."""
    return {"is_admin": is_admin}


@router.get("/users")
def list_users(admin: Identity = Depends(require_admin)) -> dict:
    """List accounts with payment status, newest first."""
    users = list_profiles()
    return {
        "count": len(users),
        "users": users,
    }


@router.post("/users/{user_id}/grant-paid")
def grant_premium(user_id: str, admin: Identity = Depends(require_admin)) -> dict:
    """Unlock premium for an account. One-way; repeated grants are no-ops."""
    return grant_paid(admin.key, user_id)


@router.get("/users/{user_id}/usage")
def account_usage(user_id: str, admin: Identity = Depends(require_admin)) -> dict:
    """Usage counter, per-key totals and recorded events for one account."""
    return get_account_usage(user_id)


@router.get("/audit-log")
def audit_log(
    limit: int = Query(AUDIT_LOG_DEFAULT_LIMIT, ge=1, le=AUDIT_LOG_MAX_LIMIT),
    admin: Identity = Depends(require_admin),
) -> dict:
    """Most recent admin audit entries."""
    entries = list_audit_log(limit=limit)
    return {
        "count": len(entries),
        "entries": entries,
    }
