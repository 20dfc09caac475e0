"""
Auth utilities for the Route Ready API.

Validates Clerk JWTs and resolves the identity usage is metered against:
1. Clerk JWT from Authorization header -> authenticated account
2. X-Session-Id header -> anonymous browser session
3. Neither -> a fresh anonymous session id, returned in X-Session-Id

Admin routes additionally require is_admin_user(claims).
"""
import re
import logging
from typing import Any, Dict, Optional
from uuid import uuid4

import jwt
from fastapi import Header, Request, Response
from starlette.concurrency import run_in_threadpool

from routeready.core.config import settings
from routeready.core.errors import AuthenticationRequiredError, PermissionError
from routeready.models.identity import Identity

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Id"
SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_\-]{8,128}$")


def verify_clerk_jwt(token: str) -> Dict[str, Any]:
    """
    Verify Clerk JWT and return its claims.

    Args:
        token: JWT from Authorization header (Bearer {token})

    Returns:
        Decoded claims; 'sub' is guaranteed present

    Raises:
        AuthenticationRequiredError: Auth not configured, invalid or expired token
    """
    if not settings.CLERK_SECRET_KEY:
        logger.warning("Bearer token received but CLERK_SECRET_KEY is not configured")
        raise AuthenticationRequiredError("Authentication is not configured")

    options = {"verify_signature": True, "verify_exp": True, "verify_aud": bool(settings.CLERK_AUDIENCE)}
    kwargs: Dict[str, Any] = {}
    if settings.CLERK_AUDIENCE:
        kwargs["audience"] = settings.CLERK_AUDIENCE
    if settings.CLERK_ISSUER:
        kwargs["issuer"] = settings.CLERK_ISSUER

    try:
        payload = jwt.decode(
            token,
            settings.CLERK_SECRET_KEY,
            algorithms=["HS256"],
            options=options,
            **kwargs,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationRequiredError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise AuthenticationRequiredError("Invalid token")

    if not payload.get("sub"):
        raise AuthenticationRequiredError("Invalid token")
    return payload


def _upsert_profile(user_id: str, email: Optional[str]) -> None:
    try:
        from routeready.features.users.service import get_or_create_profile
        get_or_create_profile(user_id, email)
    except Exception as e:
        # Don't block auth if upsert fails; the store creates the row on first use
        logger.warning(f"Failed to upsert profile {user_id}: {e}")


async def get_identity(
    request: Request,
    response: Response,
    authorization: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None, alias=SESSION_HEADER),
) -> Identity:
    """FastAPI dependency resolving the caller's identity."""
    if authorization and authorization.startswith("Bearer "):
        claims = verify_clerk_jwt(authorization[7:].strip())
        identity = Identity.authenticated(claims["sub"], claims.get("email"))
        await run_in_threadpool(_upsert_profile, identity.key, identity.email)
        request.state.user_id = identity.key
        return identity

    session_id = x_session_id if x_session_id and SESSION_ID_RE.match(x_session_id) else None
    if session_id is None:
        session_id = uuid4().hex
    response.headers[SESSION_HEADER] = session_id
    return Identity.anonymous(session_id)


async def require_user(
    request: Request,
    response: Response,
    authorization: Optional[str] = Header(None),
) -> Identity:
    """Like get_identity, but anonymous callers get 401."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationRequiredError("Missing Authorization (Bearer JWT)")
    return await get_identity(request, response, authorization=authorization, x_session_id=None)


def is_admin_user(claims: Dict[str, Any]) -> bool:
    """
    Check if verified JWT claims belong to an admin.

    Either public_metadata.role == "admin" (the Clerk role pattern) or the
    subject is listed in ADMIN_USER_IDS.
    """
    public_metadata = claims.get("public_metadata") or {}
    if isinstance(public_metadata, dict) and public_metadata.get("role") == "admin":
        return True
    return claims.get("sub") in settings.admin_user_ids()


def _bearer_claims(authorization: Optional[str]) -> Dict[str, Any]:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationRequiredError("Missing Authorization (Bearer JWT)")
    return verify_clerk_jwt(authorization[7:].strip())


async def get_admin_status(authorization: Optional[str] = Header(None)) -> bool:
    """Signed-in callers learn whether they are admins; anonymous callers get 401."""
    return is_admin_user(_bearer_claims(authorization))


async def require_admin(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Identity:
    """
    FastAPI dependency: require an admin account.

    Raises:
        AuthenticationRequiredError: Missing or invalid token (401)
        PermissionError: Valid token without admin rights (403)
    """
    claims = _bearer_claims(authorization)
    if not is_admin_user(claims):
        logger.warning("[admin] access denied", extra={"identity_key": claims["sub"]})
        raise PermissionError("Admin privileges required")
    identity = Identity.authenticated(claims["sub"], claims.get("email"))
    request.state.user_id = identity.key
    return identity
