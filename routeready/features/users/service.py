"""
Profile domain service.
- get_or_create_profile(user_id, email)
- get_profile(user_id)
"""

from typing import Optional
from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from routeready.core.database import get_db_session, profiles


def get_profile(user_id: str) -> Optional[dict]:
    with get_db_session() as session:
        row = session.execute(select(profiles).where(profiles.c.user_id == user_id)).first()
        if not row:
            return None
        return {
            "user_id": row.user_id,
            "email": row.email,
            "usage_count": row.usage_count,
            "has_paid": bool(row.has_paid),
        }


def get_or_create_profile(user_id: str, email: Optional[str] = None) -> dict:
    """New accounts start at usage_count=0, has_paid=false."""
    existing = get_profile(user_id)
    if existing:
        if email and existing["email"] != email:
            with get_db_session() as session:
                session.execute(
                    update(profiles).where(profiles.c.user_id == user_id).values(email=email)
                )
            existing["email"] = email
        return existing

    try:
        with get_db_session() as session:
            session.execute(
                insert(profiles).values(user_id=user_id, email=email, usage_count=0, has_paid=False)
            )
    except IntegrityError:
        # Created concurrently by another request
        return get_profile(user_id)

    return {"user_id": user_id, "email": email, "usage_count": 0, "has_paid": False}
