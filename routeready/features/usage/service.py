"""
routeready/features/usage/service.py

Usage accounting service.

Handles:
- Usage event emission (append-only audit of consumed calculations)
- Usage event queries
- Usage counting per key
"""

from datetime import datetime, timezone
from typing import Dict, Optional, Any, List
from sqlalchemy import select, insert

from routeready.core.database import usage_events

USAGE_KEY_CALCULATION = "calculations.performed"


def emit_usage_event(
    session,
    user_id: str,
    usage_key: str = USAGE_KEY_CALCULATION,
    occurred_at: Optional[datetime] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Append a usage event inside the caller's transaction.

    Args:
        session: Open session (the event commits with the counter update)
        user_id: Account performing the action
        usage_key: Usage type
        occurred_at: Timestamp of usage (defaults to now)
        metadata: Optional metadata (usage count after increment, etc.)
    """
    if occurred_at is None:
        occurred_at = datetime.now(timezone.utc)
    elif occurred_at.tzinfo is None:
        occurred_at = occurred_at.replace(tzinfo=timezone.utc)

    session.execute(
        insert(usage_events).values(
            user_id=user_id,
            usage_key=usage_key,
            occurred_at=occurred_at,
            metadata=metadata,
        )
    )
    return {"user_id": user_id, "usage_key": usage_key, "occurred_at": occurred_at, "metadata": metadata}


def get_usage_events(session, user_id: str, usage_key: Optional[str] = None) -> List[Dict[str, Any]]:
    query = select(usage_events).where(usage_events.c.user_id == user_id)
    if usage_key:
        query = query.where(usage_events.c.usage_key == usage_key)

    rows = session.execute(query.order_by(usage_events.c.occurred_at, usage_events.c.id)).all()
    return [
        {
            "user_id": row.user_id,
            "usage_key": row.usage_key,
            "occurred_at": row.occurred_at,
            "metadata": row.metadata,
        }
        for row in rows
    ]


def reduce_usage(session, user_id: str) -> Dict[str, int]:
    """
    Reduce usage events to counts per usage_key.

    Example: {"calculations.performed": 5}
    """
    counts: Dict[str, int] = {}
    for event in get_usage_events(session, user_id):
        counts[event["usage_key"]] = counts.get(event["usage_key"], 0) + 1
    return counts
