"""
Distance lookup service.

Wraps the configured DistanceOracle with a hard timeout and converts
non-OK answers into OracleUnavailableError.
"""
import asyncio
import logging
from typing import Optional

from routeready.core.config import settings
from routeready.core.errors import OracleUnavailableError
from routeready.core.metrics import oracle_failures_total
from routeready.features.distance.google_oracle import GoogleDirectionsOracle
from routeready.features.distance.provider import (
    DistanceOracle,
    DistanceRequest,
    STATUS_MESSAGES,
    STATUS_TIMEOUT,
    STATUS_UNKNOWN_ERROR,
    DEFAULT_FAILURE_MESSAGE,
)
from routeready.models.travel import RouteDistance

logger = logging.getLogger(__name__)


def get_oracle() -> DistanceOracle:
    """Build the default oracle from settings."""
    return GoogleDirectionsOracle(
        settings.GOOGLE_MAPS_API_KEY,
        timeout_seconds=settings.DISTANCE_TIMEOUT_SECONDS,
    )


def _fail(status: str, error: Optional[str]) -> OracleUnavailableError:
    oracle_failures_total.inc(labels={"status": status})
    logger.warning("[oracle] failure", extra={"status": status, "error_message": error})
    return OracleUnavailableError(
        error or STATUS_MESSAGES.get(status, DEFAULT_FAILURE_MESSAGE),
        oracle_status=status,
    )


async def lookup_route(
    oracle: DistanceOracle,
    origin: str,
    destination: str,
    *,
    timeout_seconds: Optional[float] = None,
) -> RouteDistance:
    """
    Query the oracle for a one-way driving route.

    Raises:
        OracleUnavailableError: On timeout, provider error or non-OK status
    """
    timeout = timeout_seconds if timeout_seconds is not None else settings.DISTANCE_TIMEOUT_SECONDS
    request = DistanceRequest(origin=origin, destination=destination)
    try:
        response = await asyncio.wait_for(oracle.route(request), timeout=timeout)
    except asyncio.TimeoutError:
        raise _fail(STATUS_TIMEOUT, None)
    except OracleUnavailableError:
        raise
    except Exception as exc:
        logger.error("[oracle] unexpected error", exc_info=True)
        raise _fail(STATUS_UNKNOWN_ERROR, None) from exc

    if not response.ok:
        raise _fail(response.status, response.error)

    if response.distance_in_miles is None or response.duration_in_hours is None:
        raise _fail(STATUS_UNKNOWN_ERROR, None)

    return RouteDistance(
        distance_miles=max(0.0, response.distance_in_miles),
        duration_hours=max(0.0, response.duration_in_hours),
    )
