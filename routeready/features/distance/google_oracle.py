"""
Google Directions distance oracle.

Calls the Directions API over httpx and normalizes the first route's first
leg into miles/hours.
"""
import logging
from typing import Optional

import httpx

from routeready.features.distance.provider import (
    DistanceRequest,
    OracleResponse,
    STATUS_OK,
    STATUS_NETWORK_ERROR,
    STATUS_NOT_CONFIGURED,
    STATUS_TIMEOUT,
    STATUS_UNKNOWN_ERROR,
    STATUS_ZERO_RESULTS,
    STATUS_MESSAGES,
)

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"
METERS_TO_MILES = 0.000621371
SECONDS_PER_HOUR = 3600.0


class GoogleDirectionsOracle:
    """Google Maps Directions implementation of DistanceOracle."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = DIRECTIONS_URL,
    ):
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self.base_url = base_url

    async def route(self, request: DistanceRequest) -> OracleResponse:
        if not self.api_key:
            logger.error("[oracle] GOOGLE_MAPS_API_KEY is not configured")
            return OracleResponse.failure(STATUS_NOT_CONFIGURED)

        params = {
            "origin": request.origin,
            "destination": request.destination,
            "mode": request.travel_mode.lower(),
            "key": self.api_key,
        }
        logger.debug(
            "[oracle] directions request",
            extra={"origin": request.origin, "destination": request.destination},
        )
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as http:
                res = await http.get(self.base_url, params=params)
                res.raise_for_status()
                data = res.json()
        except httpx.TimeoutException as exc:
            logger.warning("[oracle] directions request timed out: %s", exc)
            return OracleResponse.failure(STATUS_TIMEOUT)
        except httpx.HTTPError as exc:
            logger.warning("[oracle] directions request failed: %s", exc)
            return OracleResponse.failure(STATUS_NETWORK_ERROR)
        except ValueError as exc:
            logger.warning("[oracle] directions response was not JSON: %s", exc)
            return OracleResponse.failure(STATUS_UNKNOWN_ERROR)

        return self._parse(data)

    def _parse(self, data: dict) -> OracleResponse:
        status = data.get("status") or STATUS_UNKNOWN_ERROR
        if status != STATUS_OK:
            error = data.get("error_message") or STATUS_MESSAGES.get(status)
            return OracleResponse.failure(status, error)

        routes = data.get("routes") or []
        if not routes or not routes[0].get("legs"):
            return OracleResponse.failure(STATUS_ZERO_RESULTS)

        leg = routes[0]["legs"][0]
        meters = (leg.get("distance") or {}).get("value")
        seconds = (leg.get("duration") or {}).get("value")
        if meters is None or seconds is None:
            return OracleResponse.failure(STATUS_UNKNOWN_ERROR, "Route is missing distance or duration")

        return OracleResponse(
            status=STATUS_OK,
            distance_in_miles=meters * METERS_TO_MILES,
            duration_in_hours=seconds / SECONDS_PER_HOUR,
        )
