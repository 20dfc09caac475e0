"""
Distance oracle protocol.

Defines the interface for driving-distance providers (Google Directions, etc.).
This allows swapping providers without changing business logic.
"""
from typing import Protocol, Optional
from dataclasses import dataclass

TRAVEL_MODE_DRIVING = "DRIVING"

STATUS_OK = "OK"
STATUS_NOT_FOUND = "NOT_FOUND"
STATUS_ZERO_RESULTS = "ZERO_RESULTS"
STATUS_OVER_QUERY_LIMIT = "OVER_QUERY_LIMIT"
STATUS_REQUEST_DENIED = "REQUEST_DENIED"
STATUS_INVALID_REQUEST = "INVALID_REQUEST"
STATUS_UNKNOWN_ERROR = "UNKNOWN_ERROR"
STATUS_TIMEOUT = "TIMEOUT"
STATUS_NETWORK_ERROR = "NETWORK_ERROR"
STATUS_NOT_CONFIGURED = "NOT_CONFIGURED"

# User-facing messages per non-OK status
STATUS_MESSAGES = {
    STATUS_NOT_FOUND: "One of the locations could not be found. Check the ZIP or postal code.",
    STATUS_ZERO_RESULTS: "No driving route was found between these locations.",
    STATUS_OVER_QUERY_LIMIT: "The mapping service is busy. Please try again shortly.",
    STATUS_REQUEST_DENIED: "The mapping service refused the request.",
    STATUS_INVALID_REQUEST: "The route request was invalid.",
    STATUS_TIMEOUT: "The mapping service took too long to respond. Please try again.",
    STATUS_NETWORK_ERROR: "Could not reach the mapping service. Please try again.",
    STATUS_NOT_CONFIGURED: "Distance lookups are not configured.",
}
DEFAULT_FAILURE_MESSAGE = "Failed to calculate route. Please try again."


@dataclass
class DistanceRequest:
    origin: str
    destination: str
    travel_mode: str = TRAVEL_MODE_DRIVING


@dataclass
class OracleResponse:
    """Normalized oracle answer; distance/duration are set only when status is OK."""
    status: str
    distance_in_miles: Optional[float] = None
    duration_in_hours: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @classmethod
    def failure(cls, status: str, error: Optional[str] = None) -> "OracleResponse":
        return cls(status=status, error=error or STATUS_MESSAGES.get(status, DEFAULT_FAILURE_MESSAGE))


class DistanceOracle(Protocol):
    """
    Protocol for distance providers.

    Implementations must never raise for provider-side failures; they
    report them as a non-OK OracleResponse.
    """

    async def route(self, request: DistanceRequest) -> OracleResponse:
        """
        Look up one-way driving distance and duration.

        Args:
            request: Origin, destination and travel mode

        Returns:
            OracleResponse with status OK and distance/duration, or a
            non-OK status and error message
        """
        ...
