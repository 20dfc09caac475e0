"""
routeready/models/travel.py

Travel models: oracle distances and calculator output.
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class Recommendation(str, Enum):
    MOTORCOACH = "motorcoach"
    FLIGHT = "flight"


class RouteDistance(BaseModel):
    """One-way road distance and duration returned by the distance oracle."""
    model_config = ConfigDict(frozen=True)

    distance_miles: float = Field(ge=0)
    duration_hours: float = Field(ge=0)


class TravelCalculation(BaseModel):
    """
    Derived travel feasibility for a one-way distance.

    All hour values are decimal hours (8.5 == 8h 30m).
    """
    model_config = ConfigDict(frozen=True)

    total_distance: float
    round_trip_distance: float
    driving_time: float
    rest_stops: int
    rest_time: float
    total_travel_time: float
    recommendation: Recommendation
