"""
routeready/features/calculator/service.py

Travel feasibility calculator.

Maps a one-way driving distance to driving time, DOT rest stops, total
travel time and a motorcoach-vs-flight recommendation. Pure and
deterministic: no I/O, no clock, no configuration lookups.
"""

import math

from routeready.models.travel import Recommendation, TravelCalculation

AVERAGE_SPEED_MPH = 60.0
HOURS_BETWEEN_REST_STOPS = 3.0
REST_STOP_HOURS = 0.5
# 0.5h below the 10-hour DOT daily driving limit
FLIGHT_THRESHOLD_HOURS = 9.5


def calculate(distance_miles: float) -> TravelCalculation:
    """
    Compute travel feasibility for a one-way distance.

    Args:
        distance_miles: One-way road distance in miles (>= 0)

    Returns:
        TravelCalculation

    Raises:
        ValueError: If distance is negative or not a finite number
    """
    distance = float(distance_miles)
    if not math.isfinite(distance):
        raise ValueError("distance_miles must be a finite number")
    if distance < 0:
        raise ValueError("distance_miles must be non-negative")

    driving_time = distance / AVERAGE_SPEED_MPH
    rest_stops = math.ceil(driving_time / HOURS_BETWEEN_REST_STOPS)
    rest_time = rest_stops * REST_STOP_HOURS
    total_travel_time = driving_time + rest_time

    if total_travel_time >= FLIGHT_THRESHOLD_HOURS:
        recommendation = Recommendation.FLIGHT
    else:
        recommendation = Recommendation.MOTORCOACH

    return TravelCalculation(
        total_distance=distance,
        round_trip_distance=distance * 2,
        driving_time=driving_time,
        rest_stops=rest_stops,
        rest_time=rest_time,
        total_travel_time=total_travel_time,
        recommendation=recommendation,
    )


def format_hours(hours: float) -> str:
    """Render decimal hours as '7h 59m' (minutes rounded)."""
    total_minutes = int(round(hours * 60))
    h, m = divmod(total_minutes, 60)
    if h == 0:
        return f"{m}m"
    if m == 0:
        return f"{h}h"
    return f"{h}h {m}m"


def build_share_text(departure: str, destination: str, calculation: TravelCalculation) -> str:
    """Plain-text summary suitable for email/SMS/clipboard sharing."""
    verdict = "Flight" if calculation.recommendation == Recommendation.FLIGHT else "Motorcoach"
    lines = [
        f"Travel Route: {departure} to {destination}",
        f"Distance: {calculation.total_distance:.0f} miles (one way), {calculation.round_trip_distance:.0f} miles round trip",
        f"Driving Time: {format_hours(calculation.driving_time)}",
        f"Rest Stops: {calculation.rest_stops} ({format_hours(calculation.rest_time)})",
        f"Total Travel Time: {format_hours(calculation.total_travel_time)}",
        f"Recommendation: {verdict}",
        "",
        "Calculated with Route Ready",
    ]
    return "\n".join(lines)
