"""
Calculator API.

GET /api/calculator?distance_miles=570 runs the pure calculator with no
gating and no distance lookup.
"""
from fastapi import APIRouter, Query
from pydantic import BaseModel

from routeready.features.calculator.service import calculate, format_hours
from routeready.models.travel import TravelCalculation

router = APIRouter(prefix="/api/calculator", tags=["calculator"])


class CalculatorResponse(BaseModel):
    calculation: TravelCalculation
    formatted: dict


def formatted_times(calculation: TravelCalculation) -> dict:
    return {
        "driving_time": format_hours(calculation.driving_time),
        "rest_time": format_hours(calculation.rest_time),
        "total_travel_time": format_hours(calculation.total_travel_time),
    }


@router.get("", response_model=CalculatorResponse)
def calculate_endpoint(distance_miles: float = Query(..., ge=0, allow_inf_nan=False)):
    calculation = calculate(distance_miles)
    return CalculatorResponse(calculation=calculation, formatted=formatted_times(calculation))
