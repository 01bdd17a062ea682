"""Astronomical time calculations underlying zmanim."""

from .astronomical_calendar import (
    ASTRONOMICAL_ZENITH,
    CIVIL_ZENITH,
    GEOMETRIC_ZENITH,
    NAUTICAL_ZENITH,
    AstronomicalCalendar,
)
from .calculators import (
    AstronomicalCalculator,
    NOAACalculator,
    SunTimesCalculator,
    get_calculator,
    get_default,
)
from .models import GeoLocation

__all__ = [
    "AstronomicalCalendar",
    "AstronomicalCalculator",
    "NOAACalculator",
    "SunTimesCalculator",
    "GeoLocation",
    "get_calculator",
    "get_default",
    "GEOMETRIC_ZENITH",
    "CIVIL_ZENITH",
    "NAUTICAL_ZENITH",
    "ASTRONOMICAL_ZENITH",
]
