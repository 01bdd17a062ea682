"""Interchangeable solar position algorithms used to calculate sunrise and sunset.

Every calculator answers the same question: for a date, a location and a zenith angle, at what
UTC fractional hour does the sun cross that zenith? When the sun never reaches the requested
zenith on that day (continuous polar day or night) the answer is ``None`` rather than an error.
"""

from __future__ import annotations

import json
import logging
import math
import os
from abc import ABC, abstractmethod
from datetime import date
from enum import Enum
from typing import ClassVar, Dict, Optional, Type

import erfa

from .models import GeoLocation

__all__ = [
    "AstronomicalCalculator",
    "NOAACalculator",
    "SunTimesCalculator",
    "SolarEvent",
    "CALCULATORS",
    "get_calculator",
    "get_default",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_CALCULATOR = "noaa"
CALCULATOR_ENV_VAR = "ZMANIM_CALCULATOR"

GEOMETRIC_ZENITH = 90.0
EARTH_RADIUS_KM = 6356.9  # Polar radius, used for the horizon dip at elevation.
JULIAN_DAY_JAN_1_2000 = 2451545.0
JULIAN_DAYS_PER_CENTURY = 36525.0


class SolarEvent(str, Enum):
    """Which side of the day an event falls on."""

    sunrise = "sunrise"
    sunset = "sunset"


class AstronomicalCalculator(ABC):
    """Base class for solar position algorithms.

    Subclasses implement :meth:`utc_sunrise` and :meth:`utc_sunset`. Calculators that can
    compute the sun's meridian transit directly set ``supports_true_noon`` and implement
    :meth:`utc_noon`; callers fall back to interpolating between sunrise and sunset otherwise.
    """

    name: ClassVar[str] = "abstract"
    supports_true_noon: ClassVar[bool] = False

    def __init__(self, refraction: float = 34 / 60.0, solar_radius: float = 16 / 60.0) -> None:
        self.refraction = refraction
        self.solar_radius = solar_radius

    @abstractmethod
    def utc_sunrise(
        self,
        date_: date,
        geo_location: GeoLocation,
        zenith: float,
        adjust_for_elevation: bool,
    ) -> Optional[float]:
        """Return sunrise for *zenith* as a UTC fractional hour, or ``None`` if there is none."""

    @abstractmethod
    def utc_sunset(
        self,
        date_: date,
        geo_location: GeoLocation,
        zenith: float,
        adjust_for_elevation: bool,
    ) -> Optional[float]:
        """Return sunset for *zenith* as a UTC fractional hour, or ``None`` if there is none."""

    def utc_noon(self, date_: date, geo_location: GeoLocation) -> Optional[float]:
        """Return the sun's transit as a UTC fractional hour."""

        raise NotImplementedError(f"{self.name} does not calculate true solar noon")

    @staticmethod
    def elevation_adjustment(elevation: float) -> float:
        """Return the dip of the visible horizon in degrees for an observer at *elevation* m."""

        return math.degrees(math.acos(EARTH_RADIUS_KM / (EARTH_RADIUS_KM + elevation / 1000.0)))

    def adjusted_zenith(self, zenith: float, elevation: float) -> float:
        """Adjust the geometric zenith for refraction, solar radius and elevation.

        Sunrise and sunset are defined by the upper limb of the sun touching the visible
        horizon, so only the geometric zenith is adjusted. Twilight zeniths describe the
        centre of the sun below the mathematical horizon and are returned unchanged.
        """

        if zenith != GEOMETRIC_ZENITH:
            return zenith
        return zenith + self.solar_radius + self.refraction + self.elevation_adjustment(elevation)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return NotImplemented
        return self.refraction == other.refraction and self.solar_radius == other.solar_radius

    def __hash__(self) -> int:
        return hash((type(self), self.refraction, self.solar_radius))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(refraction={self.refraction!r}, solar_radius={self.solar_radius!r})"


def _normalize_hours(hours: float) -> float:
    return hours % 24.0


# NOAA solar calculator -------------------------------------------------------------------------


def _julian_day(date_: date) -> float:
    """Julian day at 0h UT of the given calendar date."""

    djm0, djm = erfa.cal2jd(date_.year, date_.month, date_.day)
    return float(djm0 + djm)


def _julian_centuries(julian_day: float) -> float:
    return (julian_day - JULIAN_DAY_JAN_1_2000) / JULIAN_DAYS_PER_CENTURY


def _julian_day_from_centuries(julian_centuries: float) -> float:
    return julian_centuries * JULIAN_DAYS_PER_CENTURY + JULIAN_DAY_JAN_1_2000


def _sun_geometric_mean_longitude(julian_centuries: float) -> float:
    longitude = 280.46646 + julian_centuries * (36000.76983 + 0.0003032 * julian_centuries)
    return longitude % 360.0


def _sun_geometric_mean_anomaly(julian_centuries: float) -> float:
    return 357.52911 + julian_centuries * (35999.05029 - 0.0001537 * julian_centuries)


def _earth_orbit_eccentricity(julian_centuries: float) -> float:
    return 0.016708634 - julian_centuries * (0.000042037 + 0.0000001267 * julian_centuries)


def _sun_equation_of_center(julian_centuries: float) -> float:
    m = math.radians(_sun_geometric_mean_anomaly(julian_centuries))
    return (
        math.sin(m) * (1.914602 - julian_centuries * (0.004817 + 0.000014 * julian_centuries))
        + math.sin(2 * m) * (0.019993 - 0.000101 * julian_centuries)
        + math.sin(3 * m) * 0.000289
    )


def _sun_true_longitude(julian_centuries: float) -> float:
    return _sun_geometric_mean_longitude(julian_centuries) + _sun_equation_of_center(julian_centuries)


def _sun_apparent_longitude(julian_centuries: float) -> float:
    omega = 125.04 - 1934.136 * julian_centuries
    return _sun_true_longitude(julian_centuries) - 0.00569 - 0.00478 * math.sin(math.radians(omega))


def _mean_obliquity_of_ecliptic(julian_centuries: float) -> float:
    seconds = 21.448 - julian_centuries * (
        46.8150 + julian_centuries * (0.00059 - julian_centuries * 0.001813)
    )
    return 23.0 + (26.0 + seconds / 60.0) / 60.0


def _obliquity_correction(julian_centuries: float) -> float:
    omega = 125.04 - 1934.136 * julian_centuries
    return _mean_obliquity_of_ecliptic(julian_centuries) + 0.00256 * math.cos(math.radians(omega))


def _sun_declination(julian_centuries: float) -> float:
    obliquity = math.radians(_obliquity_correction(julian_centuries))
    apparent_longitude = math.radians(_sun_apparent_longitude(julian_centuries))
    return math.degrees(math.asin(math.sin(obliquity) * math.sin(apparent_longitude)))


def _equation_of_time(julian_centuries: float) -> float:
    """Difference between true and mean solar time, in minutes."""

    epsilon = _obliquity_correction(julian_centuries)
    l0 = math.radians(_sun_geometric_mean_longitude(julian_centuries))
    e = _earth_orbit_eccentricity(julian_centuries)
    m = math.radians(_sun_geometric_mean_anomaly(julian_centuries))
    y = math.tan(math.radians(epsilon) / 2.0) ** 2

    equation_of_time = (
        y * math.sin(2 * l0)
        - 2 * e * math.sin(m)
        + 4 * e * y * math.sin(m) * math.cos(2 * l0)
        - 0.5 * y * y * math.sin(4 * l0)
        - 1.25 * e * e * math.sin(2 * m)
    )
    return math.degrees(equation_of_time) * 4.0


def _sun_hour_angle(
    latitude: float, solar_declination: float, zenith: float, event: SolarEvent
) -> Optional[float]:
    """Hour angle in radians of the sun at *zenith*, or ``None`` if it never gets there."""

    lat_rad = math.radians(latitude)
    sd_rad = math.radians(solar_declination)
    cos_hour_angle = math.cos(math.radians(zenith)) / (
        math.cos(lat_rad) * math.cos(sd_rad)
    ) - math.tan(lat_rad) * math.tan(sd_rad)
    if not -1.0 <= cos_hour_angle <= 1.0:
        return None
    hour_angle = math.acos(cos_hour_angle)
    return -hour_angle if event is SolarEvent.sunset else hour_angle


def _solar_noon_utc(julian_centuries: float, longitude: float) -> float:
    """Minutes after 0h UTC of the sun's transit; *longitude* is west-positive."""

    julian_day = _julian_day_from_centuries(julian_centuries)
    tnoon = _julian_centuries(julian_day + longitude / 360.0)
    solar_noon = 720.0 + longitude * 4.0 - _equation_of_time(tnoon)
    # second pass at the estimated time of noon
    newt = _julian_centuries(julian_day - 0.5 + solar_noon / 1440.0)
    return 720.0 + longitude * 4.0 - _equation_of_time(newt)


def _solar_event_minutes(
    julian_centuries: float,
    latitude: float,
    longitude: float,
    zenith: float,
    event: SolarEvent,
) -> Optional[float]:
    hour_angle = _sun_hour_angle(latitude, _sun_declination(julian_centuries), zenith, event)
    if hour_angle is None:
        return None
    delta = longitude - math.degrees(hour_angle)
    return 720.0 + 4.0 * delta - _equation_of_time(julian_centuries)


def _solar_event_utc(
    julian_day: float, latitude: float, longitude: float, zenith: float, event: SolarEvent
) -> Optional[float]:
    """Minutes after 0h UTC of the event, refined in two passes from solar noon."""

    noon = _solar_noon_utc(_julian_centuries(julian_day), longitude)
    first_pass = _solar_event_minutes(
        _julian_centuries(julian_day + noon / 1440.0), latitude, longitude, zenith, event
    )
    if first_pass is None:
        return None
    return _solar_event_minutes(
        _julian_centuries(julian_day + first_pass / 1440.0), latitude, longitude, zenith, event
    )


class NOAACalculator(AstronomicalCalculator):
    """The NOAA solar calculator, based on the algorithms of Jean Meeus.

    Accurate to about a minute for latitudes within the polar circles and supports the sun's
    true transit. See https://gml.noaa.gov/grad/solcalc/ for the reference spreadsheets.
    """

    name = "noaa"
    supports_true_noon = True

    def _utc_event(
        self,
        date_: date,
        geo_location: GeoLocation,
        zenith: float,
        adjust_for_elevation: bool,
        event: SolarEvent,
    ) -> Optional[float]:
        elevation = geo_location.elevation if adjust_for_elevation else 0.0
        minutes = _solar_event_utc(
            _julian_day(date_),
            geo_location.latitude,
            -geo_location.longitude,
            self.adjusted_zenith(zenith, elevation),
            event,
        )
        if minutes is None:
            return None
        return _normalize_hours(minutes / 60.0)

    def utc_sunrise(self, date_, geo_location, zenith, adjust_for_elevation):
        return self._utc_event(date_, geo_location, zenith, adjust_for_elevation, SolarEvent.sunrise)

    def utc_sunset(self, date_, geo_location, zenith, adjust_for_elevation):
        return self._utc_event(date_, geo_location, zenith, adjust_for_elevation, SolarEvent.sunset)

    def utc_noon(self, date_, geo_location):
        noon = _solar_noon_utc(_julian_centuries(_julian_day(date_)), -geo_location.longitude)
        return _normalize_hours(noon / 60.0)


# US Naval Observatory "Almanac for Computers" ---------------------------------------------------

DEG_PER_HOUR = 360.0 / 24.0


def _hours_from_meridian(longitude: float) -> float:
    return longitude / DEG_PER_HOUR


def _approx_time_days(day_of_year: int, hours_from_meridian: float, event: SolarEvent) -> float:
    event_hour = 6.0 if event is SolarEvent.sunrise else 18.0
    return day_of_year + (event_hour - hours_from_meridian) / 24.0


def _usno_mean_anomaly(day_of_year: int, longitude: float, event: SolarEvent) -> float:
    return 0.9856 * _approx_time_days(day_of_year, _hours_from_meridian(longitude), event) - 3.289


def _usno_true_longitude(mean_anomaly: float) -> float:
    m = math.radians(mean_anomaly)
    longitude = mean_anomaly + 1.916 * math.sin(m) + 0.020 * math.sin(2 * m) + 282.634
    return longitude % 360.0


def _usno_right_ascension_hours(true_longitude: float) -> float:
    right_ascension = math.degrees(math.atan(0.91764 * math.tan(math.radians(true_longitude))))
    # keep the right ascension in the same quadrant as the true longitude
    l_quadrant = math.floor(true_longitude / 90.0) * 90.0
    ra_quadrant = math.floor(right_ascension / 90.0) * 90.0
    return (right_ascension + (l_quadrant - ra_quadrant)) / DEG_PER_HOUR


def _usno_cos_local_hour_angle(true_longitude: float, latitude: float, zenith: float) -> float:
    sin_dec = 0.39782 * math.sin(math.radians(true_longitude))
    cos_dec = math.cos(math.asin(sin_dec))
    lat_rad = math.radians(latitude)
    return (math.cos(math.radians(zenith)) - sin_dec * math.sin(lat_rad)) / (cos_dec * math.cos(lat_rad))


class SunTimesCalculator(AstronomicalCalculator):
    """Sunrise/sunset algorithm published by the US Naval Observatory's Almanac for Computers.

    Works from the day of year alone and has no notion of the sun's true transit, so
    ``supports_true_noon`` is False.
    """

    name = "usno"
    supports_true_noon = False

    def _utc_event(
        self,
        date_: date,
        geo_location: GeoLocation,
        zenith: float,
        adjust_for_elevation: bool,
        event: SolarEvent,
    ) -> Optional[float]:
        elevation = geo_location.elevation if adjust_for_elevation else 0.0
        zenith = self.adjusted_zenith(zenith, elevation)
        day_of_year = date_.timetuple().tm_yday

        true_longitude = _usno_true_longitude(
            _usno_mean_anomaly(day_of_year, geo_location.longitude, event)
        )
        cos_local_hour_angle = _usno_cos_local_hour_angle(
            true_longitude, geo_location.latitude, zenith
        )
        if not -1.0 <= cos_local_hour_angle <= 1.0:
            return None

        local_hour_angle = math.degrees(math.acos(cos_local_hour_angle))
        if event is SolarEvent.sunrise:
            local_hour_angle = 360.0 - local_hour_angle

        hours_from_meridian = _hours_from_meridian(geo_location.longitude)
        local_mean_time = (
            local_hour_angle / DEG_PER_HOUR
            + _usno_right_ascension_hours(true_longitude)
            - 0.06571 * _approx_time_days(day_of_year, hours_from_meridian, event)
            - 6.622
        )
        return _normalize_hours(local_mean_time - hours_from_meridian)

    def utc_sunrise(self, date_, geo_location, zenith, adjust_for_elevation):
        return self._utc_event(date_, geo_location, zenith, adjust_for_elevation, SolarEvent.sunrise)

    def utc_sunset(self, date_, geo_location, zenith, adjust_for_elevation):
        return self._utc_event(date_, geo_location, zenith, adjust_for_elevation, SolarEvent.sunset)


CALCULATORS: Dict[str, Type[AstronomicalCalculator]] = {
    NOAACalculator.name: NOAACalculator,
    SunTimesCalculator.name: SunTimesCalculator,
}


def get_calculator(name: str) -> AstronomicalCalculator:
    """Return a new calculator for the registered *name* (case-insensitive)."""

    try:
        calculator_cls = CALCULATORS[name.strip().lower()]
    except KeyError as exc:
        raise ValueError(
            f"Unsupported calculator: {name!r} (expected one of {sorted(CALCULATORS)})"
        ) from exc
    return calculator_cls()


def get_default() -> AstronomicalCalculator:
    """Return the calculator selected by ``ZMANIM_CALCULATOR``, NOAA when unset."""

    name = os.environ.get(CALCULATOR_ENV_VAR) or DEFAULT_CALCULATOR
    calculator = get_calculator(name)
    LOGGER.info(json.dumps({"event": "calculator_selected", "calculator": calculator.name}))
    return calculator
