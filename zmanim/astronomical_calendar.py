"""Astronomical times such as sunrise, sunset and twilight for a location and date.

:class:`AstronomicalCalendar` is the numeric base of zmanim calculations. It turns the UTC
fractional hours produced by an :class:`~zmanim.calculators.AstronomicalCalculator` into
timezone-aware datetimes in the location's zone, and builds temporal hours, solar transit and
solar midnight on top of them.

Events that do not happen (no sunrise during polar day, no astronomical twilight during a
northern summer night) are returned as ``None``. Anything built from an absent event is absent
too; none of this is treated as an error.
"""

from __future__ import annotations

import copy
import json
import logging
import math
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Union

from .calculators import AstronomicalCalculator, get_default
from .models import HOUR_MILLIS, MINUTE_MILLIS, GeoLocation

__all__ = [
    "AstronomicalCalendar",
    "GEOMETRIC_ZENITH",
    "CIVIL_ZENITH",
    "NAUTICAL_ZENITH",
    "ASTRONOMICAL_ZENITH",
]

LOGGER = logging.getLogger(__name__)

GEOMETRIC_ZENITH = 90.0
CIVIL_ZENITH = 96.0
NAUTICAL_ZENITH = 102.0
ASTRONOMICAL_ZENITH = 108.0

SUNRISE_DIP_STEP = Decimal("0.0001")
SUNSET_DIP_STEP = Decimal("0.001")

Offset = Union[int, float, timedelta]

_SEA_LEVEL = object()


def _instant(value: datetime) -> datetime:
    return value.astimezone(UTC)


class AstronomicalCalendar:
    """Sunrise, sunset and twilight times for one date at one location.

    The calendar is an immutable value: the ``with_*`` methods return a new calendar rather than
    changing this one, so a calendar can be shared freely between threads.

    Parameters
    ----------
    geo_location:
        Where to calculate. Defaults to Greenwich.
    calendar:
        The working date. A ``date`` or naive ``datetime`` is read in the location's time zone,
        an aware ``datetime`` is converted to it. Defaults to now.
    calculator:
        The solar position algorithm. Defaults to :func:`~zmanim.calculators.get_default`.
    """

    GEOMETRIC_ZENITH = GEOMETRIC_ZENITH
    CIVIL_ZENITH = CIVIL_ZENITH
    NAUTICAL_ZENITH = NAUTICAL_ZENITH
    ASTRONOMICAL_ZENITH = ASTRONOMICAL_ZENITH
    MINUTE_MILLIS = MINUTE_MILLIS
    HOUR_MILLIS = HOUR_MILLIS

    def __init__(
        self,
        geo_location: Optional[GeoLocation] = None,
        calendar: Optional[Union[date, datetime]] = None,
        calculator: Optional[AstronomicalCalculator] = None,
    ) -> None:
        self._geo_location = geo_location if geo_location is not None else GeoLocation()
        self._calendar = self._anchor(calendar)
        self._astronomical_calculator = calculator if calculator is not None else get_default()

    def _anchor(self, calendar: Optional[Union[date, datetime]]) -> datetime:
        zone = self._geo_location.zone
        if calendar is None:
            return datetime.now(zone)
        if not isinstance(calendar, datetime):
            return datetime.combine(calendar, datetime.min.time(), tzinfo=zone)
        if calendar.tzinfo is None:
            return calendar.replace(tzinfo=zone)
        return calendar.astimezone(zone)

    # Lifecycle ---------------------------------------------------------------------------------

    @property
    def calendar(self) -> datetime:
        return self._calendar

    @property
    def geo_location(self) -> GeoLocation:
        return self._geo_location

    @property
    def astronomical_calculator(self) -> AstronomicalCalculator:
        return self._astronomical_calculator

    def with_calendar(self, calendar: Union[date, datetime]) -> "AstronomicalCalendar":
        """Return a copy working on *calendar*, expressed in the location's time zone."""

        derived = self.clone()
        derived._calendar = derived._anchor(calendar)
        return derived

    def with_geo_location(self, geo_location: GeoLocation) -> "AstronomicalCalendar":
        """Return a copy for *geo_location*.

        The working instant is kept and only re-expressed in the new location's time zone.
        """

        derived = self.clone()
        derived._geo_location = geo_location
        derived._calendar = self._calendar.astimezone(geo_location.zone)
        return derived

    def with_astronomical_calculator(
        self, calculator: AstronomicalCalculator
    ) -> "AstronomicalCalendar":
        derived = self.clone()
        derived._astronomical_calculator = calculator
        return derived

    def clone(self) -> "AstronomicalCalendar":
        """Return a calendar that shares no location or calculator with this one."""

        cloned = copy.copy(self)
        cloned._geo_location = self._geo_location.model_copy(deep=True)
        cloned._astronomical_calculator = copy.deepcopy(self._astronomical_calculator)
        return cloned

    def __deepcopy__(self, memo: dict) -> "AstronomicalCalendar":
        return self.clone()

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return NotImplemented
        return (
            self._calendar == other._calendar
            and self._calendar.tzinfo == other._calendar.tzinfo
            and self._geo_location == other._geo_location
            and self._astronomical_calculator == other._astronomical_calculator
        )

    def __hash__(self) -> int:
        # the concrete class takes part so subclasses with the same fields hash apart
        return hash(
            (
                type(self),
                self._calendar,
                str(self._calendar.tzinfo),
                self._geo_location,
                self._astronomical_calculator,
            )
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(geo_location={self._geo_location!r}, "
            f"calendar={self._calendar.isoformat()!r}, "
            f"calculator={self._astronomical_calculator!r})"
        )

    # Raw UTC times -----------------------------------------------------------------------------

    def _adjusted_calendar(self) -> datetime:
        offset = self._geo_location.antimeridian_adjustment(self._calendar)
        if offset == 0:
            return self._calendar
        return self._calendar + timedelta(days=offset)

    def utc_sunrise(self, zenith: float) -> Optional[float]:
        """Sunrise at *zenith* as a UTC fractional hour, adjusted for elevation."""

        return self._astronomical_calculator.utc_sunrise(
            self._adjusted_calendar(), self._geo_location, zenith, True
        )

    def utc_sea_level_sunrise(self, zenith: float) -> Optional[float]:
        return self._astronomical_calculator.utc_sunrise(
            self._adjusted_calendar(), self._geo_location, zenith, False
        )

    def utc_sunset(self, zenith: float) -> Optional[float]:
        """Sunset at *zenith* as a UTC fractional hour, adjusted for elevation."""

        return self._astronomical_calculator.utc_sunset(
            self._adjusted_calendar(), self._geo_location, zenith, True
        )

    def utc_sea_level_sunset(self, zenith: float) -> Optional[float]:
        return self._astronomical_calculator.utc_sunset(
            self._adjusted_calendar(), self._geo_location, zenith, False
        )

    # Date transformer --------------------------------------------------------------------------

    def zoned_datetime_from_time(self, time: Optional[float], is_sunrise: bool) -> Optional[datetime]:
        """Convert a UTC fractional hour on the working date to a datetime in the location's zone.

        The hour is split by truncation at each stage (18.75 is 18:45:00). A UTC time can fall on
        the calendar day before or after the working date when the zone and the longitude are
        far apart, for example a US west coast location calculated in GMT. A sunrise that looks
        later than 18:00 local solar time belongs to the previous day, and a sunset earlier than
        06:00 to the next day.
        """

        if time is None:
            return None

        calculated = time
        hours = int(calculated)
        calculated = (calculated - hours) * 60
        minutes = int(calculated)
        calculated = (calculated - minutes) * 60
        seconds = int(calculated)
        microseconds = int((calculated - seconds) * 1_000_000)

        event_date = self._adjusted_calendar().date()
        local_time_hours = math.floor(self._geo_location.longitude / 15)
        if is_sunrise and local_time_hours + hours > 18:
            event_date -= timedelta(days=1)
        elif not is_sunrise and local_time_hours + hours < 6:
            event_date += timedelta(days=1)

        moment = datetime.combine(event_date, datetime.min.time(), tzinfo=UTC) + timedelta(
            hours=hours, minutes=minutes, seconds=seconds, microseconds=microseconds
        )
        return moment.astimezone(self._geo_location.zone)

    @staticmethod
    def time_offset(time: Optional[datetime], offset: Optional[Offset]) -> Optional[datetime]:
        """Return *time* moved by *offset* (milliseconds, or a ``timedelta``).

        An absent time or an absent offset gives an absent result. The shift is applied to the
        absolute instant, so it is not disturbed by daylight saving transitions.
        """

        if time is None or offset is None:
            return None
        if not isinstance(offset, timedelta):
            if isinstance(offset, float) and math.isnan(offset):
                return None
            offset = timedelta(milliseconds=int(offset))
        return (_instant(time) + offset).astimezone(time.tzinfo)

    # Event accessors ---------------------------------------------------------------------------

    def sunrise(self) -> Optional[datetime]:
        """Sunrise adjusted for elevation, or ``None`` where the sun does not rise."""

        return self.zoned_datetime_from_time(self.utc_sunrise(GEOMETRIC_ZENITH), True)

    def sea_level_sunrise(self) -> Optional[datetime]:
        """Sunrise without the elevation adjustment.

        Twilight and temporal hours are based on this since the amount of light in the sky does
        not depend on the observer's height.
        """

        return self.zoned_datetime_from_time(self.utc_sea_level_sunrise(GEOMETRIC_ZENITH), True)

    def sunset(self) -> Optional[datetime]:
        """Sunset adjusted for elevation, or ``None`` where the sun does not set."""

        return self.zoned_datetime_from_time(self.utc_sunset(GEOMETRIC_ZENITH), False)

    def sea_level_sunset(self) -> Optional[datetime]:
        return self.zoned_datetime_from_time(self.utc_sea_level_sunset(GEOMETRIC_ZENITH), False)

    def sunrise_offset_by_degrees(self, offset_zenith: float) -> Optional[datetime]:
        """Time the sun reaches *offset_zenith* before sunrise, e.g. 108 for astronomical dawn."""

        return self.zoned_datetime_from_time(self.utc_sunrise(offset_zenith), True)

    def sunset_offset_by_degrees(self, offset_zenith: float) -> Optional[datetime]:
        """Time the sun reaches *offset_zenith* after sunset, e.g. 96 for the end of civil twilight."""

        return self.zoned_datetime_from_time(self.utc_sunset(offset_zenith), False)

    def begin_civil_twilight(self) -> Optional[datetime]:
        return self.sunrise_offset_by_degrees(CIVIL_ZENITH)

    def begin_nautical_twilight(self) -> Optional[datetime]:
        return self.sunrise_offset_by_degrees(NAUTICAL_ZENITH)

    def begin_astronomical_twilight(self) -> Optional[datetime]:
        return self.sunrise_offset_by_degrees(ASTRONOMICAL_ZENITH)

    def end_civil_twilight(self) -> Optional[datetime]:
        return self.sunset_offset_by_degrees(CIVIL_ZENITH)

    def end_nautical_twilight(self) -> Optional[datetime]:
        return self.sunset_offset_by_degrees(NAUTICAL_ZENITH)

    def end_astronomical_twilight(self) -> Optional[datetime]:
        return self.sunset_offset_by_degrees(ASTRONOMICAL_ZENITH)

    # Temporal hours and transit ----------------------------------------------------------------

    def temporal_hour(self, start=_SEA_LEVEL, end=_SEA_LEVEL) -> Optional[timedelta]:
        """Return a twelfth of the time between *start* and *end*, truncated to whole seconds.

        Without arguments the day runs from sea level sunrise to sea level sunset. ``None`` is
        returned when either end of the day is absent.
        """

        if start is _SEA_LEVEL:
            start = self.sea_level_sunrise()
        if end is _SEA_LEVEL:
            end = self.sea_level_sunset()
        if start is None or end is None:
            return None
        elapsed = math.floor(end.timestamp()) - math.floor(start.timestamp())
        return timedelta(seconds=int(elapsed / 12))

    def sun_transit(self, start=_SEA_LEVEL, end=_SEA_LEVEL) -> Optional[datetime]:
        """Return solar noon.

        Without arguments this is the sun's true transit when the calculator computes one,
        otherwise the midpoint of sea level sunrise and sunset. With *start* and *end* it is
        always the midpoint of that day, six temporal hours after *start*.
        """

        if start is _SEA_LEVEL and end is _SEA_LEVEL:
            if self._astronomical_calculator.supports_true_noon:
                noon = self._astronomical_calculator.utc_noon(
                    self._adjusted_calendar(), self._geo_location
                )
                return self.zoned_datetime_from_time(noon, False)
            start, end = self.sea_level_sunrise(), self.sea_level_sunset()
        elif start is _SEA_LEVEL or end is _SEA_LEVEL:
            raise TypeError("sun_transit() takes either no arguments or both start and end")

        temporal_hour = self.temporal_hour(start, end)
        if temporal_hour is None:
            return None
        return self.time_offset(start, temporal_hour * 6)

    def solar_midnight(self) -> Optional[datetime]:
        """Return the midpoint between today's transit and tomorrow's."""

        transit = self.sun_transit()
        tomorrow_transit = self.with_calendar(self._calendar + timedelta(days=1)).sun_transit()
        if transit is None or tomorrow_transit is None:
            return None
        return self.time_offset(transit, (_instant(tomorrow_transit) - _instant(transit)) / 2)

    def local_mean_time(self, hours: float) -> datetime:
        """Return the time on the working date when local mean time reads *hours*.

        Local mean time runs at exactly 4 minutes per degree of longitude, so 12.0 gives the
        fixed local noon used by some zmanim. The result always falls on the working date's
        local mean day; no sunrise or sunset day rollover applies.

        Raises
        ------
        ValueError
            If *hours* is not within ``[0, 24)``.
        """

        if hours < 0 or hours >= 24:
            raise ValueError(f"Hours must be between 0 and 23.9999..., got {hours}")
        raw_offset_hours = self._geo_location.raw_offset(self._calendar) / HOUR_MILLIS
        standard_time = datetime.combine(
            self._calendar.date(), datetime.min.time(), tzinfo=UTC
        ) + timedelta(hours=hours - raw_offset_hours)
        return self.time_offset(
            standard_time.astimezone(self._geo_location.zone),
            -self._geo_location.local_mean_time_offset(self._calendar),
        )

    # Degree search -----------------------------------------------------------------------------

    def sunrise_solar_dip_from_offset(self, minutes: float) -> Optional[float]:
        """Return the degrees below the horizon the sun is at *minutes* before sea level sunrise.

        Negative *minutes* search after sunrise. The value is found by stepping the dip by
        0.0001 degrees from zero until the calculated dawn passes the target time. This takes
        thousands of calculations and should not be called in a loop. Returns ``None`` when
        there is no sea level sunrise to measure from.

        Raises
        ------
        ValueError
            If no dip within 360 degrees reaches the target time. The walk gives up after
            3,600,000 calculator calls (360 / 0.0001).
        """

        sea_level_sunrise = self.sea_level_sunrise()
        offset_by_time = self.time_offset(sea_level_sunrise, -(minutes * MINUTE_MILLIS))
        if offset_by_time is None:
            return None
        target = _instant(offset_by_time)

        def keep_going(candidate: Optional[datetime]) -> bool:
            if candidate is None:
                return True
            candidate = _instant(candidate)
            return (minutes < 0 and candidate < target) or (minutes > 0 and candidate > target)

        return self._walk_solar_dip(
            "sunrise",
            minutes,
            SUNRISE_DIP_STEP,
            sea_level_sunrise,
            self.sunrise_offset_by_degrees,
            keep_going,
        )

    def sunset_solar_dip_from_offset(self, minutes: float) -> Optional[float]:
        """Return the degrees below the horizon the sun is at *minutes* after sea level sunset.

        Negative *minutes* search before sunset. Steps by 0.001 degrees, ten times coarser than
        :meth:`sunrise_solar_dip_from_offset`; existing zmanim values depend on both step sizes.
        Returns ``None`` when there is no sea level sunset to measure from.

        Raises
        ------
        ValueError
            If no dip within 360 degrees reaches the target time, after at most 360,000
            calculator calls (360 / 0.001).
        """

        sea_level_sunset = self.sea_level_sunset()
        offset_by_time = self.time_offset(sea_level_sunset, minutes * MINUTE_MILLIS)
        if offset_by_time is None:
            return None
        target = _instant(offset_by_time)

        def keep_going(candidate: Optional[datetime]) -> bool:
            if candidate is None:
                return True
            candidate = _instant(candidate)
            return (minutes > 0 and candidate < target) or (minutes < 0 and candidate > target)

        return self._walk_solar_dip(
            "sunset",
            minutes,
            SUNSET_DIP_STEP,
            sea_level_sunset,
            self.sunset_offset_by_degrees,
            keep_going,
        )

    def _walk_solar_dip(self, side, minutes, step, first_candidate, offset_by_degrees, keep_going):
        # Decimal keeps the dip an exact multiple of the step over many thousands of steps.
        degrees = Decimal(0)
        increment = step if minutes > 0 else -step
        max_iterations = int(Decimal(360) / step)
        candidate = first_candidate
        iterations = 0
        while keep_going(candidate):
            if iterations >= max_iterations:
                raise ValueError(
                    f"No {side} solar dip within 360 degrees matches an offset of {minutes} minutes"
                )
            degrees += increment
            iterations += 1
            candidate = offset_by_degrees(GEOMETRIC_ZENITH + float(degrees))

        LOGGER.debug(
            json.dumps(
                {
                    "event": "solar_dip_resolved",
                    "side": side,
                    "minutes": minutes,
                    "degrees": float(degrees),
                    "iterations": iterations,
                }
            )
        )
        return float(degrees)
