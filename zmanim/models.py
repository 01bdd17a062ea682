"""Pydantic models describing where astronomical times are calculated."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

MINUTE_MILLIS = 60 * 1000
HOUR_MILLIS = MINUTE_MILLIS * 60

# Local mean time offsets at or beyond this many hours indicate that the time zone sits on the
# far side of the antimeridian from the location's longitude.
ANTIMERIDIAN_THRESHOLD_HOURS = 20


class GeoLocation(BaseModel):
    """A named location with coordinates, elevation and an IANA time zone.

    Longitude is east-positive. Elevation is metres above sea level and is only used to adjust
    sunrise and sunset for the earlier/later visibility of the sun from a height.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field("Greenwich, England", description="Human readable location name")
    latitude: float = Field(51.4772, ge=-90.0, le=90.0, description="Latitude in degrees")
    longitude: float = Field(0.0, ge=-180.0, le=180.0, description="Longitude in degrees")
    elevation: float = Field(0.0, ge=0.0, description="Elevation above sea level in meters")
    time_zone: str = Field("GMT", description="IANA time zone identifier")

    @field_validator("time_zone")
    @classmethod
    def validate_time_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone: {value}") from exc
        return value

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    def raw_offset(self, at: Optional[datetime] = None) -> int:
        """Return the standard (non daylight saving) UTC offset of the time zone in milliseconds.

        The offset is evaluated at *at* (now when omitted) since zones change their standard
        offset over history. A naive *at* is read as wall time in this location's zone.
        """

        moment = datetime.now(UTC) if at is None else at
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.zone)
        local = moment.astimezone(self.zone)
        standard = local.utcoffset() - (local.dst() or timedelta(0))
        return int(standard.total_seconds() * 1000)

    def local_mean_time_offset(self, at: Optional[datetime] = None) -> int:
        """Return the offset in milliseconds between local mean time and standard zone time.

        Each degree of longitude is four minutes of time. The result is positive when the
        location is east of its time zone's meridian and negative when west of it.
        """

        return int(self.longitude * 4 * MINUTE_MILLIS - self.raw_offset(at))

    def antimeridian_adjustment(self, at: Optional[datetime] = None) -> int:
        """Return the number of days (-1, 0 or 1) to shift the date for the antimeridian.

        A location such as Samoa (longitude -171.75) that keeps UTC+13 has a local mean time
        offset of about -24.5 hours, so its local date maps onto the previous UTC solar day and
        calculations must use the previous date. The mirror case rolls the date forward.
        """

        local_hours_offset = self.local_mean_time_offset(at) / HOUR_MILLIS
        if local_hours_offset >= ANTIMERIDIAN_THRESHOLD_HOURS:
            return 1
        if local_hours_offset <= -ANTIMERIDIAN_THRESHOLD_HOURS:
            return -1
        return 0
