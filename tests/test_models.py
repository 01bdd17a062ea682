from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from zmanim.models import HOUR_MILLIS, GeoLocation


def test_default_location_is_greenwich() -> None:
    location = GeoLocation()
    assert location.longitude == 0.0
    assert location.time_zone == "GMT"
    assert location.antimeridian_adjustment() == 0


@pytest.mark.parametrize(
    "field, value",
    [
        ("latitude", 90.5),
        ("latitude", -91.0),
        ("longitude", 180.1),
        ("elevation", -1.0),
        ("time_zone", "Mars/Olympus_Mons"),
    ],
)
def test_invalid_fields_are_rejected(field: str, value: object) -> None:
    with pytest.raises(ValidationError):
        GeoLocation(**{field: value})


def test_location_is_frozen() -> None:
    location = GeoLocation()
    with pytest.raises(ValidationError):
        location.latitude = 10.0


def test_raw_offset_ignores_daylight_saving() -> None:
    location = GeoLocation(longitude=-75.0, time_zone="America/New_York")
    winter = datetime(2023, 1, 15, 12, tzinfo=UTC)
    summer = datetime(2023, 7, 15, 12, tzinfo=UTC)
    assert location.raw_offset(winter) == -5 * HOUR_MILLIS
    assert location.raw_offset(summer) == -5 * HOUR_MILLIS


def test_local_mean_time_offset_on_zone_meridian_is_zero() -> None:
    location = GeoLocation(longitude=-75.0, time_zone="America/New_York")
    assert location.local_mean_time_offset(datetime(2023, 7, 15, tzinfo=UTC)) == 0


def test_local_mean_time_offset_east_of_meridian_is_positive() -> None:
    jerusalem = GeoLocation(latitude=31.778, longitude=35.2354, time_zone="Asia/Jerusalem")
    offset = jerusalem.local_mean_time_offset(datetime(2023, 7, 15, tzinfo=UTC))
    # 35.2354 degrees is 140.94 minutes ahead of UTC, 20.94 minutes ahead of UTC+2
    assert offset == pytest.approx(20.9416 * 60_000, abs=10)


def test_antimeridian_adjustment() -> None:
    at = datetime(2023, 6, 21, tzinfo=UTC)
    samoa = GeoLocation(latitude=-13.8333, longitude=-171.75, time_zone="Pacific/Apia")
    far_east_in_western_zone = GeoLocation(latitude=0.0, longitude=179.0, time_zone="Etc/GMT+12")
    lakewood = GeoLocation(latitude=40.0828, longitude=-74.2094, time_zone="America/New_York")

    assert samoa.antimeridian_adjustment(at) == -1
    assert far_east_in_western_zone.antimeridian_adjustment(at) == 1
    assert lakewood.antimeridian_adjustment(at) == 0


def test_deep_copy_is_equal_and_independent() -> None:
    location = GeoLocation(name="Lakewood, NJ", latitude=40.0828, longitude=-74.2094)
    copied = location.model_copy(deep=True)
    assert copied == location
    assert copied is not location
    assert hash(copied) == hash(location)
