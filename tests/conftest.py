from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from zmanim import AstronomicalCalendar, GeoLocation, NOAACalculator, SunTimesCalculator

EQUINOX = date(2023, 3, 20)
SUMMER_SOLSTICE = date(2023, 6, 21)
WINTER_SOLSTICE = date(2023, 12, 21)

LAKEWOOD = GeoLocation(
    name="Lakewood, NJ",
    latitude=40.0828,
    longitude=-74.2094,
    elevation=20.0,
    time_zone="America/New_York",
)

FORT_CONGER = GeoLocation(
    name="Fort Conger, NU Canada",
    latitude=81.7449398,
    longitude=-64.7945858,
    elevation=127.0,
    time_zone="America/Toronto",
)


@pytest.fixture(autouse=True)
def default_calculator(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ZMANIM_CALCULATOR", raising=False)


@pytest.fixture
def lakewood() -> AstronomicalCalendar:
    return AstronomicalCalendar(LAKEWOOD, EQUINOX, NOAACalculator())


@pytest.fixture
def lakewood_usno() -> AstronomicalCalendar:
    return AstronomicalCalendar(LAKEWOOD, EQUINOX, SunTimesCalculator())
