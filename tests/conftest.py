# ABOUTME: Shared fixtures: a controllable clock, sample spots, model series and buoy reports
# ABOUTME: Keeps tests independent of wall-clock time and the network

from datetime import datetime, timedelta, timezone

import pytest

from surfwatch.weather.models import BuoyReading, Location, RawModelPoint

T0 = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

# Header, units, then two observations (most recent first)
SAMPLE_BUOY_TEXT = (
    "#YY  MM DD hh mm WDIR WSPD GST  WVHT   DPD   APD MWD   PRES  ATMP  WTMP  DEWP  VIS PTDY  TIDE\n"
    "#yr  mo dy hr mn degT m/s  m/s     m   sec   sec degT   hPa  degC  degC  degC  nmi  hPa    ft\n"
    "25 06 01 11 50 270 12.0 14.0   4.5  10.0   7.2 265 1013.2  17.1  18.4    MM   MM   MM    MM\n"
    "25 06 01 11 20 260 11.0 13.0   4.2   9.0   7.0 260 1013.0  17.0  18.3    MM   MM   MM    MM\n"
)


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def location():
    return Location(id=1, name="San Pedro Point", latitude=33.618, longitude=-118.317)


def make_model_points(count=24, start=T0, first_height=3.0, step=0.1, wind_direction="W"):
    return [
        RawModelPoint(
            timestamp=start + timedelta(hours=i),
            wave_height=first_height + step * i,
            wave_period=12.0,
            wind_speed=8.0,
            wind_direction=wind_direction,
            swell_direction=270.0,
            swell_height=(first_height + step * i) * 0.8,
            swell_period=14.0,
        )
        for i in range(count)
    ]


def make_buoy_reading(wave_height=3.3, water_temperature=64.0, wind_direction="W", wind_speed=10.0):
    return BuoyReading(
        wave_height=wave_height,
        wave_period=11.0,
        wind_speed=wind_speed,
        wind_direction=wind_direction,
        timestamp=T0,
        water_temperature=water_temperature,
        station_id="46222",
    )


@pytest.fixture
def model_points():
    return make_model_points()


@pytest.fixture
def buoy_reading():
    return make_buoy_reading()


@pytest.fixture
def make_points():
    return make_model_points


@pytest.fixture
def make_reading():
    return make_buoy_reading


@pytest.fixture
def buoy_text():
    return SAMPLE_BUOY_TEXT
