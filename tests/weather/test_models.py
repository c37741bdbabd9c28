# ABOUTME: Tests for weather data models
# ABOUTME: Validates coordinate bounds, confidence bounds, serialization and condition variants

import pytest

from surfwatch.weather.models import (
    LiveBuoyConditions,
    Location,
    ModelFallbackConditions,
    ReconciledForecast,
)


def _forecast(clock, confidence=100, water_temperature=None):
    return ReconciledForecast(
        location_id=1,
        timestamp=clock(),
        wave_height=3.3,
        wave_period=12.0,
        wind_speed=8.0,
        wind_direction="W",
        swell_direction=270.0,
        swell_height=2.6,
        swell_period=14.0,
        confidence=confidence,
        water_temperature=water_temperature,
    )


class TestLocation:
    def test_valid_location(self):
        spot = Location(id=1, name="Ocean Beach", latitude=37.7558, longitude=-122.5130)
        assert spot.name == "Ocean Beach"

    @pytest.mark.parametrize("lat,lon", [(91, 0), (-90.5, 0), (0, 181), (0, -180.01)])
    def test_out_of_range_coordinates_rejected(self, lat, lon):
        with pytest.raises(ValueError):
            Location(id=1, name="Nowhere", latitude=lat, longitude=lon)

    def test_location_is_immutable(self, location):
        with pytest.raises(AttributeError):
            location.latitude = 0


class TestReconciledForecast:
    def test_confidence_must_be_in_range(self, clock):
        with pytest.raises(ValueError):
            _forecast(clock, confidence=101)

    def test_dict_round_trip_keeps_timestamp_and_temperature(self, clock):
        forecast = _forecast(clock, water_temperature=64.5)

        restored = ReconciledForecast.from_dict(forecast.to_dict())

        assert restored == forecast
        assert forecast.to_dict()["timestamp"] == "2025-06-01T12:00:00+00:00"


class TestCurrentConditions:
    """Live buoy and model fallback variants"""

    def test_live_buoy_conditions_are_live(self, clock):
        conditions = LiveBuoyConditions(
            location_id=1, timestamp=clock(), wave_height=3.3, wave_period=11,
            wind_speed=12, wind_direction="W", water_temperature=64.0,
        )
        assert conditions.is_live is True
        assert conditions.quality == 3
        assert conditions.formatted_wave_height == "3.3 ft"
        assert conditions.formatted_wind_speed == "12.0 mph"
        assert conditions.formatted_water_temperature == "64.0°F"

    def test_model_fallback_conditions_are_not_live(self, clock):
        conditions = ModelFallbackConditions(
            location_id=1, timestamp=clock(), wave_height=3.0, wave_period=12,
            wind_speed=8, wind_direction="NW", swell_direction=270,
            swell_height=2.4, swell_period=14,
        )
        assert conditions.is_live is False
        assert conditions.quality == 2
        assert conditions.formatted_swell_height == "2.4 ft"
