# ABOUTME: Data models for locations, raw model points, buoy readings and reconciled forecasts
# ABOUTME: Current conditions are a tagged union of live buoy and model fallback variants

import math
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, Union

# 16-point compass, clockwise from north
CARDINAL_DIRECTIONS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]


def degrees_to_cardinal(degrees: float) -> str:
    """Convert a bearing in degrees to one of the 16 compass points."""
    # Halves round up (11.25 -> NNE), not to even
    index = int(math.floor(degrees / 22.5 + 0.5)) % 16
    return CARDINAL_DIRECTIONS[index]


@dataclass(frozen=True)
class Location:
    """A surf spot from the external spot registry"""
    id: int
    name: str
    latitude: float
    longitude: float
    region: Optional[str] = None

    def __post_init__(self):
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Latitude must be within [-90, 90], got {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Longitude must be within [-180, 180], got {self.longitude}")


@dataclass(frozen=True)
class Station:
    """NDBC buoy station"""
    id: str
    name: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class RawModelPoint:
    """One time sample from the gridded wave model"""
    timestamp: datetime
    wave_height: float      # feet
    wave_period: float      # seconds
    wind_speed: float       # mph
    wind_direction: str     # Compass: "N", "NNE", "NE", etc.
    swell_direction: float  # degrees
    swell_height: float     # feet
    swell_period: float     # seconds


@dataclass(frozen=True)
class BuoyReading:
    """Real-time observation from an NDBC buoy"""
    wave_height: float
    wave_period: float
    wind_speed: float
    wind_direction: str
    timestamp: datetime
    water_temperature: Optional[float] = None
    station_id: Optional[str] = None

    def __str__(self) -> str:
        return (
            f"Waves: {self.wave_height}ft @ {self.wave_period}s, "
            f"Wind: {self.wind_speed} {self.wind_direction}"
        )


@dataclass(frozen=True)
class ReconciledForecast:
    """One calibrated forecast time-point for a location"""
    location_id: int
    timestamp: datetime
    wave_height: float
    wave_period: float
    wind_speed: float
    wind_direction: str
    swell_direction: float
    swell_height: float
    swell_period: float
    confidence: int  # 0-100
    water_temperature: Optional[float] = None

    def __post_init__(self):
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"Confidence must be 0-100, got {self.confidence}")

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ReconciledForecast":
        fields = dict(data)
        fields["timestamp"] = datetime.fromisoformat(fields["timestamp"])
        return cls(**fields)


def _format_feet(value: float) -> str:
    return f"{value:.1f} ft"


def _format_mph(value: float) -> str:
    return f"{value:.1f} mph"


@dataclass(frozen=True)
class LiveBuoyConditions:
    """Current conditions observed by the nearest buoy"""
    location_id: int
    timestamp: datetime
    wave_height: float
    wave_period: float
    wind_speed: float
    wind_direction: str
    station_id: Optional[str] = None
    water_temperature: Optional[float] = None
    quality: int = 3

    @property
    def is_live(self) -> bool:
        return True

    @property
    def formatted_wave_height(self) -> str:
        return _format_feet(self.wave_height)

    @property
    def formatted_wind_speed(self) -> str:
        return _format_mph(self.wind_speed)

    @property
    def formatted_water_temperature(self) -> Optional[str]:
        if self.water_temperature is None:
            return None
        return f"{self.water_temperature:.1f}°F"


@dataclass(frozen=True)
class ModelFallbackConditions:
    """Current conditions taken from the wave model's nearest time-point"""
    location_id: int
    timestamp: datetime
    wave_height: float
    wave_period: float
    wind_speed: float
    wind_direction: str
    swell_direction: float
    swell_height: float
    swell_period: float
    quality: int = 2

    @property
    def is_live(self) -> bool:
        return False

    @property
    def formatted_wave_height(self) -> str:
        return _format_feet(self.wave_height)

    @property
    def formatted_wind_speed(self) -> str:
        return _format_mph(self.wind_speed)

    @property
    def formatted_swell_height(self) -> str:
        return _format_feet(self.swell_height)


CurrentConditions = Union[LiveBuoyConditions, ModelFallbackConditions]
