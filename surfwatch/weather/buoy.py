# ABOUTME: NDBC buoy client: nearest-station lookup and latest report fetch
# ABOUTME: Every failure surfaces as BuoyUnavailable so callers can fall back to the model

import logging
import math
import threading
from dataclasses import replace
from typing import Optional

from surfwatch.config import Config
from surfwatch.errors import BuoyUnavailable, InvalidData, ProviderError
from surfwatch.weather.buoy_parser import parse_buoy_text
from surfwatch.weather.models import BuoyReading, Location, Station
from surfwatch.weather.transport import HttpTransport

log = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

# Major Southern/Central California buoys
DEFAULT_STATIONS = [
    Station(id="46222", name="San Pedro", latitude=33.618, longitude=-118.317),
    Station(id="46025", name="Santa Monica Bay", latitude=33.749, longitude=-119.053),
    Station(id="46221", name="Santa Monica Bay Nearshore", latitude=33.855, longitude=-118.634),
    Station(id="46086", name="San Clemente Basin", latitude=32.491, longitude=-118.035),
    Station(id="46054", name="West Santa Barbara", latitude=34.265, longitude=-120.477),
    Station(id="46026", name="San Francisco", latitude=37.750, longitude=-122.838),
    Station(id="46012", name="Half Moon Bay", latitude=37.356, longitude=-122.881),
]


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


class BuoyClient:
    """Client for NDBC real-time buoy reports"""

    def __init__(
        self,
        transport: HttpTransport,
        stations: Optional[list[Station]] = None,
        base_url: str = None,
    ):
        self.transport = transport
        self.stations = list(stations) if stations is not None else list(DEFAULT_STATIONS)
        self.base_url = (base_url or Config.NDBC_BASE_URL).rstrip("/")

    def find_nearest_station(self, location: Location) -> Station:
        """
        Closest station to a location by great-circle distance.

        Ties go to the station listed first.
        """
        nearest = None
        nearest_distance = None
        for station in self.stations:
            distance = haversine_km(location.latitude, location.longitude, station.latitude, station.longitude)
            if nearest_distance is None or distance < nearest_distance:
                nearest = station
                nearest_distance = distance

        if nearest is None:
            raise BuoyUnavailable("No buoy stations configured")
        return nearest

    def station_url(self, station: Station) -> str:
        return f"{self.base_url}/{station.id}.txt"

    def fetch_nearest(self, location: Location, cancelled: Optional[threading.Event] = None) -> BuoyReading:
        """
        Fetch the latest reading from the station nearest a location.

        Transport retries stop once `cancelled` is set.

        Raises:
            BuoyUnavailable: network, HTTP, or parse failure
        """
        station = self.find_nearest_station(location)
        url = self.station_url(station)

        try:
            _, body = self.transport.get(url, cancelled=cancelled)
            reading = replace(parse_buoy_text(body), station_id=station.id)
        except (ProviderError, InvalidData) as e:
            log.warning(f"Buoy {station.id} ({station.name}) unavailable: {e}")
            raise BuoyUnavailable(f"Buoy {station.id} unavailable: {e}", station_id=station.id) from e

        log.info(f"Buoy {station.id} reading for {location.name}: {reading}")
        return reading
