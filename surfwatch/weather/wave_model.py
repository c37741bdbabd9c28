# ABOUTME: Client for the gridded wave-model point forecast API
# ABOUTME: Requests a coordinate's hourly series and validates the JSON shape

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from surfwatch.config import Config
from surfwatch.errors import InvalidData
from surfwatch.weather.models import Location, RawModelPoint
from surfwatch.weather.transport import HttpTransport

log = logging.getLogger(__name__)

NUMERIC_FIELDS = {
    "waveHeight": "wave_height",
    "wavePeriod": "wave_period",
    "windSpeed": "wind_speed",
    "swellDirection": "swell_direction",
    "swellHeight": "swell_height",
    "swellPeriod": "swell_period",
}


def _parse_time(value) -> datetime:
    if not isinstance(value, str):
        raise InvalidData(f"timestamp must be an ISO-8601 string, got {value!r}")
    try:
        # fromisoformat only accepts a trailing "Z" from Python 3.11
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidData(f"Invalid timestamp {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_point(raw) -> RawModelPoint:
    if not isinstance(raw, dict):
        raise InvalidData(f"time point must be an object, got {type(raw).__name__}")

    try:
        values = {}
        for key, field in NUMERIC_FIELDS.items():
            value = raw[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidData(f"{key} must be numeric, got {value!r}")
            values[field] = float(value)
        wind_direction = raw["windDirection"]
        timestamp = raw["timestamp"]
    except KeyError as e:
        raise InvalidData(f"time point missing {e}") from e

    if not isinstance(wind_direction, str):
        raise InvalidData(f"windDirection must be a string, got {wind_direction!r}")

    return RawModelPoint(
        timestamp=_parse_time(timestamp),
        wind_direction=wind_direction,
        **values,
    )


class WaveModelClient:
    """Client for the wave-model point forecast endpoint"""

    def __init__(
        self,
        transport: HttpTransport,
        api_key: str = None,
        base_url: str = None,
        hourly_points: int = None,
        clock: Callable[[], datetime] = None,
    ):
        self.transport = transport
        self.api_key = api_key if api_key is not None else Config.WAVE_MODEL_API_KEY
        self.base_url = base_url or Config.WAVE_MODEL_URL
        self.hourly_points = hourly_points or Config.HOURLY_FORECAST_POINTS
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def fetch_point(
        self,
        location: Location,
        as_of: Optional[datetime] = None,
        cancelled: Optional[threading.Event] = None,
    ) -> list[RawModelPoint]:
        """
        Fetch the hourly forecast series for a location.

        Args:
            location: Spot to forecast
            as_of: Start of the series (defaults to now)
            cancelled: Stops transport retries once set

        Returns:
            Every time point in ascending timestamp order. hourly_points is the
            expected minimum, a shorter series is logged but still returned

        Raises:
            InvalidData: response is not the expected JSON shape
            ProviderError: HTTP failure after retries
        """
        as_of = as_of or self.clock()
        params = {
            "lat": location.latitude,
            "lon": location.longitude,
            "parameters": Config.WAVE_MODEL_PARAMETERS,
            "time": as_of.astimezone(timezone.utc).isoformat(),
        }
        headers = {"Authorization": self.api_key}

        _, body = self.transport.get(self.base_url, headers=headers, params=params, cancelled=cancelled)

        try:
            data = json.loads(body)
        except (TypeError, ValueError) as e:
            raise InvalidData(f"Invalid JSON response: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("timePoints"), list):
            raise InvalidData("Could not find 'timePoints' list in the API response")

        points = sorted((_parse_point(raw) for raw in data["timePoints"]), key=lambda p: p.timestamp)

        if not points:
            log.warning(f"Wave model returned no time points for {location.name}")
        elif len(points) < self.hourly_points:
            log.warning(
                f"Wave model returned {len(points)} points for {location.name}, "
                f"expected {self.hourly_points}"
            )

        log.info(f"Fetched {len(points)} wave model points for {location.name}")
        return points
