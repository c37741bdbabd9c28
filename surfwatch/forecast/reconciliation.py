# ABOUTME: Merges wave-model forecasts with buoy observations into calibrated forecasts
# ABOUTME: Also builds current conditions, preferring the live buoy and falling back to the model

import asyncio
import functools
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from surfwatch.debug import debug_log
from surfwatch.errors import BuoyUnavailable, CalculationError, InvalidData, ProviderError
from surfwatch.weather.buoy import BuoyClient
from surfwatch.weather.models import (
    BuoyReading,
    CurrentConditions,
    LiveBuoyConditions,
    Location,
    ModelFallbackConditions,
    RawModelPoint,
    ReconciledForecast,
)
from surfwatch.weather.wave_model import WaveModelClient

log = logging.getLogger(__name__)

MIN_ADJUSTMENT_FACTOR = 0.5
MAX_ADJUSTMENT_FACTOR = 2.0
NEUTRAL_ADJUSTMENT_FACTOR = 1.0

# Confidence drops this much for every full day of lead time
CONFIDENCE_STEP_PER_DAY = 10


def clamp(value, lower, upper):
    return max(lower, min(upper, value))


def adjustment_factor(model_points: list[RawModelPoint], buoy: BuoyReading) -> float:
    """
    Ratio of observed to predicted wave height, clamped to [0.5, 2.0].

    Only the first model point is compared with the buoy, and the resulting
    factor is applied to the whole series.

    Args:
        model_points: Model series, nearest time first
        buoy: Latest buoy observation

    Returns:
        Multiplier for model wave and swell heights
    """
    if not model_points:
        debug_log("Empty model series, using neutral adjustment factor", "RECONCILE")
        return NEUTRAL_ADJUSTMENT_FACTOR

    predicted = model_points[0].wave_height
    if predicted <= 0:
        debug_log(f"Model predicts {predicted}ft now, using neutral adjustment factor", "RECONCILE")
        return NEUTRAL_ADJUSTMENT_FACTOR

    return clamp(buoy.wave_height / predicted, MIN_ADJUSTMENT_FACTOR, MAX_ADJUSTMENT_FACTOR)


def confidence_for(point_time: datetime, now: datetime) -> int:
    """Forecast confidence (0-100) for a point, decaying in day-sized steps."""
    hours_ahead = int((point_time - now).total_seconds() / 3600)
    days_ahead = int(hours_ahead / 24)
    return clamp(100 - days_ahead * CONFIDENCE_STEP_PER_DAY, 0, 100)


class ReconciliationEngine:
    """Builds forecasts and current conditions from the model and buoy clients"""

    def __init__(
        self,
        wave_model_client: WaveModelClient,
        buoy_client: BuoyClient,
        clock: Callable[[], datetime] = None,
        timeout: Optional[float] = None,
    ):
        self.wave_model_client = wave_model_client
        self.buoy_client = buoy_client
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.timeout = timeout

    async def _run_blocking(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    async def _fetch_both(self, location: Location, now: datetime):
        # Executor threads cannot be interrupted; the event stops their retries
        cancelled = threading.Event()
        model_task = asyncio.ensure_future(
            self._run_blocking(self.wave_model_client.fetch_point, location, now, cancelled=cancelled)
        )
        buoy_task = asyncio.ensure_future(
            self._run_blocking(self.buoy_client.fetch_nearest, location, cancelled=cancelled)
        )
        try:
            return await asyncio.gather(model_task, buoy_task)
        finally:
            # gather leaves the sibling running when one side fails or is cancelled.
            # After a success both fetches have returned and the event is moot.
            cancelled.set()
            for task in (model_task, buoy_task):
                if not task.done():
                    task.cancel()

    async def build_forecast(self, location: Location, timeout: Optional[float] = None) -> list[ReconciledForecast]:
        """
        Build the calibrated forecast series for a location.

        Both sources are required: the model provides the trend and the buoy
        calibrates it.

        Args:
            location: Spot to forecast
            timeout: Seconds before both fetches are abandoned (defaults to the engine timeout)

        Returns:
            One ReconciledForecast per model time-point

        Raises:
            CalculationError: either source failed
            asyncio.TimeoutError: the timeout elapsed
        """
        now = self.clock()
        timeout = timeout if timeout is not None else self.timeout

        try:
            model_points, buoy = await asyncio.wait_for(self._fetch_both(location, now), timeout)
        except (ProviderError, InvalidData, BuoyUnavailable) as e:
            log.error(f"Forecast for {location.name} failed: {e}")
            raise CalculationError(f"Forecast for {location.name} requires model and buoy data: {e}") from e

        factor = adjustment_factor(model_points, buoy)
        debug_log(f"{location.name}: buoy {buoy.wave_height}ft, factor {factor:.3f}", "RECONCILE")

        forecasts = [
            ReconciledForecast(
                location_id=location.id,
                timestamp=point.timestamp,
                wave_height=point.wave_height * factor,
                wave_period=point.wave_period,
                wind_speed=point.wind_speed,
                wind_direction=point.wind_direction,
                swell_direction=point.swell_direction,
                swell_height=point.swell_height * factor,
                swell_period=point.swell_period,
                confidence=confidence_for(point.timestamp, now),
                water_temperature=buoy.water_temperature,
            )
            for point in model_points
        ]

        log.info(f"Built {len(forecasts)} forecast points for {location.name}")
        return forecasts

    async def build_current_conditions(self, location: Location) -> CurrentConditions:
        """
        Current conditions for a location.

        Uses the nearest buoy when it reports; otherwise the model's first
        time-point.

        Raises:
            InvalidData: the buoy failed and the model had nothing usable
        """
        try:
            reading = await self._run_blocking(self.buoy_client.fetch_nearest, location)
        except BuoyUnavailable as e:
            log.warning(f"Buoy unavailable for {location.name}, falling back to wave model: {e}")
        else:
            return LiveBuoyConditions(
                location_id=location.id,
                timestamp=reading.timestamp,
                wave_height=reading.wave_height,
                wave_period=reading.wave_period,
                wind_speed=reading.wind_speed,
                wind_direction=reading.wind_direction,
                station_id=reading.station_id,
                water_temperature=reading.water_temperature,
            )

        try:
            model_points = await self._run_blocking(self.wave_model_client.fetch_point, location, self.clock())
        except (ProviderError, InvalidData) as e:
            raise InvalidData(f"No conditions available for {location.name}: {e}") from e

        if not model_points:
            raise InvalidData(f"No conditions available for {location.name}: empty model series")

        current = model_points[0]
        return ModelFallbackConditions(
            location_id=location.id,
            timestamp=current.timestamp,
            wave_height=current.wave_height,
            wave_period=current.wave_period,
            wind_speed=current.wind_speed,
            wind_direction=current.wind_direction,
            swell_direction=current.swell_direction,
            swell_height=current.swell_height,
            swell_period=current.swell_period,
        )
