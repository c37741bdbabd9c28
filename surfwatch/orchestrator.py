# ABOUTME: Forecast service coordinating the fetch clients, reconciliation, cache and alerts
# ABOUTME: Serves cached forecasts when fresh and rebuilds them on a miss

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from surfwatch.alerts.engine import AlertBatchResult, AlertEngine
from surfwatch.cache.manager import ForecastCache
from surfwatch.config import Config
from surfwatch.debug import debug_log
from surfwatch.forecast.reconciliation import ReconciliationEngine
from surfwatch.notifications import LoggingDispatcher
from surfwatch.weather.buoy import BuoyClient
from surfwatch.weather.models import CurrentConditions, Location, ReconciledForecast
from surfwatch.weather.transport import HttpTransport
from surfwatch.weather.wave_model import WaveModelClient

log = logging.getLogger(__name__)


async def _run_blocking(func, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func, *args)


def confident_points(
    forecasts: Iterable[ReconciledForecast],
    threshold: int = None,
) -> list[ReconciledForecast]:
    """Forecast points at or above the minimum confidence threshold."""
    threshold = threshold if threshold is not None else Config.MINIMUM_CONFIDENCE_THRESHOLD
    return [forecast for forecast in forecasts if forecast.confidence >= threshold]


class ForecastService:
    """Orchestrates forecast building, caching and alert checks"""

    def __init__(
        self,
        engine: ReconciliationEngine,
        cache: ForecastCache,
        alert_engine: Optional[AlertEngine] = None,
        clock: Callable[[], datetime] = None,
        min_refresh_interval: float = None,
    ):
        self.engine = engine
        self.cache = cache
        self.alert_engine = alert_engine
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.min_refresh_interval = (
            min_refresh_interval if min_refresh_interval is not None
            else Config.MINIMUM_REFRESH_INTERVAL_SECONDS
        )
        self._last_refresh: Optional[datetime] = None

    @classmethod
    def from_config(cls, registry, dispatcher=None) -> "ForecastService":
        """Wire up the production components from Config."""
        transport = HttpTransport()
        engine = ReconciliationEngine(
            wave_model_client=WaveModelClient(transport),
            buoy_client=BuoyClient(transport),
            timeout=Config.FORECAST_TIMEOUT_SECONDS,
        )
        alert_engine = AlertEngine(registry, dispatcher or LoggingDispatcher(record=False))
        return cls(engine, ForecastCache.from_config(), alert_engine)

    async def get_forecast(self, location: Location) -> list[ReconciledForecast]:
        """
        Forecast for a location, from cache when fresh.

        Nothing is cached when the build fails or is cancelled.
        """
        cached = await _run_blocking(self.cache.get, location.id)
        if cached is not None:
            debug_log(f"Using cached forecast for {location.name}", "ORCHESTRATOR")
            return cached

        forecasts = await self.engine.build_forecast(location)
        await _run_blocking(self.cache.put, location.id, forecasts)
        return forecasts

    async def get_current_conditions(self, location: Location) -> CurrentConditions:
        return await self.engine.build_current_conditions(location)

    async def refresh(self, locations: Iterable[Location]) -> dict[int, Exception]:
        """
        Rebuild and cache forecasts for several locations concurrently.

        Returns:
            {location_id: error} for locations that failed
        """
        locations = list(locations)

        async def rebuild(location: Location):
            forecasts = await self.engine.build_forecast(location)
            await _run_blocking(self.cache.put, location.id, forecasts)

        outcomes = await asyncio.gather(*(rebuild(loc) for loc in locations), return_exceptions=True)

        failures = {}
        for location, outcome in zip(locations, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                log.warning(f"Refresh failed for {location.name}: {outcome}")
                failures[location.id] = outcome

        self.mark_refreshed()
        return failures

    def should_refresh(self) -> bool:
        """Check if the minimum refresh interval has passed since the last refresh."""
        if self._last_refresh is None:
            return True
        elapsed = (self.clock() - self._last_refresh).total_seconds()
        return elapsed >= self.min_refresh_interval

    def mark_refreshed(self) -> None:
        self._last_refresh = self.clock()

    async def check_alerts(self) -> AlertBatchResult:
        """Run one alert evaluation pass using live current conditions."""
        if self.alert_engine is None:
            raise RuntimeError("ForecastService was built without an alert engine")
        return await self.alert_engine.evaluate_all(self.get_current_conditions)
