# ABOUTME: Command line entry point for forecasts, current conditions and alert checks
# ABOUTME: `watch` runs the periodic alert pass and cache maintenance loop

import argparse
import asyncio
import logging
import sys

from surfwatch.config import Config
from surfwatch.errors import SurfwatchError
from surfwatch.orchestrator import ForecastService, confident_points
from surfwatch.store import JsonRegistry, UnknownLocation

log = logging.getLogger(__name__)


def _print_forecast(forecasts, show_all: bool) -> None:
    points = forecasts if show_all else confident_points(forecasts)
    for point in points:
        water = f" water {point.water_temperature:.1f}°F" if point.water_temperature is not None else ""
        print(
            f"{point.timestamp:%Y-%m-%d %H:%M}Z  {point.wave_height:4.1f} ft @ {point.wave_period:.0f}s  "
            f"wind {point.wind_speed:.0f} mph {point.wind_direction:<3}  "
            f"swell {point.swell_height:.1f} ft{water}  ({point.confidence}%)"
        )


async def _forecast(service: ForecastService, registry: JsonRegistry, args) -> int:
    location = registry.get_location(args.spot_id)
    forecasts = await service.get_forecast(location)
    print(f"Forecast for {location.name}")
    _print_forecast(forecasts, args.all)
    return 0


async def _conditions(service: ForecastService, registry: JsonRegistry, args) -> int:
    location = registry.get_location(args.spot_id)
    conditions = await service.get_current_conditions(location)
    source = "live buoy" if conditions.is_live else "wave model"
    print(
        f"{location.name}: {conditions.formatted_wave_height} @ {conditions.wave_period:.0f}s, "
        f"wind {conditions.formatted_wind_speed} {conditions.wind_direction} ({source})"
    )
    return 0


async def _check_alerts(service: ForecastService, registry: JsonRegistry, args) -> int:
    result = await service.check_alerts()
    print(f"{len(result.fired)} fired, {len(result.not_fired)} not fired, {len(result.failed)} failed")
    return 0


async def _watch_pass(service: ForecastService, registry: JsonRegistry) -> None:
    """One watch iteration: refresh forecasts when due, check alerts, sweep the cache."""
    if service.should_refresh():
        failures = await service.refresh(registry.list_locations())
        if failures:
            log.warning(f"Forecast refresh failed for {len(failures)} spot(s)")
    await service.check_alerts()
    removed = service.cache.sweep()
    if removed:
        log.info(f"Swept {removed} expired forecasts")


async def _watch(service: ForecastService, registry: JsonRegistry, args) -> int:
    interval = args.interval or Config.ALERT_CHECK_INTERVAL_SECONDS
    log.info(f"Checking alerts every {interval}s")
    while True:
        await _watch_pass(service, registry)
        await asyncio.sleep(interval)


COMMANDS = {
    "forecast": _forecast,
    "conditions": _conditions,
    "check-alerts": _check_alerts,
    "watch": _watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="surfwatch", description="Surf forecasts and condition alerts")
    parser.add_argument("--spots", default=Config.SPOTS_FILE, help="JSON file with spots and alerts")
    sub = parser.add_subparsers(dest="command", required=True)

    forecast = sub.add_parser("forecast", help="Show the reconciled forecast for a spot")
    forecast.add_argument("spot_id", type=int)
    forecast.add_argument("--all", action="store_true", help="Include low-confidence points")

    conditions = sub.add_parser("conditions", help="Show current conditions for a spot")
    conditions.add_argument("spot_id", type=int)

    sub.add_parser("check-alerts", help="Run one alert evaluation pass")

    watch = sub.add_parser("watch", help="Run alert passes on an interval")
    watch.add_argument("--interval", type=int, default=None, help="Seconds between passes")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if Config.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        registry = JsonRegistry(args.spots)
        service = ForecastService.from_config(registry)
        return asyncio.run(COMMANDS[args.command](service, registry, args))
    except UnknownLocation as e:
        print(f"Unknown spot: {e}", file=sys.stderr)
        return 2
    except (SurfwatchError, asyncio.TimeoutError, OSError) as e:
        # No fresh cache and no fresh fetch: report, never show stale data
        print(f"No data available: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
