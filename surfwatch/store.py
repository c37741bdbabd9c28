# ABOUTME: Spot and alert registries backing the alert engine
# ABOUTME: In-memory registry for embedding and tests, JSON file registry for the runner

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Iterable

from surfwatch.alerts.models import AlertRule
from surfwatch.weather.models import Location

log = logging.getLogger(__name__)


class UnknownLocation(KeyError):
    """No spot with the requested id."""

    pass


class InMemoryRegistry:
    """Spots and alert rules held in dicts"""

    def __init__(self, locations: Iterable[Location] = (), alerts: Iterable[AlertRule] = ()):
        self._locations = {location.id: location for location in locations}
        self._alerts = {alert.id: alert for alert in alerts}
        self._lock = threading.Lock()

    def list_enabled_alerts(self) -> list[AlertRule]:
        return [alert for alert in self._alerts.values() if alert.enabled]

    def list_locations(self) -> list[Location]:
        return list(self._locations.values())

    def get_location(self, location_id: int) -> Location:
        try:
            return self._locations[location_id]
        except KeyError:
            raise UnknownLocation(location_id) from None

    def save_alert(self, rule: AlertRule) -> None:
        with self._lock:
            self._alerts[rule.id] = rule


class JsonRegistry(InMemoryRegistry):
    """
    Registry loaded from a JSON file of the form

        {"spots": [{"id", "name", "latitude", "longitude", "region"}, ...],
         "alerts": [{"id", "user_id", "spot_id", ...}, ...]}

    save_alert rewrites the file atomically.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        with open(self.path, "r") as f:
            data = json.load(f)

        locations = [
            Location(
                id=spot["id"],
                name=spot["name"],
                latitude=float(spot["latitude"]),
                longitude=float(spot["longitude"]),
                region=spot.get("region"),
            )
            for spot in data.get("spots", [])
        ]
        alerts = [AlertRule.from_dict(alert) for alert in data.get("alerts", [])]
        super().__init__(locations, alerts)
        log.info(f"Loaded {len(locations)} spots and {len(alerts)} alerts from {self.path}")

    def _write(self, alerts: dict) -> None:
        payload = {
            "spots": [
                {
                    "id": location.id,
                    "name": location.name,
                    "latitude": location.latitude,
                    "longitude": location.longitude,
                    "region": location.region,
                }
                for location in self._locations.values()
            ],
            "alerts": [alert.to_dict() for alert in alerts.values()],
        }
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def save_alert(self, rule: AlertRule) -> None:
        # The in-memory view only changes once the file write succeeded
        with self._lock:
            alerts = dict(self._alerts)
            alerts[rule.id] = rule
            self._write(alerts)
            self._alerts = alerts
