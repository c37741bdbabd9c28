# ABOUTME: Per-location cache of reconciled forecasts with lazy time-based expiry
# ABOUTME: Backed by an in-memory store or one JSON file per location for offline use

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional

from surfwatch.config import Config
from surfwatch.weather.models import ReconciledForecast

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    location_id: int
    forecasts: tuple[ReconciledForecast, ...]
    written_at: datetime

    def age_seconds(self, now: datetime) -> float:
        return (now - self.written_at).total_seconds()


class MemoryForecastStore:
    """Keeps entries in a dict. Entries are replaced whole, never mutated."""

    def __init__(self):
        self._entries: dict[int, CacheEntry] = {}

    def load(self, location_id: int) -> Optional[CacheEntry]:
        return self._entries.get(location_id)

    def save(self, entry: CacheEntry) -> None:
        self._entries[entry.location_id] = entry

    def delete(self, location_id: int) -> None:
        self._entries.pop(location_id, None)

    def location_ids(self) -> list[int]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries = {}


class FileForecastStore:
    """
    One JSON file per location under a cache directory.

    Files are written to a temporary name and renamed into place, so a
    reader sees either the previous file or the new one.
    """

    PREFIX = "forecast_"

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, location_id: int) -> Path:
        return self.directory / f"{self.PREFIX}{location_id}.json"

    def load(self, location_id: int) -> Optional[CacheEntry]:
        path = self._path(location_id)
        try:
            with open(path, "r") as f:
                data = json.load(f)
            return CacheEntry(
                location_id=data["location_id"],
                forecasts=tuple(ReconciledForecast.from_dict(item) for item in data["forecasts"]),
                written_at=datetime.fromisoformat(data["written_at"]),
            )
        except FileNotFoundError:
            return None
        except (ValueError, KeyError, TypeError) as e:
            log.warning(f"Ignoring unreadable cache file {path}: {e}")
            return None

    def save(self, entry: CacheEntry) -> None:
        payload = {
            "location_id": entry.location_id,
            "written_at": entry.written_at.isoformat(),
            "forecasts": [forecast.to_dict() for forecast in entry.forecasts],
        }
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f)
            os.replace(tmp_path, self._path(entry.location_id))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def delete(self, location_id: int) -> None:
        try:
            self._path(location_id).unlink()
        except FileNotFoundError:
            pass

    def location_ids(self) -> list[int]:
        ids = []
        for path in self.directory.glob(f"{self.PREFIX}*.json"):
            try:
                ids.append(int(path.stem[len(self.PREFIX):]))
            except ValueError:
                continue
        return ids

    def clear(self) -> None:
        for path in self.directory.glob(f"{self.PREFIX}*.json"):
            path.unlink(missing_ok=True)


class ForecastCache:
    """
    Reconciled forecasts keyed by location id.

    Reads check the entry age (lazy expiry): entries older than
    max_cache_age are misses but stay in the store until sweep() or
    invalidate_all(). Writes to one location are serialised by a
    per-location lock; reads take no lock.
    """

    def __init__(
        self,
        store=None,
        max_cache_age: float = None,
        clock: Callable[[], datetime] = None,
        offline_mode: bool = None,
    ):
        self.store = store if store is not None else MemoryForecastStore()
        self.max_cache_age = max_cache_age if max_cache_age is not None else Config.MAX_CACHE_AGE_SECONDS
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.offline_mode = offline_mode if offline_mode is not None else Config.ENABLE_OFFLINE_MODE

        self._locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(cls) -> "ForecastCache":
        store = FileForecastStore(Config.CACHE_DIR) if Config.CACHE_DIR else MemoryForecastStore()
        return cls(store=store)

    def _lock_for(self, location_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(location_id)
            if lock is None:
                lock = self._locks[location_id] = threading.Lock()
            return lock

    def _is_fresh(self, entry: CacheEntry, now: datetime) -> bool:
        return entry.age_seconds(now) < self.max_cache_age

    def get(self, location_id: int) -> Optional[list[ReconciledForecast]]:
        """
        Cached forecasts for a location if still fresh.

        Returns:
            The forecast list, or None on a miss (absent or expired)
        """
        if not self.offline_mode:
            return None

        entry = self.store.load(location_id)
        if entry is None:
            return None

        if not self._is_fresh(entry, self.clock()):
            log.info(f"Cache entry for location {location_id} expired")
            return None

        return list(entry.forecasts)

    def is_stale(self, location_id: int) -> bool:
        """Check if a location needs a fresh forecast."""
        return self.get(location_id) is None

    def put(self, location_id: int, forecasts: Iterable[ReconciledForecast]) -> None:
        """Store forecasts for a location, stamped with the current time."""
        entry = CacheEntry(
            location_id=location_id,
            forecasts=tuple(forecasts),
            written_at=self.clock(),
        )
        with self._lock_for(location_id):
            self.store.save(entry)

    def invalidate_all(self) -> None:
        """Hard-delete every entry (logout, test reset)."""
        self.store.clear()
        log.info("Forecast cache cleared")

    def sweep(self) -> int:
        """
        Evict entries older than max_cache_age.

        Returns:
            Number of entries removed
        """
        now = self.clock()
        removed = 0
        for location_id in self.store.location_ids():
            with self._lock_for(location_id):
                entry = self.store.load(location_id)
                if entry is not None and not self._is_fresh(entry, now):
                    self.store.delete(location_id)
                    removed += 1

        if removed:
            log.info(f"Cache sweep removed {removed} expired entries")
        return removed
