# ABOUTME: Tests for the forecast cache and its stores
# ABOUTME: Validates lazy expiry boundaries, hard invalidation, sweeps and file persistence

import threading

import pytest

from surfwatch.cache.manager import (
    ForecastCache,
    FileForecastStore,
    MemoryForecastStore,
)
from surfwatch.weather.models import ReconciledForecast


def _forecasts(clock, location_id=1, count=3, wave_height=3.0):
    return [
        ReconciledForecast(
            location_id=location_id,
            timestamp=clock(),
            wave_height=wave_height + i,
            wave_period=12.0,
            wind_speed=8.0,
            wind_direction="W",
            swell_direction=270.0,
            swell_height=2.0,
            swell_period=14.0,
            confidence=100,
            water_temperature=64.0,
        )
        for i in range(count)
    ]


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryForecastStore()
    return FileForecastStore(str(tmp_path / "cache"))


class TestExpiry:
    """Entries are fresh strictly before written_at + max_cache_age"""

    def test_hit_before_expiry(self, clock, store):
        cache = ForecastCache(store=store, max_cache_age=5, clock=clock, offline_mode=True)
        forecasts = _forecasts(clock)
        cache.put(1, forecasts)

        clock.advance(4.9)

        assert cache.get(1) == forecasts

    def test_miss_after_expiry(self, clock, store):
        cache = ForecastCache(store=store, max_cache_age=5, clock=clock, offline_mode=True)
        cache.put(1, _forecasts(clock))

        clock.advance(5.1)

        assert cache.get(1) is None

    def test_miss_exactly_at_expiry(self, clock, store):
        cache = ForecastCache(store=store, max_cache_age=5, clock=clock, offline_mode=True)
        cache.put(1, _forecasts(clock))

        clock.advance(5)

        assert cache.get(1) is None
        assert cache.is_stale(1) is True

    def test_expired_entry_not_deleted_on_read(self, clock, store):
        """Lazy expiry: the store still holds the entry until a sweep"""
        cache = ForecastCache(store=store, max_cache_age=5, clock=clock, offline_mode=True)
        cache.put(1, _forecasts(clock))
        clock.advance(10)

        assert cache.get(1) is None
        assert store.load(1) is not None

    def test_unknown_location_is_miss(self, clock, store):
        cache = ForecastCache(store=store, max_cache_age=5, clock=clock, offline_mode=True)
        assert cache.get(42) is None

    def test_rewrite_resets_age(self, clock, store):
        cache = ForecastCache(store=store, max_cache_age=5, clock=clock, offline_mode=True)
        cache.put(1, _forecasts(clock))
        clock.advance(4)
        cache.put(1, _forecasts(clock, wave_height=6.0))
        clock.advance(4)

        result = cache.get(1)
        assert result is not None
        assert result[0].wave_height == 6.0


class TestCacheContents:
    def test_returns_forecasts_as_written(self, clock, store):
        cache = ForecastCache(store=store, max_cache_age=60, clock=clock, offline_mode=True)
        forecasts = _forecasts(clock)
        cache.put(1, forecasts)

        assert cache.get(1) == forecasts

    def test_locations_are_independent(self, clock, store):
        cache = ForecastCache(store=store, max_cache_age=60, clock=clock, offline_mode=True)
        cache.put(1, _forecasts(clock, location_id=1))
        cache.put(2, _forecasts(clock, location_id=2, wave_height=9.0))

        assert cache.get(1)[0].wave_height == 3.0
        assert cache.get(2)[0].wave_height == 9.0

    def test_offline_mode_disabled_never_hits(self, clock):
        cache = ForecastCache(max_cache_age=60, clock=clock, offline_mode=False)
        cache.put(1, _forecasts(clock))

        assert cache.get(1) is None


class TestInvalidationAndSweep:
    def test_invalidate_all_removes_everything(self, clock, store):
        cache = ForecastCache(store=store, max_cache_age=60, clock=clock, offline_mode=True)
        cache.put(1, _forecasts(clock))
        cache.put(2, _forecasts(clock))

        cache.invalidate_all()

        assert cache.get(1) is None
        assert cache.get(2) is None
        assert store.location_ids() == []

    def test_sweep_evicts_only_expired(self, clock, store):
        cache = ForecastCache(store=store, max_cache_age=60, clock=clock, offline_mode=True)
        cache.put(1, _forecasts(clock))
        clock.advance(45)
        cache.put(2, _forecasts(clock))
        clock.advance(30)

        removed = cache.sweep()

        assert removed == 1
        assert store.load(1) is None
        assert cache.get(2) is not None

    def test_sweep_on_empty_cache(self, clock, store):
        cache = ForecastCache(store=store, max_cache_age=60, clock=clock, offline_mode=True)
        assert cache.sweep() == 0


class TestConcurrency:
    def test_concurrent_writers_and_readers_see_whole_entries(self, clock, store):
        """Readers get either the old or the new series, never a mix"""
        cache = ForecastCache(store=store, max_cache_age=600, clock=clock, offline_mode=True)
        cache.put(1, _forecasts(clock, count=5, wave_height=1.0))
        errors = []

        def writer(height):
            for _ in range(20):
                cache.put(1, _forecasts(clock, count=5, wave_height=height))

        def reader():
            for _ in range(50):
                result = cache.get(1)
                if result is None or len(result) != 5:
                    errors.append(result)
                    continue
                base = result[0].wave_height
                if [f.wave_height for f in result] != [base + i for i in range(5)]:
                    errors.append(result)

        threads = [threading.Thread(target=writer, args=(h,)) for h in (1.0, 2.0)]
        threads += [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []


class TestFileForecastStore:
    def test_entry_survives_new_store_instance(self, clock, tmp_path):
        directory = str(tmp_path / "cache")
        ForecastCache(store=FileForecastStore(directory), max_cache_age=60, clock=clock, offline_mode=True).put(
            7, _forecasts(clock, location_id=7)
        )

        reopened = ForecastCache(store=FileForecastStore(directory), max_cache_age=60, clock=clock, offline_mode=True)

        assert reopened.get(7) == _forecasts(clock, location_id=7)

    def test_corrupt_file_is_a_miss(self, clock, tmp_path):
        store = FileForecastStore(str(tmp_path))
        (tmp_path / "forecast_3.json").write_text("{not json")
        cache = ForecastCache(store=store, max_cache_age=60, clock=clock, offline_mode=True)

        assert cache.get(3) is None

    def test_location_ids_ignores_other_files(self, tmp_path):
        store = FileForecastStore(str(tmp_path))
        (tmp_path / "forecast_abc.json").write_text("{}")
        (tmp_path / "notes.txt").write_text("hi")

        assert store.location_ids() == []
