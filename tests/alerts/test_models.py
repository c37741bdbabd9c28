# ABOUTME: Tests for the alert rule model
# ABOUTME: Validates formatting helpers and the persisted record format

from datetime import datetime, timezone

from surfwatch.alerts.models import AlertRule


def _rule(**overrides):
    fields = dict(
        id=1, owner_id=10, location_id=1,
        min_wave_height=2, max_wave_height=6,
        min_wind_speed=0, max_wind_speed=15,
        preferred_wind_directions={"W", "NW"},
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return AlertRule(**fields)


class TestAlertRule:
    def test_directions_stored_as_frozenset(self):
        rule = _rule(preferred_wind_directions=["W", "W", "NW"])
        assert rule.preferred_wind_directions == frozenset({"W", "NW"})

    def test_defaults(self):
        rule = _rule()
        assert rule.enabled is True
        assert rule.last_triggered_at is None
        assert rule.notifications_sent_count == 0

    def test_formatted_ranges(self):
        rule = _rule()
        assert rule.formatted_wave_height_range == "2.0-6.0 ft"
        assert rule.formatted_wind_speed_range == "0.0-15.0 mph"
        assert rule.formatted_wind_directions == "NW, W"

    def test_to_dict_uses_record_keys(self):
        data = _rule(last_triggered_at=datetime(2025, 6, 1, 12, tzinfo=timezone.utc), notifications_sent_count=4).to_dict()

        assert data["user_id"] == 10
        assert data["spot_id"] == 1
        assert data["preferred_wind_directions"] == ["NW", "W"]
        assert data["last_triggered"] == "2025-06-01T12:00:00+00:00"
        assert data["notifications_sent"] == 4

    def test_from_dict_round_trip(self):
        rule = _rule(last_triggered_at=datetime(2025, 6, 1, 12, tzinfo=timezone.utc))
        assert AlertRule.from_dict(rule.to_dict()) == rule

    def test_from_dict_accepts_zulu_timestamps_and_missing_optionals(self):
        rule = AlertRule.from_dict({
            "id": 5, "user_id": 2, "spot_id": 3,
            "min_wave_height": 1, "max_wave_height": 4,
            "min_wind_speed": 0, "max_wind_speed": 10,
            "created_at": "2025-01-01T00:00:00Z",
        })

        assert rule.preferred_wind_directions == frozenset()
        assert rule.enabled is True
        assert rule.last_triggered_at is None
        assert rule.created_at.tzinfo is not None
