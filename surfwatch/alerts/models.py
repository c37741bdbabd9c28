# ABOUTME: Alert rule model owned by the surrounding application
# ABOUTME: The alert engine only updates last_triggered_at and notifications_sent_count

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class AlertRule:
    """User-defined conditions for a surf alert at one spot"""
    id: int
    owner_id: int
    location_id: int
    min_wave_height: float
    max_wave_height: float
    min_wind_speed: float
    max_wind_speed: float
    preferred_wind_directions: frozenset[str] = field(default_factory=frozenset)
    enabled: bool = True
    last_triggered_at: Optional[datetime] = None
    notifications_sent_count: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        self.preferred_wind_directions = frozenset(self.preferred_wind_directions)

    @property
    def formatted_wave_height_range(self) -> str:
        return f"{self.min_wave_height:.1f}-{self.max_wave_height:.1f} ft"

    @property
    def formatted_wind_speed_range(self) -> str:
        return f"{self.min_wind_speed:.1f}-{self.max_wind_speed:.1f} mph"

    @property
    def formatted_wind_directions(self) -> str:
        return ", ".join(sorted(self.preferred_wind_directions))

    def to_dict(self) -> dict:
        """Serialize using the persisted record's snake_case keys."""
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "spot_id": self.location_id,
            "min_wave_height": self.min_wave_height,
            "max_wave_height": self.max_wave_height,
            "min_wind_speed": self.min_wind_speed,
            "max_wind_speed": self.max_wind_speed,
            "preferred_wind_directions": sorted(self.preferred_wind_directions),
            "enabled": self.enabled,
            "created_at": self.created_at.isoformat(),
            "last_triggered": self.last_triggered_at.isoformat() if self.last_triggered_at else None,
            "notifications_sent": self.notifications_sent_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AlertRule":
        created_at = _parse_datetime(data.get("created_at"))
        return cls(
            id=data["id"],
            owner_id=data["user_id"],
            location_id=data["spot_id"],
            min_wave_height=float(data["min_wave_height"]),
            max_wave_height=float(data["max_wave_height"]),
            min_wind_speed=float(data["min_wind_speed"]),
            max_wind_speed=float(data["max_wind_speed"]),
            preferred_wind_directions=frozenset(data.get("preferred_wind_directions", [])),
            enabled=bool(data.get("enabled", True)),
            last_triggered_at=_parse_datetime(data.get("last_triggered")),
            notifications_sent_count=int(data.get("notifications_sent", 0)),
            created_at=created_at or datetime.now(timezone.utc),
        )
