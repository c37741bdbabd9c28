# ABOUTME: Evaluates alert rules against current conditions and dispatches notifications
# ABOUTME: Batch passes isolate per-rule failures so one bad spot never blocks the rest

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from surfwatch.alerts.models import AlertRule
from surfwatch.config import Config
from surfwatch.debug import debug_log
from surfwatch.weather.models import CurrentConditions, Location

log = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Surf's Up!"


class AlertState(Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    FIRED = "fired"
    NOT_FIRED = "not_fired"


@dataclass
class AlertBatchResult:
    """Outcome of one evaluation pass over all enabled rules"""
    fired: list[int] = field(default_factory=list)
    not_fired: list[int] = field(default_factory=list)
    failed: dict[int, Exception] = field(default_factory=dict)

    @property
    def evaluated_count(self) -> int:
        return len(self.fired) + len(self.not_fired)


def _in_range(value: float, lower: float, upper: float) -> bool:
    return lower <= value <= upper


def matches(rule: AlertRule, conditions: CurrentConditions) -> bool:
    """
    Check whether conditions satisfy a rule.

    Disabled rules and rules with an inverted range (min > max) never match.
    Bounds are inclusive. An empty preferred direction set accepts any wind.
    """
    if not rule.enabled:
        return False

    if rule.min_wave_height > rule.max_wave_height or rule.min_wind_speed > rule.max_wind_speed:
        debug_log(f"Rule {rule.id} has an inverted range, skipping", "ALERTS")
        return False

    wave_ok = _in_range(conditions.wave_height, rule.min_wave_height, rule.max_wave_height)
    wind_ok = _in_range(conditions.wind_speed, rule.min_wind_speed, rule.max_wind_speed)
    direction_ok = (
        not rule.preferred_wind_directions
        or conditions.wind_direction in rule.preferred_wind_directions
    )
    return wave_ok and wind_ok and direction_ok


def notification_body(location: Optional[Location], conditions: CurrentConditions) -> str:
    spot_name = location.name if location is not None else "Your spot"
    return (
        f"{spot_name} has {conditions.formatted_wave_height} waves with "
        f"{conditions.formatted_wind_speed} {conditions.wind_direction} winds!"
    )


class AlertEngine:
    """
    Fires notifications for alert rules whose conditions are met.

    One evaluate() call fires a rule at most once. A rule that keeps matching
    fires again on the next pass unless min_refire_interval is set.
    """

    def __init__(
        self,
        registry,
        dispatcher,
        clock: Callable[[], datetime] = None,
        min_refire_interval: float = None,
    ):
        self.registry = registry
        self.dispatcher = dispatcher
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.min_refire_interval = (
            min_refire_interval if min_refire_interval is not None else Config.ALERT_MIN_REFIRE_SECONDS
        )
        self._states: dict[int, AlertState] = {}
        self._outcomes: dict[int, AlertState] = {}

    def state_of(self, rule_id: int) -> AlertState:
        return self._states.get(rule_id, AlertState.IDLE)

    def last_outcome(self, rule_id: int) -> Optional[AlertState]:
        """FIRED or NOT_FIRED from the most recent evaluation, None if never evaluated."""
        return self._outcomes.get(rule_id)

    def _in_cooldown(self, rule: AlertRule, now: datetime) -> bool:
        if not self.min_refire_interval or rule.last_triggered_at is None:
            return False
        return (now - rule.last_triggered_at).total_seconds() < self.min_refire_interval

    def _settle(self, rule: AlertRule, fired: bool) -> bool:
        self._outcomes[rule.id] = AlertState.FIRED if fired else AlertState.NOT_FIRED
        self._states.pop(rule.id, None)
        return fired

    def evaluate(self, rule: AlertRule, conditions: CurrentConditions, location: Optional[Location] = None) -> bool:
        """
        Evaluate one rule and fire it if the conditions match.

        On a fire the dispatcher is notified, last_triggered_at and
        notifications_sent_count are updated and the rule is saved.

        Returns:
            True if a notification was dispatched
        """
        self._states[rule.id] = AlertState.EVALUATING
        now = self.clock()

        if not matches(rule, conditions):
            return self._settle(rule, False)

        if self._in_cooldown(rule, now):
            debug_log(f"Rule {rule.id} matched but is cooling down", "ALERTS")
            return self._settle(rule, False)

        metadata = {"type": "alert", "alert_id": rule.id, "spot_id": rule.location_id}
        try:
            self.dispatcher.dispatch(rule.owner_id, NOTIFICATION_TITLE, notification_body(location, conditions), metadata)
        except Exception as e:
            log.error(f"Failed to dispatch notification for alert {rule.id}: {e}")
            return self._settle(rule, False)

        # The rule only advances once the registry accepted the update. A failed
        # save propagates and the next matching pass notifies again.
        updated = replace(rule, last_triggered_at=now, notifications_sent_count=rule.notifications_sent_count + 1)
        try:
            self.registry.save_alert(updated)
        except Exception:
            self._states.pop(rule.id, None)
            raise
        rule.last_triggered_at = updated.last_triggered_at
        rule.notifications_sent_count = updated.notifications_sent_count

        log.info(f"Alert {rule.id} fired for user {rule.owner_id} (sent {rule.notifications_sent_count} total)")
        return self._settle(rule, True)

    async def evaluate_all(
        self,
        conditions_provider: Callable[[Location], Awaitable[CurrentConditions]],
    ) -> AlertBatchResult:
        """
        Evaluate every enabled rule.

        Conditions are fetched once per location and concurrently across
        locations. A failure for one location is recorded against its rules
        and the pass continues.

        Args:
            conditions_provider: Coroutine function returning current
                conditions for a location

        Returns:
            AlertBatchResult with fired, not fired and failed rule ids
        """
        rules = [rule for rule in self.registry.list_enabled_alerts() if rule.enabled]
        result = AlertBatchResult()
        if not rules:
            return result

        rules_by_location: dict[int, list[AlertRule]] = {}
        for rule in rules:
            rules_by_location.setdefault(rule.location_id, []).append(rule)

        async def load(location_id: int):
            location = self.registry.get_location(location_id)
            conditions = await conditions_provider(location)
            return location, conditions

        location_ids = list(rules_by_location)
        outcomes = await asyncio.gather(*(load(lid) for lid in location_ids), return_exceptions=True)

        for location_id, outcome in zip(location_ids, outcomes):
            location_rules = rules_by_location[location_id]

            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                log.warning(f"Skipping {len(location_rules)} alert(s) for location {location_id}: {outcome}")
                for rule in location_rules:
                    result.failed[rule.id] = outcome
                continue

            location, conditions = outcome
            for rule in location_rules:
                try:
                    fired = self.evaluate(rule, conditions, location)
                except Exception as e:
                    log.error(f"Alert {rule.id} evaluation failed: {e}")
                    self._states.pop(rule.id, None)
                    result.failed[rule.id] = e
                    continue
                (result.fired if fired else result.not_fired).append(rule.id)

        log.info(
            f"Alert pass: {len(result.fired)} fired, {len(result.not_fired)} not fired, "
            f"{len(result.failed)} failed"
        )
        return result
