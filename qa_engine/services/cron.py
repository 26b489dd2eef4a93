"""Cron triggers for scheduled profile runs."""
import logging
from datetime import datetime
from typing import Dict, List

from croniter import croniter

from ..errors import InvalidCronExpression

logger = logging.getLogger(__name__)


def validate_cron(expression) -> str:
    expr = (expression or "").strip()
    if not expr or not croniter.is_valid(expr):
        raise InvalidCronExpression(expression)
    return expr


def next_fire_time(expression, after: datetime) -> datetime:
    """First fire time strictly after ``after`` (naive UTC in, naive UTC out)."""
    return croniter(validate_cron(expression), after).get_next(datetime)


class CronTrigger:
    def __init__(self, profile_id, expression, armed_at: datetime):
        self.profile_id = profile_id
        self.expression = validate_cron(expression)
        self.next_run = next_fire_time(self.expression, armed_at)

    def advance(self, now: datetime):
        self.next_run = next_fire_time(self.expression, now)

    def to_dict(self):
        return {"profileId": self.profile_id, "cronExpression": self.expression,
                "nextRun": self.next_run.isoformat()}


class CronTriggerRegistry:
    """At most one armed trigger per profile id."""

    def __init__(self):
        self._triggers: Dict[int, CronTrigger] = {}

    def install(self, profile_id, expression, now: datetime) -> CronTrigger:
        trigger = CronTrigger(profile_id, expression, now)
        # replacing an existing trigger never leaves two armed
        self._triggers[profile_id] = trigger
        logger.info("Armed profile %s on %r, next run %s", profile_id, trigger.expression, trigger.next_run)
        return trigger

    def remove(self, profile_id) -> bool:
        removed = self._triggers.pop(profile_id, None) is not None
        if removed:
            logger.info("Disarmed profile %s", profile_id)
        return removed

    def get(self, profile_id):
        return self._triggers.get(profile_id)

    def due(self, now: datetime) -> List[CronTrigger]:
        """Triggers whose next run is at or before ``now``, advanced past ``now``.

        Missed fire times collapse into a single run.
        """
        fired = []
        for trigger in list(self._triggers.values()):
            if trigger.next_run <= now:
                fired.append(trigger)
                trigger.advance(now)
        return fired

    def active_ids(self) -> List[int]:
        return sorted(self._triggers)

    def clear(self):
        self._triggers.clear()
