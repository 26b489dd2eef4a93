"""Cron-driven and manual evaluation runs for selection profiles.

The scheduler only selects and queues; scoring happens in the workers. Each
run appends exactly one history row, including runs that fail.
"""
import logging
import threading

from ..errors import MissingRubricReference, ProfileNotFound, ValidationError
from ..extensions import db
from ..models.interaction import channel_family
from ..models.profile import SelectionProfile
from ..queue import JobPriority
from ..utils.time import utcnow
from .cron import CronTriggerRegistry, validate_cron

logger = logging.getLogger(__name__)

SYSTEM_EVALUATOR = {"id": "system", "name": "Automated System"}


def priority_for(channel):
    # chats and emails wait on customers; calls are scored after them
    return JobPriority.HIGH if channel_family(channel) == "text" else JobPriority.NORMAL


def _positive_int(value, what):
    if isinstance(value, bool):
        raise ValidationError(f"{what} must be a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{what} must be a positive integer")
    if number <= 0 or number != float(value):
        raise ValidationError(f"{what} must be a positive integer")
    return number


class EvaluationScheduler:

    def __init__(self, matcher, queue, history, default_max_evaluations=50, clock=utcnow, triggers=None):
        self.matcher = matcher
        self.queue = queue
        self.history = history
        self.default_max_evaluations = default_max_evaluations
        self.clock = clock
        self.triggers = triggers or CronTriggerRegistry()

    def _profile(self, profile_id) -> SelectionProfile:
        profile = SelectionProfile.query.get(profile_id)
        if profile is None:
            raise ProfileNotFound(f"Selection profile {profile_id} not found")
        return profile

    # -- triggers --------------------------------------------------------

    def install(self, profile):
        if not (profile.is_active and profile.scheduler_enabled):
            self.triggers.remove(profile.id)
            return None
        return self.triggers.install(profile.id, profile.cron_expression, self.clock())

    def remove(self, profile_id):
        return self.triggers.remove(profile_id)

    def initialize(self):
        """Arm every active profile with scheduling enabled."""
        self.triggers.clear()
        profiles = SelectionProfile.query.filter_by(is_active=True, scheduler_enabled=True).all()
        for profile in profiles:
            try:
                self.install(profile)
            except ValidationError as e:
                logger.error("Profile %s not scheduled: %s", profile.id, e.message)
        logger.info("Scheduler initialized with %d armed profile(s)", len(self.triggers.active_ids()))
        return self.active_profile_ids()

    def sync(self):
        """Re-read profiles and arm, re-arm or disarm triggers to match."""
        wanted = {p.id: p for p in SelectionProfile.query.filter_by(is_active=True, scheduler_enabled=True)}
        for profile_id in self.triggers.active_ids():
            if profile_id not in wanted:
                self.triggers.remove(profile_id)
        for profile_id, profile in wanted.items():
            current = self.triggers.get(profile_id)
            if current is not None and current.expression == (profile.cron_expression or "").strip():
                continue
            try:
                self.install(profile)
            except ValidationError as e:
                self.triggers.remove(profile_id)
                logger.error("Profile %s not scheduled: %s", profile_id, e.message)

    def active_profile_ids(self):
        return self.triggers.active_ids()

    def update_config(self, profile_id, config: dict):
        profile = self._profile(profile_id)
        enabled = bool(config.get("enabled", profile.scheduler_enabled))
        cron = config.get("cronExpression", profile.cron_expression)
        if "cronExpression" in config or enabled:
            cron = validate_cron(cron)
        max_evaluations = profile.max_evaluations
        if config.get("maxEvaluations") is not None:
            max_evaluations = _positive_int(config["maxEvaluations"], "maxEvaluations")

        profile.scheduler_enabled = enabled
        profile.cron_expression = cron
        profile.max_evaluations = max_evaluations
        if "evaluatorId" in config:
            profile.evaluator_id = config.get("evaluatorId")
        if "evaluatorName" in config:
            profile.evaluator_name = config.get("evaluatorName")
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        # in-flight jobs of a disabled profile keep running
        self.install(profile)
        return profile

    # -- runs ------------------------------------------------------------

    def _evaluator_for(self, profile, evaluator):
        if evaluator:
            return dict(evaluator)
        if profile.evaluator_id:
            return {"id": profile.evaluator_id, "name": profile.evaluator_name or profile.evaluator_id}
        return dict(SYSTEM_EVALUATOR)

    def run_profile(self, profile_id, max_evaluations=None, evaluator=None, trigger="manual"):
        start = self.clock()
        profile = self._profile(profile_id)
        evaluator = self._evaluator_for(profile, evaluator)

        found = 0
        job_ids = []
        try:
            limit = (_positive_int(max_evaluations, "maxEvaluations") if max_evaluations is not None
                     else profile.max_evaluations or self.default_max_evaluations)
            if not profile.evaluation_form_id:
                raise MissingRubricReference(f"Selection profile {profile.id} has no evaluation form")
            candidates = []
            seen = set()
            for interaction in self.matcher.match(profile):
                if interaction.id not in seen:
                    seen.add(interaction.id)
                    candidates.append(interaction)
            found = len(candidates)

            for interaction in candidates:
                if not self.matcher.has_required_content(interaction):
                    logger.info("Skipping interaction %s: no %s content", interaction.id, interaction.channel)
                    continue
                if len(job_ids) >= limit:
                    logger.info("Profile %s reached max evaluations (%d); %d interaction(s) left for a later run",
                                profile.id, limit, found - len(job_ids))
                    break
                payload = {
                    "interaction_id": interaction.id,
                    "agent_ref": interaction.agent_id,
                    "rubric_id": profile.evaluation_form_id,
                    "profile_id": profile.id,
                    "channel": interaction.channel,
                    "evaluator": evaluator,
                }
                try:
                    job_ids.append(self.queue.submit(payload, priority=priority_for(interaction.channel)))
                except Exception:
                    logger.exception("Failed to queue interaction %s for profile %s", interaction.id, profile.id)
        except Exception as e:
            db.session.rollback()
            self.history.record(profile, trigger, start, self.clock(), found, len(job_ids), job_ids, error=e)
            raise

        entry = self.history.record(profile, trigger, start, self.clock(), found, len(job_ids), job_ids)
        return {
            "profileId": profile.id,
            "trigger": trigger,
            "found": found,
            "queued": len(job_ids),
            "jobIds": job_ids,
            "status": entry.status,
            "historyId": entry.id,
        }

    def tick(self, now=None):
        """Run every profile whose trigger is due; errors never disarm a trigger."""
        now = now or self.clock()
        results = []
        for trigger in self.triggers.due(now):
            try:
                results.append(self.run_profile(trigger.profile_id, trigger="cron"))
            except Exception:
                logger.exception("Scheduled run for profile %s failed", trigger.profile_id)
        return results

    def run_forever(self, stop_event=None, poll_interval=30.0):
        stop_event = stop_event or threading.Event()
        self.initialize()
        while not stop_event.is_set():
            try:
                self.sync()
                self.tick()
            except Exception:
                logger.exception("Scheduler tick failed")
            finally:
                # drop the session so the next tick sees changes from the web process
                db.session.remove()
            stop_event.wait(poll_interval)
