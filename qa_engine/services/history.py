import logging

from ..extensions import db
from ..models.scheduler_history import SchedulerHistory

logger = logging.getLogger(__name__)

SUCCESS = "success"
PARTIAL = "partial"
FAILED = "failed"


def run_status(found, processed, error=None):
    if error is not None:
        return FAILED
    return SUCCESS if processed == found else PARTIAL


class HistoryRecorder:
    """Append-only writer/reader for scheduler run history."""

    def record(self, profile, trigger, start_time, end_time, found=0, processed=0,
               job_ids=None, error=None) -> SchedulerHistory:
        entry = SchedulerHistory(
            profile_id=profile.id,
            profile_name=profile.name,
            trigger=trigger,
            start_time=start_time,
            end_time=end_time,
            status=run_status(found, processed, error),
            interactions_found=found,
            interactions_processed=processed,
            job_ids=list(job_ids or []),
            error=str(error) if error is not None else None,
        )
        db.session.add(entry)
        db.session.commit()
        logger.info("Profile %s %s run: %s (found=%d processed=%d)",
                    profile.id, trigger, entry.status, found, processed)
        return entry

    def recent(self, profile_id, limit=10):
        return (SchedulerHistory.query
                .filter_by(profile_id=profile_id)
                .order_by(SchedulerHistory.start_time.desc(), SchedulerHistory.id.desc())
                .limit(limit)
                .all())
