from ..extensions import db


class SchedulerHistory(db.Model):
    """Append-only audit row, one per scheduler run."""
    __tablename__ = "scheduler_history"

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, nullable=False, index=True)
    profile_name = db.Column(db.String(200))
    trigger = db.Column(db.String(10), default="cron")  # cron/manual
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime)
    status = db.Column(db.String(10), nullable=False)  # success/partial/failed
    interactions_found = db.Column(db.Integer, default=0)
    interactions_processed = db.Column(db.Integer, default=0)
    job_ids = db.Column(db.JSON)
    error = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "profileId": self.profile_id,
            "profileName": self.profile_name,
            "trigger": self.trigger,
            "startTime": self.start_time.isoformat() if self.start_time else None,
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "status": self.status,
            "interactionsFound": self.interactions_found,
            "interactionsProcessed": self.interactions_processed,
            "jobIds": self.job_ids or [],
            "error": self.error,
        }
