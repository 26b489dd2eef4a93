from ..extensions import db
from .base import TimestampMixin


class SelectionProfile(db.Model, TimestampMixin):
    """Saved interaction filter plus its recurring evaluation schedule."""
    __tablename__ = "selection_profiles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    evaluation_form_id = db.Column(db.Integer, db.ForeignKey("rubrics.id"))

    # filters
    direction = db.Column(db.String(10), default="all")  # all/inbound/outbound
    queues = db.Column(db.JSON)      # [{"queueId": "12", "queueName": "Billing"}]
    agents = db.Column(db.JSON)      # [{"agentId": "7", "agentName": "..."}] or ["7"]
    work_codes = db.Column(db.JSON)  # [{"code": "SALE"}] or ["SALE"]
    channels = db.Column(db.JSON)    # ["call", "whatsapp"]
    min_call_duration = db.Column(db.Integer, default=0)
    date_from = db.Column(db.DateTime)
    date_to = db.Column(db.DateTime)

    # schedule
    scheduler_enabled = db.Column(db.Boolean, default=False, nullable=False)
    cron_expression = db.Column(db.String(120), default="0 17 * * *")
    max_evaluations = db.Column(db.Integer, default=50)
    evaluator_id = db.Column(db.String(64))
    evaluator_name = db.Column(db.String(120))

    def schedule_dict(self):
        return {
            "enabled": bool(self.scheduler_enabled),
            "cronExpression": self.cron_expression,
            "maxEvaluations": self.max_evaluations,
            "evaluatorId": self.evaluator_id,
            "evaluatorName": self.evaluator_name,
        }

    def __repr__(self) -> str:
        return f"<SelectionProfile id={self.id} name={self.name!r}>"
