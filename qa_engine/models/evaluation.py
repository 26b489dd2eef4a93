from ..extensions import db
from .base import TimestampMixin


class Evaluation(db.Model, TimestampMixin):
    """AI evaluation of one interaction, its human overlay and derived scores.

    ``ai_parameters`` is written once by the scoring job. ``human_overlay``,
    ``section_scores`` and the mirrored ``total_score``/``max_score`` are
    rewritten together by every moderation event.
    """
    __tablename__ = "evaluations"

    id = db.Column(db.Integer, primary_key=True)
    interaction_id = db.Column(db.Integer, db.ForeignKey("interactions.id"), nullable=False, unique=True)
    rubric_id = db.Column(db.Integer, db.ForeignKey("rubrics.id"), nullable=False)
    profile_id = db.Column(db.Integer)
    agent_id = db.Column(db.String(64), index=True)
    channel = db.Column(db.String(30))
    evaluator_id = db.Column(db.String(64))
    evaluator_name = db.Column(db.String(120))

    # raw AI output: [{"name", "score", "explanation", "confidence"}]
    ai_parameters = db.Column(db.JSON, nullable=False)
    ai_summary = db.Column(db.Text)

    # human overlay: {"parameters": {name: {humanScore, humanExplanation, classificationOverride}}}
    human_overlay = db.Column(db.JSON)
    additional_comments = db.Column(db.Text)
    agent_comments = db.Column(db.Text)

    section_scores = db.Column(db.JSON)
    total_score = db.Column(db.Float)
    max_score = db.Column(db.Float)

    status = db.Column(db.String(20), default="completed", nullable=False, index=True)
    is_moderated = db.Column(db.Boolean, default=False, nullable=False)
    is_published = db.Column(db.Boolean, default=False, nullable=False)
    moderated_by = db.Column(db.String(120))
    moderated_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            "id": self.id,
            "interactionId": self.interaction_id,
            "rubricId": self.rubric_id,
            "profileId": self.profile_id,
            "agentId": self.agent_id,
            "channel": self.channel,
            "evaluator": {"id": self.evaluator_id, "name": self.evaluator_name},
            "status": self.status,
            "aiParameters": self.ai_parameters or [],
            "aiSummary": self.ai_summary,
            "humanOverlay": self.human_overlay,
            "additionalComments": self.additional_comments,
            "agentComments": self.agent_comments,
            "sectionScores": self.section_scores,
            "totalScore": self.total_score,
            "maxScore": self.max_score,
            "isModerated": self.is_moderated,
            "isPublished": self.is_published,
            "moderatedBy": self.moderated_by,
            "moderatedAt": self.moderated_at.isoformat() if self.moderated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Evaluation id={self.id} interaction_id={self.interaction_id} status={self.status!r}>"
