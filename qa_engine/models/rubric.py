from ..extensions import db
from .base import TimestampMixin


class Rubric(db.Model, TimestampMixin):
    """Evaluation form: groups, parameters and classification impacts as JSON."""
    __tablename__ = "rubrics"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    groups = db.Column(db.JSON)           # [{"id": "opening", "name": "Opening"}]
    parameters = db.Column(db.JSON)       # [{"name", "group", "maxScore", "scoringType", "classification", "context"}]
    classifications = db.Column(db.JSON)  # [{"type": "minor", "impactPercentage": 10}]

    def definition_dict(self):
        return {
            "name": self.name,
            "groups": self.groups or [],
            "parameters": self.parameters or [],
            "classifications": self.classifications or [],
        }

    def __repr__(self) -> str:
        return f"<Rubric id={self.id} name={self.name!r}>"
