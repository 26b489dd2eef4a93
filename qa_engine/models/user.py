from flask_login import UserMixin
from ..extensions import db
from .base import TimestampMixin

REVIEWER_ROLES = ("admin", "qa")


class User(db.Model, UserMixin, TimestampMixin):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120))
    email = db.Column(db.String(255), unique=True, nullable=False)
    role = db.Column(db.String(50), default="qa")  # admin/qa/agent
    # agent identity as stored on interactions (interactions.agent_id)
    agent_ref = db.Column(db.String(64), index=True)

    @property
    def is_agent(self):
        return self.role == "agent"

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role!r}>"
