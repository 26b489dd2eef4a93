from ..extensions import db
from .base import TimestampMixin

VOICE_CHANNELS = ("call", "voice")
EMAIL_CHANNELS = ("email",)
TEXT_CHANNELS = ("whatsapp", "fb_messenger", "facebook", "instagram_dm", "chat", "email", "sms")


def channel_family(channel):
    """'voice', 'text' or None for channels the engine cannot score."""
    if channel in VOICE_CHANNELS:
        return "voice"
    if channel in TEXT_CHANNELS:
        return "text"
    return None


class Interaction(db.Model, TimestampMixin):
    """Contact-center interaction as mirrored from the interaction store."""
    __tablename__ = "interactions"

    id = db.Column(db.Integer, primary_key=True)
    channel = db.Column(db.String(30), default="call", nullable=False, index=True)
    direction = db.Column(db.String(10), default="inbound")  # inbound/outbound
    agent_id = db.Column(db.String(64), index=True)
    agent_name = db.Column(db.String(120))
    queue_id = db.Column(db.String(64))
    queue_name = db.Column(db.String(120))
    work_code = db.Column(db.String(64))
    duration_sec = db.Column(db.Integer, default=0)

    # content references
    recording_path = db.Column(db.String(512))
    message_count = db.Column(db.Integer, default=0)
    email_count = db.Column(db.Integer, default=0)
    transcript_text = db.Column(db.Text)

    evaluated = db.Column(db.Boolean, default=False, nullable=False, index=True)
    evaluation_id = db.Column(db.Integer)

    @property
    def family(self):
        return channel_family(self.channel)

    def __repr__(self) -> str:
        return f"<Interaction id={self.id} channel={self.channel!r}>"
