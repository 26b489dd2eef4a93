"""Translate a selection profile into an interaction query."""
import logging
from datetime import timedelta

from sqlalchemy import and_, func, or_

from ..models.interaction import EMAIL_CHANNELS, TEXT_CHANNELS, VOICE_CHANNELS, Interaction
from ..utils.time import utcnow

logger = logging.getLogger(__name__)

MESSAGE_CHANNELS = tuple(c for c in TEXT_CHANNELS if c not in EMAIL_CHANNELS)


def normalize_agent_id(value):
    """'7', 7 and '007' all normalize to '7'; non-numeric ids are kept as given."""
    if value is None:
        return None
    text = str(value).strip()
    if text.isdigit():
        return str(int(text))
    return text or None


def _entries(values, *keys):
    """Yield plain strings from a JSON filter list of strings or objects."""
    for v in values or []:
        if isinstance(v, dict):
            for k in keys:
                if v.get(k) not in (None, ""):
                    yield k, str(v[k]).strip()
        elif v not in (None, ""):
            yield None, str(v).strip()


def has_required_content(interaction, min_text_items=1) -> bool:
    channel = interaction.channel
    if channel in VOICE_CHANNELS:
        return bool((interaction.recording_path or "").strip())
    if channel in EMAIL_CHANNELS:
        return (interaction.email_count or 0) >= min_text_items
    if channel in MESSAGE_CHANNELS:
        return (interaction.message_count or 0) >= min_text_items
    return False


def content_clause(min_text_items=1):
    return or_(
        and_(Interaction.channel.in_(VOICE_CHANNELS),
             Interaction.recording_path.isnot(None),
             Interaction.recording_path != ""),
        and_(Interaction.channel.in_(EMAIL_CHANNELS),
             Interaction.email_count >= min_text_items),
        and_(Interaction.channel.in_(MESSAGE_CHANNELS),
             Interaction.message_count >= min_text_items),
    )


class InteractionMatcher:

    def __init__(self, lookback_hours=24, min_text_items=1, clock=utcnow):
        self.lookback_hours = lookback_hours
        self.min_text_items = min_text_items
        self.clock = clock

    def has_required_content(self, interaction) -> bool:
        return has_required_content(interaction, self.min_text_items)

    def query(self, profile, exclude_evaluated=True):
        q = Interaction.query

        if profile.direction and profile.direction != "all":
            q = q.filter(Interaction.direction == profile.direction)

        agents = set()
        for _, value in _entries(profile.agents, "agentId", "id"):
            agents.add(value)
            agents.add(normalize_agent_id(value))
        agents.discard(None)
        if agents:
            clauses = [Interaction.agent_id.in_(sorted(agents))]
            # stored ids may carry leading zeros too
            unpadded = {a.lstrip("0") for a in agents if a.isdigit() and a.strip("0")}
            if unpadded:
                clauses.append(func.ltrim(func.trim(Interaction.agent_id), "0").in_(sorted(unpadded)))
            q = q.filter(or_(*clauses))

        queue_ids, queue_names = set(), set()
        for key, value in _entries(profile.queues, "queueId", "queueName"):
            if key in (None, "queueId"):
                queue_ids.add(value)
            if key in (None, "queueName"):
                queue_names.add(value)
        if queue_ids or queue_names:
            q = q.filter(or_(Interaction.queue_id.in_(sorted(queue_ids)),
                             Interaction.queue_name.in_(sorted(queue_names))))

        codes = {value for _, value in _entries(profile.work_codes, "code", "workCode")}
        if codes:
            q = q.filter(Interaction.work_code.in_(sorted(codes)))

        channels = [c for c in (profile.channels or []) if c]
        if channels:
            q = q.filter(Interaction.channel.in_(channels))

        # duration applies to calls only; text channels carry no talk time
        if profile.min_call_duration:
            q = q.filter(or_(~Interaction.channel.in_(VOICE_CHANNELS),
                             Interaction.duration_sec >= profile.min_call_duration))

        if profile.date_from or profile.date_to:
            if profile.date_from:
                q = q.filter(Interaction.created_at >= profile.date_from)
            if profile.date_to:
                q = q.filter(Interaction.created_at <= profile.date_to)
        else:
            q = q.filter(Interaction.created_at >= self.clock() - timedelta(hours=self.lookback_hours))

        q = q.filter(content_clause(self.min_text_items))
        if exclude_evaluated:
            q = q.filter(Interaction.evaluated.is_(False))
        return q.order_by(Interaction.created_at.desc(), Interaction.id.desc())

    def match(self, profile, exclude_evaluated=True, limit=None):
        q = self.query(profile, exclude_evaluated=exclude_evaluated)
        if limit:
            q = q.limit(limit)
        rows = q.all()
        logger.debug("Profile %s matched %d interaction(s)", profile.id, len(rows))
        return rows
