"""Evaluation lifecycle: AI result -> human moderation -> publication.

Status moves ``pending -> completed -> moderated -> published``. All moves go
through :func:`next_status`; the ``is_moderated``/``is_published`` columns
mirror the status for readers that predate it.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from ..errors import (AccessDenied, CommentNotAllowed, EvaluationNotFound,
                      InteractionNotFound, InvalidSubmission, InvalidTransition)
from ..extensions import db
from ..models.evaluation import Evaluation
from ..models.interaction import Interaction
from ..scoring import EvaluationParameter, HumanOverlay
from ..utils.time import utcnow
from .matcher import normalize_agent_id

logger = logging.getLogger(__name__)


class EvaluationStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    MODERATED = "moderated"
    PUBLISHED = "published"


S = EvaluationStatus

_TRANSITIONS = {
    (S.PENDING, "record"): S.COMPLETED,
    (S.COMPLETED, "moderate"): S.MODERATED,
    (S.MODERATED, "moderate"): S.MODERATED,
    (S.COMPLETED, "moderate_publish"): S.PUBLISHED,
    (S.MODERATED, "moderate_publish"): S.PUBLISHED,
    (S.MODERATED, "publish"): S.PUBLISHED,
    (S.PUBLISHED, "comment"): S.PUBLISHED,
}


def next_status(current, action) -> EvaluationStatus:
    try:
        current = EvaluationStatus(current)
    except ValueError:
        raise InvalidTransition(current, action)
    target = _TRANSITIONS.get((current, action))
    if target is None:
        if action == "comment":
            raise CommentNotAllowed(current.value, "comment on")
        raise InvalidTransition(current.value, action.replace("_", " and "))
    return target


@dataclass(frozen=True)
class Actor:
    id: str
    name: str
    agent_ref: Optional[str] = None
    restricted: bool = False

    @classmethod
    def from_user(cls, user):
        return cls(
            id=str(user.id),
            name=user.name or user.email,
            agent_ref=user.agent_ref,
            restricted=user.is_agent,
        )

    def is_agent_of(self, evaluation) -> bool:
        mine = normalize_agent_id(self.agent_ref)
        return mine is not None and mine == normalize_agent_id(evaluation.agent_id)


def _ai_parameters(evaluation):
    return tuple(EvaluationParameter.from_dict(p) for p in evaluation.ai_parameters or [])


def _stored_overlay(evaluation) -> Optional[HumanOverlay]:
    if not evaluation.human_overlay:
        return None
    return HumanOverlay.from_submission({
        "parameters": evaluation.human_overlay.get("parameters") or {},
        "additionalComments": evaluation.additional_comments or "",
    })


def snapshot_mismatches(client, server):
    """Group ids whose adjusted score or percentage differ between snapshots."""
    if not isinstance(client, dict):
        return []
    client_sections = client.get("sections", client)
    out = []
    for gid, ours in server["sections"].items():
        theirs = client_sections.get(gid) if isinstance(client_sections, dict) else None
        if not isinstance(theirs, dict):
            continue
        for key in ("adjustedScore", "percentage"):
            if key in theirs and theirs[key] != ours[key]:
                out.append(gid)
                break
    return out


class ModerationWorkflow:

    def __init__(self, catalog, calculator, clock=utcnow):
        self.catalog = catalog
        self.calculator = calculator
        self.clock = clock

    # -- AI step ---------------------------------------------------------

    def record_ai_result(self, record, evaluator=None, profile_id=None, agent_id=None, channel=None):
        """Store a completed AI evaluation once; later results are no-ops."""
        existing = Evaluation.query.filter_by(interaction_id=record.interaction_id).first()
        if existing is not None:
            logger.info("Interaction %s already evaluated (evaluation %s); ignoring result",
                        record.interaction_id, existing.id)
            return existing

        interaction = Interaction.query.get(record.interaction_id)
        if interaction is None:
            raise InteractionNotFound(f"Interaction {record.interaction_id} not found")
        rubric = self.catalog.get(record.rubric_id)
        snapshot = self.calculator.compute(record.parameters, rubric).to_dict()
        evaluator = evaluator or {}

        ev = Evaluation(
            interaction_id=interaction.id,
            rubric_id=int(rubric.id),
            profile_id=profile_id,
            agent_id=agent_id if agent_id is not None else interaction.agent_id,
            channel=channel or interaction.channel,
            evaluator_id=evaluator.get("id"),
            evaluator_name=evaluator.get("name"),
            ai_parameters=record.parameter_list(),
            ai_summary=record.summary,
            section_scores=snapshot,
            total_score=snapshot["overall"]["adjustedScore"],
            max_score=snapshot["overall"]["maxScore"],
            status=next_status(S.PENDING, "record").value,
        )
        try:
            db.session.add(ev)
            db.session.flush()
            interaction.evaluated = True
            interaction.evaluation_id = ev.id
            db.session.commit()
        except IntegrityError:
            # a concurrent job stored this interaction first
            db.session.rollback()
            existing = Evaluation.query.filter_by(interaction_id=record.interaction_id).first()
            if existing is None:
                raise
            logger.info("Interaction %s evaluated concurrently; keeping evaluation %s",
                        record.interaction_id, existing.id)
            return existing
        logger.info("Stored evaluation %s for interaction %s (%s/%s)",
                    ev.id, interaction.id, ev.total_score, ev.max_score)
        return ev

    # -- human step ------------------------------------------------------

    def get(self, evaluation_id, actor: Actor):
        ev = Evaluation.query.get(evaluation_id)
        if ev is None:
            raise EvaluationNotFound(f"Evaluation {evaluation_id} not found")
        if actor.restricted and not actor.is_agent_of(ev):
            raise AccessDenied("Evaluation belongs to another agent")
        return ev

    def snapshot(self, evaluation, overlay=None):
        rubric = self.catalog.get(evaluation.rubric_id)
        if overlay is None:
            overlay = _stored_overlay(evaluation)
        return self.calculator.compute(_ai_parameters(evaluation), rubric, overlay)

    def _validate(self, overlay, rubric):
        for name, override in overlay.parameters.items():
            param = rubric.parameter(name)
            if param is None:
                raise InvalidSubmission(f"Unknown parameter {name!r}")
            if override.human_score is not None and not param.accepts(override.human_score):
                allowed = (f"-1, 0 or {param.max_score:g}" if param.scoring_type == "binary"
                           else f"-1 or 0..{param.max_score:g}")
                raise InvalidSubmission(
                    f"Score {override.human_score:g} for {name!r} is not allowed ({allowed})")

    def _stamp(self, ev, status, actor):
        ev.status = status.value
        ev.is_moderated = status in (S.MODERATED, S.PUBLISHED)
        ev.is_published = status == S.PUBLISHED
        ev.moderated_by = actor.name
        ev.moderated_at = self.clock()

    def _apply_snapshot(self, ev, snapshot):
        data = snapshot.to_dict()
        ev.section_scores = data
        ev.total_score = data["overall"]["adjustedScore"]
        ev.max_score = data["overall"]["maxScore"]
        return data

    def moderate(self, evaluation_id, payload, actor: Actor, publish=False, client_snapshot=None):
        ev = self.get(evaluation_id, actor)
        target = next_status(ev.status, "moderate_publish" if publish else "moderate")
        rubric = self.catalog.get(ev.rubric_id)
        overlay = HumanOverlay.from_submission(payload or {})
        self._validate(overlay, rubric)
        snapshot = self.calculator.compute(_ai_parameters(ev), rubric, overlay)

        try:
            data = self._apply_snapshot(ev, snapshot)
            ev.human_overlay = {"parameters": overlay.parameters_dict()}
            ev.additional_comments = overlay.additional_comments
            self._stamp(ev, target, actor)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        if client_snapshot:
            # advisory only; the moderation is already stored
            try:
                diff = snapshot_mismatches(client_snapshot, data)
            except Exception:
                logger.exception("Evaluation %s: could not compare client section scores", ev.id)
                diff = []
            if diff:
                logger.warning("Evaluation %s: client section scores differ from server for %s; "
                               "server values stored", ev.id, ", ".join(diff))
        logger.info("Evaluation %s %s by %s", ev.id, target.value, actor.name)
        return ev

    def publish(self, evaluation_id, actor: Actor):
        ev = self.get(evaluation_id, actor)
        target = next_status(ev.status, "publish")
        snapshot = self.snapshot(ev)
        try:
            self._apply_snapshot(ev, snapshot)
            self._stamp(ev, target, actor)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info("Evaluation %s published by %s", ev.id, actor.name)
        return ev

    def add_agent_comment(self, evaluation_id, actor: Actor, comment):
        ev = Evaluation.query.get(evaluation_id)
        if ev is None:
            raise EvaluationNotFound(f"Evaluation {evaluation_id} not found")
        next_status(ev.status, "comment")
        if not actor.is_agent_of(ev):
            raise AccessDenied("Only the evaluated agent can comment on this evaluation")
        if not isinstance(comment, str) or not comment.strip():
            raise InvalidSubmission("comment must be a non-empty string")
        try:
            ev.agent_comments = comment.strip()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return ev
