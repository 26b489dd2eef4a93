from contextlib import nullcontext

from flask import current_app, has_app_context
from rq import get_current_job

from ..errors import (InteractionNotFound, InvalidSubmission, MissingContentError,
                      MissingRubricReference, NotFoundError, ValidationError)
from ..extensions import db, get_services
from ..models.interaction import Interaction
from ..scoring import EvaluationParameter, EvaluationRecord
from ..services.scoring_model import gen_evaluation

# app used by RQ workers started without one; built on the first job
_worker_app = None


def _parameters_from(result):
    params = []
    for p in result.get("parameters") or []:
        try:
            params.append(EvaluationParameter.from_dict(p))
        except InvalidSubmission as e:
            current_app.logger.warning("Dropping unusable model output for %r: %s", p.get("name"), e.message)
    return tuple(params)


def _run_evaluate_interaction(payload):
    services = get_services()
    interaction_id = payload.get("interaction_id")
    interaction = Interaction.query.get(interaction_id) if interaction_id is not None else None
    if interaction is None:
        raise InteractionNotFound(f"Interaction {interaction_id} not found")
    if interaction.evaluated:
        current_app.logger.info("Interaction %s already evaluated; nothing to do", interaction.id)
        return {"status": "skipped", "interactionId": interaction.id,
                "evaluationId": interaction.evaluation_id}
    if not services.matcher.has_required_content(interaction):
        raise MissingContentError(f"Interaction {interaction.id} has no {interaction.channel} content")
    if not payload.get("rubric_id"):
        raise MissingRubricReference(f"Job for interaction {interaction.id} has no rubric")
    rubric = services.catalog.get(payload["rubric_id"])

    res = gen_evaluation({
        "rubric": rubric,
        "transcript": interaction.transcript_text,
        "channel": interaction.channel,
    })
    record = EvaluationRecord(
        interaction_id=interaction.id,
        rubric_id=rubric.id,
        parameters=_parameters_from(res),
        summary=res.get("summary") or "",
    )
    ev = services.workflow.record_ai_result(
        record,
        evaluator=payload.get("evaluator"),
        profile_id=payload.get("profile_id"),
        agent_id=payload.get("agent_ref"),
        channel=payload.get("channel"),
    )
    return {"status": "completed", "interactionId": interaction.id, "evaluationId": ev.id,
            "totalScore": ev.total_score, "maxScore": ev.max_score}


def run_job(payload):
    """Run one evaluation job.

    Invalid jobs (no content, no rubric, unknown interaction) complete with a
    ``rejected`` result instead of being retried; anything else propagates so
    the queue can retry it.
    """
    try:
        return _run_evaluate_interaction(payload)
    except (ValidationError, NotFoundError) as e:
        db.session.rollback()
        current_app.logger.warning("Evaluation job for interaction %s rejected: %s",
                                   payload.get("interaction_id"), e.message)
        return {"status": "rejected", "interactionId": payload.get("interaction_id"), "reason": e.message}
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Evaluation job for interaction %s failed", payload.get("interaction_id"))
        raise


def worker_app():
    global _worker_app
    if _worker_app is None:
        from .. import create_app
        _worker_app = create_app()
    return _worker_app


def evaluate_interaction_job(payload):
    """Function enqueued on RQ; counts the attempt and waits for a dispatch slot."""
    ctx = nullcontext() if has_app_context() else worker_app().app_context()
    with ctx:
        job = get_current_job()
        if job is not None:
            job.meta["attempts"] = job.meta.get("attempts", 0) + 1
            job.save_meta()
        limiter = getattr(get_services().queue, "limiter", None)
        if limiter is not None:
            limiter.acquire()
        return run_job(payload)


def make_job_handler(app):
    """Handler for the in-memory queue; the queue has already gated the start."""
    def handler(payload):
        with app.app_context():
            return run_job(payload)
    return handler
