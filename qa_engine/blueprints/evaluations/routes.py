from flask import jsonify, request
from flask_login import current_user, login_required

from . import bp
from .forms import AgentCommentForm, ModerationForm
from ..forms import form_error
from ...errors import InvalidSubmission
from ...extensions import get_services
from ...services.moderation import Actor
from ...utils.decorators import reviewer_required


@bp.get("/evaluation/<int:evaluation_id>")
@login_required
def get_evaluation(evaluation_id):
    ev = get_services().workflow.get(evaluation_id, Actor.from_user(current_user))
    return jsonify(ev.to_dict())


@bp.post("/evaluation/<int:evaluation_id>/moderate")
@reviewer_required
def moderate(evaluation_id):
    form = ModerationForm()
    if not form.validate_on_submit():
        raise form_error(form)
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidSubmission("Expected a JSON object")
    submission = {
        "parameters": body.get("parameters") or {},
        "additionalComments": form.additionalComments.data or "",
    }
    ev = get_services().workflow.moderate(
        evaluation_id,
        submission,
        Actor.from_user(current_user),
        publish=form.publish.data,
        client_snapshot=body.get("sectionScores"),
    )
    return jsonify(ev.to_dict())


@bp.post("/evaluation/<int:evaluation_id>/publish")
@reviewer_required
def publish(evaluation_id):
    ev = get_services().workflow.publish(evaluation_id, Actor.from_user(current_user))
    return jsonify(ev.to_dict())


@bp.post("/evaluation/<int:evaluation_id>/agent-comment")
@login_required
def agent_comment(evaluation_id):
    form = AgentCommentForm()
    if not form.validate_on_submit():
        raise form_error(form)
    ev = get_services().workflow.add_agent_comment(evaluation_id, Actor.from_user(current_user), form.comment.data)
    return jsonify(ev.to_dict())
