from flask import current_app, jsonify, request
from flask_login import current_user

from . import bp
from .forms import RunForm, ScheduleConfigForm
from ..forms import form_error
from ...errors import ProfileNotFound
from ...extensions import get_services
from ...models.profile import SelectionProfile
from ...utils.decorators import reviewer_required


def _get_profile(profile_id):
    profile = SelectionProfile.query.get(profile_id)
    if profile is None:
        raise ProfileNotFound(f"Selection profile {profile_id} not found")
    return profile


def _schedule_json(profile):
    trigger = get_services().scheduler.triggers.get(profile.id)
    data = profile.schedule_dict()
    data.update({
        "profileId": profile.id,
        "profileName": profile.name,
        "armed": trigger is not None,
        "nextRun": trigger.next_run.isoformat() if trigger else None,
    })
    return data


@bp.get("/scheduler-config/<int:profile_id>")
@reviewer_required
def get_config(profile_id):
    profile = _get_profile(profile_id)
    # triggers are armed by the scheduler process; mirror the stored profiles here
    get_services().scheduler.sync()
    return jsonify(_schedule_json(profile))


@bp.put("/scheduler-config/<int:profile_id>")
@reviewer_required
def update_config(profile_id):
    form = ScheduleConfigForm()
    if not form.validate_on_submit():
        raise form_error(form)
    body = request.get_json(silent=True) or {}
    # partial update: only keys present in the body
    config = {name: getattr(form, name).data for name in
              ("enabled", "cronExpression", "maxEvaluations", "evaluatorId", "evaluatorName")
              if name in body}
    profile = get_services().scheduler.update_config(profile_id, config)
    current_app.logger.info("Schedule of profile %s updated by user %s", profile_id, current_user.id)
    return jsonify(_schedule_json(profile))


@bp.post("/scheduler-run/<int:profile_id>")
@reviewer_required
def run_now(profile_id):
    form = RunForm()
    if form.is_submitted() and not form.validate():
        raise form_error(form)
    _get_profile(profile_id)
    evaluator = {"id": str(current_user.id), "name": current_user.name or current_user.email}
    result = get_services().scheduler.run_profile(
        profile_id,
        max_evaluations=form.maxEvaluations.data,
        evaluator=evaluator,
        trigger="manual",
    )
    return jsonify(result)


@bp.get("/scheduler-history/<int:profile_id>")
@reviewer_required
def history(profile_id):
    _get_profile(profile_id)
    limit = request.args.get("limit", default=10, type=int)
    limit = min(max(limit or 10, 1), 100)
    rows = get_services().history.recent(profile_id, limit=limit)
    return jsonify({"items": [r.to_dict() for r in rows]})


@bp.get("/scheduler-active")
@reviewer_required
def active():
    scheduler = get_services().scheduler
    scheduler.sync()
    ids = scheduler.active_profile_ids()
    names = {p.id: p.name for p in SelectionProfile.query.filter(SelectionProfile.id.in_(ids))} if ids else {}
    items = []
    for profile_id in ids:
        data = scheduler.triggers.get(profile_id).to_dict()
        data["profileName"] = names.get(profile_id)
        items.append(data)
    return jsonify({"items": items})
