from flask import jsonify, request

from . import bp
from ...errors import ValidationError
from ...extensions import get_services
from ...queue import JobState
from ...utils.decorators import reviewer_required


@bp.get("")
@reviewer_required
def list_jobs():
    queue = get_services().queue
    state = request.args.get("state")
    data = {"counts": queue.stats()}
    if state:
        try:
            state = JobState(state)
        except ValueError:
            raise ValidationError(f"Unknown job state {state!r}")
        limit = request.args.get("limit", default=50, type=int)
        data["items"] = [j.to_dict() for j in queue.jobs(state)[:limit]]
    return jsonify(data)


@bp.get("/<job_id>")
@reviewer_required
def get_job(job_id):
    return jsonify(get_services().queue.query(job_id).to_dict())
