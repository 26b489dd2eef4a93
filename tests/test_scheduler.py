import os
import sys
from datetime import timedelta

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from qa_engine.errors import InvalidCronExpression, MissingRubricReference, ProfileNotFound, ValidationError
from qa_engine.extensions import db
from qa_engine.models import SchedulerHistory
from qa_engine.queue import JobPriority
from qa_engine.utils.time import utcnow


def test_run_caps_queued_jobs_and_reports_partial(services, make_profile, make_interaction):
    for i in range(12):
        make_interaction(agent_id=str(i))
    for _ in range(3):
        make_interaction(recording_path=None)
    profile = make_profile()

    result = services.scheduler.run_profile(profile.id, max_evaluations=10)

    assert result["found"] == 12
    assert result["queued"] == 10
    assert result["status"] == "partial"
    assert len(services.queue.jobs()) == 10
    entry = SchedulerHistory.query.get(result["historyId"])
    assert entry.interactions_found == 12
    assert entry.interactions_processed == 10
    assert entry.status == "partial"
    assert entry.trigger == "manual"
    assert len(entry.job_ids) == 10


def test_run_success_when_everything_queued(services, make_profile, make_interaction):
    make_interaction()
    make_interaction(channel="whatsapp", message_count=4, recording_path=None)
    profile = make_profile()
    result = services.scheduler.run_profile(profile.id)
    assert (result["found"], result["queued"], result["status"]) == (2, 2, "success")


def test_run_with_nothing_found_is_success(services, make_profile):
    profile = make_profile()
    result = services.scheduler.run_profile(profile.id)
    assert (result["found"], result["queued"], result["status"]) == (0, 0, "success")
    assert SchedulerHistory.query.count() == 1


def test_job_payload_and_priority(services, make_profile, make_interaction):
    call = make_interaction(agent_id="7")
    chat = make_interaction(channel="chat", message_count=2, recording_path=None, agent_id="8")
    profile = make_profile(evaluator_id="42", evaluator_name="Quinn")
    services.scheduler.run_profile(profile.id, trigger="cron")

    jobs = {j.payload["interaction_id"]: j for j in services.queue.jobs()}
    assert jobs[call.id].priority == JobPriority.NORMAL
    assert jobs[chat.id].priority == JobPriority.HIGH
    assert jobs[call.id].payload == {
        "interaction_id": call.id,
        "agent_ref": "7",
        "rubric_id": profile.evaluation_form_id,
        "profile_id": profile.id,
        "channel": "call",
        "evaluator": {"id": "42", "name": "Quinn"},
    }


def test_default_evaluator_is_system(services, make_profile, make_interaction):
    make_interaction()
    profile = make_profile()
    services.scheduler.run_profile(profile.id, trigger="cron")
    job = services.queue.jobs()[0]
    assert job.payload["evaluator"] == {"id": "system", "name": "Automated System"}


def test_one_job_per_interaction_per_run(services, make_profile, make_interaction, monkeypatch):
    row = make_interaction()
    profile = make_profile()
    monkeypatch.setattr(services.matcher, "match", lambda p: [row, row, row])
    result = services.scheduler.run_profile(profile.id)
    assert result["found"] == 1
    assert result["queued"] == 1


def test_failed_run_is_recorded_and_reraised(services, make_profile):
    profile = make_profile(evaluation_form_id=None)
    with pytest.raises(MissingRubricReference):
        services.scheduler.run_profile(profile.id)
    entry = SchedulerHistory.query.one()
    assert entry.status == "failed"
    assert "no evaluation form" in entry.error


def test_matcher_error_is_recorded(services, make_profile, monkeypatch):
    profile = make_profile()

    def boom(p):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(services.matcher, "match", boom)
    with pytest.raises(RuntimeError):
        services.scheduler.run_profile(profile.id)
    assert SchedulerHistory.query.one().error == "store unavailable"


def test_invalid_max_evaluations_is_recorded(services, make_profile, make_interaction):
    make_interaction()
    profile = make_profile()
    with pytest.raises(ValidationError):
        services.scheduler.run_profile(profile.id, max_evaluations=0)
    entry = SchedulerHistory.query.one()
    assert entry.status == "failed"
    assert "maxEvaluations" in entry.error
    assert services.queue.jobs() == []


def test_unknown_profile(services):
    with pytest.raises(ProfileNotFound):
        services.scheduler.run_profile(404)


def test_initialize_arms_valid_enabled_profiles(services, make_profile):
    armed = make_profile()
    make_profile(scheduler_enabled=False)
    make_profile(is_active=False)
    broken = make_profile(cron_expression="every day")
    assert services.scheduler.initialize() == [armed.id]
    assert broken.id not in services.scheduler.active_profile_ids()


def test_update_config_arms_and_disarms(services, make_profile):
    profile = make_profile(scheduler_enabled=False)
    services.scheduler.update_config(profile.id, {"enabled": True, "cronExpression": "*/5 * * * *",
                                                  "maxEvaluations": 20})
    assert services.scheduler.active_profile_ids() == [profile.id]
    db.session.expire_all()
    assert profile.max_evaluations == 20
    assert profile.cron_expression == "*/5 * * * *"

    services.scheduler.update_config(profile.id, {"enabled": False})
    assert services.scheduler.active_profile_ids() == []


def test_update_config_rejects_invalid_cron_without_changes(services, make_profile):
    profile = make_profile()
    with pytest.raises(InvalidCronExpression):
        services.scheduler.update_config(profile.id, {"cronExpression": "whenever"})
    db.session.expire_all()
    assert profile.cron_expression == "0 17 * * *"


def test_tick_runs_due_profiles_and_keeps_trigger_on_error(services, make_profile, make_interaction):
    ok = make_profile(cron_expression="*/5 * * * *")
    bad = make_profile(cron_expression="*/5 * * * *", evaluation_form_id=None)
    make_interaction()
    services.scheduler.initialize()

    later = utcnow() + timedelta(minutes=6)
    results = services.scheduler.tick(later)

    assert [r["profileId"] for r in results] == [ok.id]
    assert results[0]["trigger"] == "cron"
    statuses = {h.profile_id: h.status for h in SchedulerHistory.query.all()}
    assert statuses == {ok.id: "success", bad.id: "failed"}
    assert services.scheduler.active_profile_ids() == sorted([ok.id, bad.id])


def test_sync_follows_database_changes(services, make_profile):
    profile = make_profile()
    services.scheduler.initialize()
    profile.cron_expression = "30 6 * * *"
    db.session.commit()
    services.scheduler.sync()
    assert services.scheduler.triggers.get(profile.id).expression == "30 6 * * *"

    profile.scheduler_enabled = False
    db.session.commit()
    services.scheduler.sync()
    assert services.scheduler.active_profile_ids() == []


def test_history_newest_first(services, make_profile):
    profile = make_profile()
    for _ in range(3):
        services.scheduler.run_profile(profile.id)
    rows = services.history.recent(profile.id, limit=2)
    assert len(rows) == 2
    assert rows[0].id > rows[1].id
