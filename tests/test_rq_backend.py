import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from rq.exceptions import NoSuchJobError
from rq.job import JobStatus

from qa_engine.errors import JobNotFound
from qa_engine.queue import JobPriority, JobState, RetryPolicy
from qa_engine.queue import rq_backend


class FakeJob:
    def __init__(self, job_id, args, meta, status, origin="evaluations"):
        self.id = job_id
        self.args = args
        self.meta = meta
        self.origin = origin
        self._status = status

    def get_status(self):
        return self._status

    def return_value(self):
        return {"status": "completed"}

    def latest_result(self):
        return type("Result", (), {"exc_string": "Traceback: boom"})()


class FakeQueue:
    def __init__(self, name, connection=None):
        self.name = name
        self.enqueued = []

    def enqueue(self, func, *args, **kwargs):
        self.enqueued.append((func, args, kwargs))
        return FakeJob(f"{self.name}-{len(self.enqueued)}", args, kwargs.get("meta"), JobStatus.QUEUED, self.name)


@pytest.fixture
def backend(monkeypatch):
    monkeypatch.setattr(rq_backend, "Queue", FakeQueue)
    return rq_backend.RQJobQueue(object(), retry_policy=RetryPolicy(max_attempts=3, backoff_base=5),
                                 result_ttl=300, failure_ttl=31536000, job_timeout=600)


def test_priority_selects_queue_and_retry(backend):
    backend.submit({"interaction_id": 1, "channel": "chat"}, priority=JobPriority.HIGH)
    backend.submit({"interaction_id": 2, "channel": "call"}, priority=JobPriority.NORMAL)

    (func, args, kwargs), = backend.high_queue.enqueued
    assert func == "qa_engine.jobs.evaluate.evaluate_interaction_job"
    assert args == ({"interaction_id": 1, "channel": "chat"},)
    assert kwargs["retry"].max == 2
    assert kwargs["retry"].intervals == [5, 10]
    assert kwargs["result_ttl"] == 300
    assert kwargs["failure_ttl"] == 31536000
    assert kwargs["meta"]["max_attempts"] == 3
    assert len(backend.queue.enqueued) == 1


@pytest.mark.parametrize("status, state", [
    (JobStatus.QUEUED, JobState.WAITING),
    (JobStatus.SCHEDULED, JobState.WAITING),
    (JobStatus.STARTED, JobState.ACTIVE),
    (JobStatus.FINISHED, JobState.COMPLETED),
    (JobStatus.FAILED, JobState.FAILED),
])
def test_query_maps_rq_status(backend, monkeypatch, status, state):
    job = FakeJob("abc", ({"interaction_id": 1},), {"attempts": 2, "max_attempts": 3, "priority": 5}, status)
    monkeypatch.setattr(rq_backend.Job, "fetch", classmethod(lambda cls, job_id, connection=None: job))
    record = backend.query("abc")
    assert record.state == state
    assert record.attempts == 2
    assert record.payload == {"interaction_id": 1}
    if state == JobState.FAILED:
        assert record.error == "Traceback: boom"
    if state == JobState.COMPLETED:
        assert record.result == {"status": "completed"}


def test_query_unknown_job(backend, monkeypatch):
    def missing(cls, job_id, connection=None):
        raise NoSuchJobError(job_id)

    monkeypatch.setattr(rq_backend.Job, "fetch", classmethod(missing))
    with pytest.raises(JobNotFound):
        backend.query("gone")
