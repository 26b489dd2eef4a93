"""RQ-backed job queue.

Priority is expressed with two RQ queues; workers listen on the high queue
first. Backoff uses ``rq.Retry`` intervals, which requires the worker to run
with its scheduler enabled (see ``scripts/run_rq_worker.py``). Completed
jobs expire after ``result_ttl``; failed jobs stay in the failed registry for
``failure_ttl``.
"""
import logging

from rq import Queue, Retry
from rq.exceptions import NoSuchJobError
from rq.job import Job, JobStatus

from ..errors import JobNotFound
from .jobs import JobPriority, JobRecord, JobState, RetryPolicy

logger = logging.getLogger(__name__)

JOB_FUNC = "qa_engine.jobs.evaluate.evaluate_interaction_job"

_STATE_MAP = {
    JobStatus.QUEUED: JobState.WAITING,
    JobStatus.DEFERRED: JobState.WAITING,
    JobStatus.SCHEDULED: JobState.WAITING,
    JobStatus.STARTED: JobState.ACTIVE,
    JobStatus.FINISHED: JobState.COMPLETED,
    JobStatus.FAILED: JobState.FAILED,
    JobStatus.STOPPED: JobState.FAILED,
    JobStatus.CANCELED: JobState.FAILED,
}


class RQJobQueue:

    def __init__(self, connection, queue_name="evaluations", high_queue_name="evaluations-high",
                 retry_policy=None, result_ttl=300, failure_ttl=365 * 24 * 3600,
                 job_timeout=600, limiter=None):
        self.connection = connection
        self.queue = Queue(queue_name, connection=connection)
        self.high_queue = Queue(high_queue_name, connection=connection)
        self.retry_policy = retry_policy or RetryPolicy()
        self.result_ttl = result_ttl
        self.failure_ttl = failure_ttl
        self.job_timeout = job_timeout
        # acquired by the job function inside the worker process
        self.limiter = limiter

    @property
    def queues(self):
        return [self.high_queue, self.queue]

    def queue_for(self, priority):
        return self.high_queue if priority <= JobPriority.HIGH else self.queue

    def submit(self, payload, priority=JobPriority.NORMAL, retry_policy=None) -> str:
        policy = retry_policy or self.retry_policy
        retry = None
        if policy.max_attempts > 1:
            retry = Retry(max=policy.max_attempts - 1, interval=[int(s) for s in policy.intervals()])
        job = self.queue_for(priority).enqueue(
            JOB_FUNC,
            dict(payload),
            retry=retry,
            result_ttl=self.result_ttl,
            failure_ttl=self.failure_ttl,
            job_timeout=self.job_timeout,
            meta={
                "priority": priority,
                "attempts": 0,
                "max_attempts": policy.max_attempts,
                "backoff": policy.to_dict(),
            },
        )
        logger.debug("Enqueued RQ job %s on %s", job.id, job.origin)
        return job.id

    def query(self, job_id) -> JobRecord:
        try:
            job = Job.fetch(job_id, connection=self.connection)
        except NoSuchJobError:
            raise JobNotFound(f"Job {job_id} not found")
        meta = job.meta or {}
        state = _STATE_MAP.get(job.get_status(), JobState.WAITING)
        error = None
        if state == JobState.FAILED:
            latest = job.latest_result()
            error = getattr(latest, "exc_string", None) if latest else None
        return JobRecord(
            id=job.id,
            payload=job.args[0] if job.args else {},
            priority=meta.get("priority", JobPriority.NORMAL),
            attempts=meta.get("attempts", 0),
            max_attempts=meta.get("max_attempts", self.retry_policy.max_attempts),
            retry_policy=self.retry_policy,
            state=state,
            result=job.return_value() if state == JobState.COMPLETED else None,
            error=error,
        )

    def stats(self):
        counts = {s.value: 0 for s in JobState}
        for q in self.queues:
            counts[JobState.WAITING.value] += q.count + q.scheduled_job_registry.count + q.deferred_job_registry.count
            counts[JobState.ACTIVE.value] += q.started_job_registry.count
            counts[JobState.COMPLETED.value] += q.finished_job_registry.count
            counts[JobState.FAILED.value] += q.failed_job_registry.count
        return counts

    def _job_ids(self, state):
        ids = []
        for q in self.queues:
            if state == JobState.WAITING:
                ids += q.job_ids + q.scheduled_job_registry.get_job_ids() + q.deferred_job_registry.get_job_ids()
            elif state == JobState.ACTIVE:
                ids += q.started_job_registry.get_job_ids()
            elif state == JobState.COMPLETED:
                ids += q.finished_job_registry.get_job_ids()
            elif state == JobState.FAILED:
                ids += q.failed_job_registry.get_job_ids()
        return ids

    def jobs(self, state=None):
        records = []
        for s in ([state] if state else list(JobState)):
            for job_id in self._job_ids(s):
                try:
                    records.append(self.query(job_id))
                except JobNotFound:
                    # expired between listing and fetching
                    continue
        return records
