"""In-process job queue with the same contract as the RQ backend.

Used by the test suite (with a fake clock) and as the development fallback
when Redis is not reachable. Each call to :meth:`process_due` is one
dispatch pass: due jobs are picked by priority then submission order, gated
by the limiter, and run on a bounded thread pool.
"""
import itertools
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor

from ..errors import JobNotFound
from .jobs import JobPriority, JobRecord, JobState, RetryPolicy
from .limiter import SlidingWindowLimiter

logger = logging.getLogger(__name__)


class InMemoryJobQueue:

    def __init__(self, handler, limiter=None, retry_policy=None, clock=time.monotonic,
                 completed_ttl=300.0, max_workers=5):
        self.handler = handler
        self.clock = clock
        self.limiter = limiter or SlidingWindowLimiter(clock=clock)
        self.retry_policy = retry_policy or RetryPolicy()
        self.completed_ttl = completed_ttl
        self.max_workers = max_workers
        self._jobs = {}
        self._seq = itertools.count()
        self._lock = threading.RLock()
        self._thread = None
        self._stop = threading.Event()

    def submit(self, payload, priority=JobPriority.NORMAL, retry_policy=None) -> str:
        policy = retry_policy or self.retry_policy
        job = JobRecord(
            id=uuid.uuid4().hex,
            payload=dict(payload),
            priority=priority,
            max_attempts=policy.max_attempts,
            retry_policy=policy,
            available_at=self.clock(),
            sequence=next(self._seq),
        )
        with self._lock:
            self._jobs[job.id] = job
        logger.debug("Queued job %s priority=%s", job.id, priority)
        return job.id

    def query(self, job_id) -> JobRecord:
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFound(f"Job {job_id} not found")
        return job

    def jobs(self, state=None):
        with self._lock:
            items = list(self._jobs.values())
        if state is not None:
            items = [j for j in items if j.state == state]
        return sorted(items, key=lambda j: j.sequence)

    def stats(self):
        counts = {s.value: 0 for s in JobState}
        for job in self.jobs():
            counts[job.state.value] += 1
        return counts

    def prune(self, now=None):
        now = self.clock() if now is None else now
        with self._lock:
            expired = [j.id for j in self._jobs.values()
                       if j.state == JobState.COMPLETED and j.finished_at is not None
                       and j.finished_at + self.completed_ttl <= now]
            for job_id in expired:
                del self._jobs[job_id]
        return len(expired)

    def process_due(self):
        """Run one dispatch pass and return the jobs that were started."""
        now = self.clock()
        self.prune(now)
        batch = []
        with self._lock:
            due = sorted(
                (j for j in self._jobs.values() if j.state == JobState.WAITING and j.available_at <= now),
                key=lambda j: (j.priority, j.sequence),
            )
            for job in due:
                if not self.limiter.try_acquire(now):
                    break
                job.state = JobState.ACTIVE
                job.attempts += 1
                batch.append(job)
        if not batch:
            return []

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(batch))) as pool:
            futures = [(job, pool.submit(self.handler, job.payload)) for job in batch]
            for job, future in futures:
                try:
                    result = future.result()
                except Exception as e:
                    self._fail_attempt(job, e)
                else:
                    self._complete(job, result)
        return batch

    def _complete(self, job, result):
        with self._lock:
            job.state = JobState.COMPLETED
            job.result = result
            job.error = None
            job.finished_at = self.clock()
        logger.info("Job %s completed after %d attempt(s)", job.id, job.attempts)

    def _fail_attempt(self, job, exc):
        with self._lock:
            job.error = str(exc)
            if job.attempts < job.max_attempts:
                delay = job.retry_policy.delay_for(job.attempts)
                job.state = JobState.WAITING
                job.available_at = self.clock() + delay
                logger.warning("Job %s attempt %d/%d failed (%s); retrying in %.0fs",
                               job.id, job.attempts, job.max_attempts, exc, delay)
                return
            job.state = JobState.FAILED
            job.finished_at = self.clock()
        logger.error("Job %s failed after %d attempts: %s (payload=%s)",
                     job.id, job.attempts, exc, job.payload)

    def start(self, poll_interval=1.0):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()

        def _loop():
            while not self._stop.is_set():
                try:
                    self.process_due()
                except Exception:
                    logger.exception("In-memory queue dispatch pass failed")
                self._stop.wait(poll_interval)

        self._thread = threading.Thread(target=_loop, name="qa-engine-queue", daemon=True)
        self._thread.start()

    def stop(self):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
