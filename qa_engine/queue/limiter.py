"""Sliding-window limiters gating how many jobs may start per time window.

The scoring model is rate limited upstream, so at most ``max_jobs`` jobs are
allowed to start within any ``window_sec`` span.
"""
import threading
import time
import uuid
from collections import deque


class SlidingWindowLimiter:
    """In-process limiter; ``clock`` returns seconds (monotonic by default)."""

    def __init__(self, max_jobs=5, window_sec=5.0, clock=time.monotonic):
        self.max_jobs = max_jobs
        self.window_sec = window_sec
        self.clock = clock
        self._starts = deque()
        self._lock = threading.Lock()

    def _evict(self, now):
        while self._starts and self._starts[0] <= now - self.window_sec:
            self._starts.popleft()

    def try_acquire(self, now=None) -> bool:
        now = self.clock() if now is None else now
        with self._lock:
            self._evict(now)
            if len(self._starts) >= self.max_jobs:
                return False
            self._starts.append(now)
            return True

    def wait_time(self, now=None) -> float:
        now = self.clock() if now is None else now
        with self._lock:
            self._evict(now)
            if len(self._starts) < self.max_jobs:
                return 0.0
            return max(0.0, self._starts[0] + self.window_sec - now)

    def acquire(self, sleep=time.sleep):
        while not self.try_acquire():
            sleep(max(self.wait_time(), 0.05))


class RedisSlidingWindowLimiter:
    """Limiter shared by every RQ worker process through a Redis sorted set."""

    def __init__(self, redis, key, max_jobs=5, window_sec=5.0, clock=time.time):
        self.redis = redis
        self.key = key
        self.max_jobs = max_jobs
        self.window_sec = window_sec
        self.clock = clock

    def try_acquire(self) -> bool:
        now = self.clock()
        member = f"{now}:{uuid.uuid4().hex}"
        pipe = self.redis.pipeline()
        pipe.zremrangebyscore(self.key, 0, now - self.window_sec)
        pipe.zadd(self.key, {member: now})
        pipe.zrank(self.key, member)
        pipe.expire(self.key, int(self.window_sec) + 1)
        _, _, rank, _ = pipe.execute()
        # add first, then check our position; losers remove their own entry
        if rank is not None and rank < self.max_jobs:
            return True
        self.redis.zrem(self.key, member)
        return False

    def wait_time(self) -> float:
        oldest = self.redis.zrange(self.key, 0, 0, withscores=True)
        if not oldest:
            return 0.0
        return max(0.0, oldest[0][1] + self.window_sec - self.clock())

    def acquire(self, sleep=time.sleep):
        while not self.try_acquire():
            sleep(max(self.wait_time(), 0.05))
