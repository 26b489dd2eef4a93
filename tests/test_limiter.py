import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from qa_engine.queue.limiter import SlidingWindowLimiter

from conftest import FakeClock


def test_sliding_window():
    clock = FakeClock(0.0)
    limiter = SlidingWindowLimiter(max_jobs=2, window_sec=5.0, clock=clock)
    assert limiter.try_acquire()
    clock.advance(1)
    assert limiter.try_acquire()
    assert not limiter.try_acquire()
    assert limiter.wait_time() == 4.0
    clock.advance(4)
    # the first start left the window, the second has not
    assert limiter.try_acquire()
    assert not limiter.try_acquire()


def test_acquire_sleeps_until_slot_frees():
    clock = FakeClock(0.0)
    limiter = SlidingWindowLimiter(max_jobs=1, window_sec=5.0, clock=clock)
    limiter.acquire()
    slept = []

    def sleep(seconds):
        slept.append(seconds)
        clock.advance(seconds)

    limiter.acquire(sleep=sleep)
    assert slept == [5.0]
