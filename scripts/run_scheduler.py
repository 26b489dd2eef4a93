"""Run the evaluation scheduler loop.

Usage:
  python scripts/run_scheduler.py

Arms every active profile with scheduling enabled, then wakes up every
SCHEDULER_POLL_INTERVAL_SEC seconds, picks up schedule changes made through
the web process and queues the runs that are due. Run a single instance.
"""

import os
import signal
import sys
import threading

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from qa_engine import create_app
from qa_engine.extensions import get_services


def main():
    app = create_app()
    stop = threading.Event()

    def _stop(signum, frame):
        app.logger.info('Scheduler received signal %s, stopping', signum)
        stop.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    with app.app_context():
        print('Scheduler starting (pid', os.getpid(), ')')
        try:
            get_services().scheduler.run_forever(stop, poll_interval=app.config['SCHEDULER_POLL_INTERVAL_SEC'])
        finally:
            print('Scheduler exiting (pid', os.getpid(), ')')


if __name__ == '__main__':
    main()
