"""Run an RQ worker inside the Flask app context.

Usage:
  source .venv/bin/activate
  export OBJC_DISABLE_INITIALIZE_FORK_SAFETY=YES   # macOS fork safety if needed
  python scripts/run_rq_worker.py

The worker listens on the high-priority queue first, then the default one.
The RQ scheduler is enabled so retries delayed by backoff are re-queued.
"""

import sys
import os

# Ensure project root is on sys.path when running from scripts/ or other cwd
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from qa_engine import create_app
from qa_engine.extensions import get_services
from rq import Worker


def main():
    app = create_app()
    with app.app_context():
        queue = get_services().queue
        if not hasattr(queue, "queues"):
            print('Redis is not available; the in-memory queue runs inside the web process')
            sys.exit(1)
        worker = Worker(queue.queues, connection=queue.connection)
        print('RQ worker starting (pid', os.getpid(), ') on', ', '.join(q.name for q in queue.queues))
        try:
            worker.work(burst=False, with_scheduler=True,
                        logging_level=app.config.get('LOG_LEVEL', 'INFO'))
        finally:
            print('RQ worker exiting (pid', os.getpid(), ')')


if __name__ == '__main__':
    main()
