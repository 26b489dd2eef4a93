from flask import current_app
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()


class Services:
    """Engine services built once per app with their dependencies injected.

    Stored on ``app.extensions['qa_engine']``; use :func:`get_services` inside
    an app context.
    """

    def __init__(self, catalog, calculator, matcher, workflow, queue, history, scheduler):
        self.catalog = catalog
        self.calculator = calculator
        self.matcher = matcher
        self.workflow = workflow
        self.queue = queue
        self.history = history
        self.scheduler = scheduler


def _build_queue(app):
    from .queue import RetryPolicy
    from .queue.limiter import RedisSlidingWindowLimiter, SlidingWindowLimiter

    policy = RetryPolicy(max_attempts=app.config["JOB_MAX_ATTEMPTS"],
                         backoff_base=app.config["JOB_BACKOFF_BASE_SEC"])
    max_jobs = app.config["QUEUE_RATE_LIMIT_MAX"]
    window = app.config["QUEUE_RATE_LIMIT_WINDOW_SEC"]

    if app.config.get("QUEUE_BACKEND", "rq") == "rq":
        try:
            from redis import Redis
            from .queue.rq_backend import RQJobQueue
            conn = Redis.from_url(app.config["REDIS_URL"])
            conn.ping()
            return RQJobQueue(
                conn,
                queue_name=app.config["EVAL_QUEUE_NAME"],
                high_queue_name=app.config["EVAL_QUEUE_HIGH_NAME"],
                retry_policy=policy,
                result_ttl=app.config["JOB_RESULT_TTL"],
                failure_ttl=app.config["JOB_FAILURE_TTL"],
                job_timeout=app.config["JOB_TIMEOUT"],
                limiter=RedisSlidingWindowLimiter(conn, "qa_engine:dispatch", max_jobs, window),
            )
        except Exception:
            # no redis on this machine: keep serving, run jobs in-process instead
            app.logger.exception("Redis/RQ init failed, falling back to the in-memory queue")

    from .jobs.evaluate import make_job_handler
    from .queue.memory import InMemoryJobQueue
    queue = InMemoryJobQueue(
        make_job_handler(app),
        limiter=SlidingWindowLimiter(max_jobs, window),
        retry_policy=policy,
        completed_ttl=app.config["JOB_RESULT_TTL"],
        max_workers=app.config.get("QUEUE_MAX_WORKERS", max_jobs),
    )
    if not app.config.get("TESTING"):
        queue.start()
    return queue


def init_services(app, queue=None, clock=None):
    from .scoring import RubricCatalog, ScoreCalculator
    from .services.history import HistoryRecorder
    from .services.matcher import InteractionMatcher
    from .services.moderation import ModerationWorkflow
    from .services.scheduler import EvaluationScheduler

    catalog = RubricCatalog()
    calculator = ScoreCalculator()
    kwargs = {"clock": clock} if clock else {}
    matcher = InteractionMatcher(
        lookback_hours=app.config["SCHEDULER_DEFAULT_LOOKBACK_HOURS"],
        min_text_items=app.config["MIN_TEXT_ITEMS"],
        **kwargs,
    )
    workflow = ModerationWorkflow(catalog, calculator, **kwargs)
    queue = queue or _build_queue(app)
    history = HistoryRecorder()
    scheduler = EvaluationScheduler(
        matcher, queue, history,
        default_max_evaluations=app.config["SCHEDULER_DEFAULT_MAX_EVALUATIONS"],
        **kwargs,
    )
    services = Services(catalog, calculator, matcher, workflow, queue, history, scheduler)
    app.extensions["qa_engine"] = services
    return services


def get_services() -> Services:
    return current_app.extensions["qa_engine"]
