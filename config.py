import os
from dotenv import load_dotenv
load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///qa_engine.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    # rq | memory
    QUEUE_BACKEND = os.getenv("QUEUE_BACKEND", "rq")
    EVAL_QUEUE_NAME = os.getenv("EVAL_QUEUE_NAME", "evaluations")
    EVAL_QUEUE_HIGH_NAME = os.getenv("EVAL_QUEUE_HIGH_NAME", "evaluations-high")
    QUEUE_RATE_LIMIT_MAX = int(os.getenv("QUEUE_RATE_LIMIT_MAX", "5"))
    QUEUE_RATE_LIMIT_WINDOW_SEC = float(os.getenv("QUEUE_RATE_LIMIT_WINDOW_SEC", "5"))
    # worker threads of the in-memory queue
    QUEUE_MAX_WORKERS = int(os.getenv("QUEUE_MAX_WORKERS", "5"))
    JOB_MAX_ATTEMPTS = int(os.getenv("JOB_MAX_ATTEMPTS", "3"))
    JOB_BACKOFF_BASE_SEC = float(os.getenv("JOB_BACKOFF_BASE_SEC", "5"))
    JOB_RESULT_TTL = int(os.getenv("JOB_RESULT_TTL", "300"))
    JOB_FAILURE_TTL = int(os.getenv("JOB_FAILURE_TTL", str(365 * 24 * 3600)))
    JOB_TIMEOUT = int(os.getenv("JOB_TIMEOUT", "600"))

    SCHEDULER_POLL_INTERVAL_SEC = float(os.getenv("SCHEDULER_POLL_INTERVAL_SEC", "30"))
    SCHEDULER_DEFAULT_LOOKBACK_HOURS = int(os.getenv("SCHEDULER_DEFAULT_LOOKBACK_HOURS", "24"))
    SCHEDULER_DEFAULT_MAX_EVALUATIONS = int(os.getenv("SCHEDULER_DEFAULT_MAX_EVALUATIONS", "50"))
    # minimum messages/emails a text interaction needs to be scored
    MIN_TEXT_ITEMS = int(os.getenv("MIN_TEXT_ITEMS", "1"))

    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    SCORING_MODEL = os.getenv("SCORING_MODEL", "gpt-4o-mini")
    SCORING_API_URL = os.getenv("SCORING_API_URL", "https://api.openai.com/v1/responses")
    SCORING_TIMEOUT_SEC = int(os.getenv("SCORING_TIMEOUT_SEC", "60"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    QUEUE_BACKEND = "memory"
    QUEUE_MAX_WORKERS = 1
    OPENAI_API_KEY = None
    LOG_LEVEL = "DEBUG"
