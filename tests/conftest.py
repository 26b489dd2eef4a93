import os
import sys
from datetime import timedelta

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from flask import g, has_app_context
from flask_login import FlaskLoginClient

from qa_engine import create_app
from qa_engine.extensions import db, get_services
from qa_engine.jobs.evaluate import make_job_handler
from qa_engine.models import Interaction, Rubric, SelectionProfile, User
from qa_engine.queue import RetryPolicy
from qa_engine.queue.limiter import SlidingWindowLimiter
from qa_engine.queue.memory import InMemoryJobQueue
from qa_engine.utils.time import utcnow


class LoginClient(FlaskLoginClient):
    """Test client whose requests each load their own user.

    Requests run inside the fixture's app context, where Flask-Login caches
    the loaded user on ``g``; without the reset a second client would act as
    the first one.
    """

    def open(self, *args, **kwargs):
        if has_app_context():
            g.pop("_login_user", None)
        return super().open(*args, **kwargs)


class FakeClock:
    """Monotonic seconds that only move when a test says so."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


OPENING_RUBRIC = {
    "name": "Call quality",
    "groups": [{"id": "opening", "name": "Opening"}, {"id": "closing", "name": "Closing"}],
    "parameters": [
        {"name": "Greeting", "group": "opening", "maxScore": 5, "scoringType": "variable",
         "classification": "minor"},
        {"name": "Identification", "group": "opening", "maxScore": 5, "scoringType": "variable",
         "classification": "none"},
        {"name": "Farewell", "group": "closing", "maxScore": 1, "scoringType": "binary",
         "classification": "none"},
    ],
    "classifications": [
        {"type": "minor", "impactPercentage": 10},
        {"type": "moderate", "impactPercentage": 25},
        {"type": "major", "impactPercentage": 50},
    ],
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(clock):
    app = create_app("config.TestConfig")
    app.test_client_class = LoginClient
    with app.app_context():
        db.create_all()
        services = get_services()
        queue = InMemoryJobQueue(
            make_job_handler(app),
            limiter=SlidingWindowLimiter(5, 5.0, clock=clock),
            retry_policy=RetryPolicy(max_attempts=3, backoff_base=5.0),
            clock=clock,
            max_workers=1,
        )
        services.queue = queue
        services.scheduler.queue = queue
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def services(app):
    return get_services()


@pytest.fixture
def rubric(app):
    row = Rubric(**OPENING_RUBRIC)
    db.session.add(row)
    db.session.commit()
    return row


@pytest.fixture
def make_interaction(app):
    def _make(**kwargs):
        fields = {
            "channel": "call",
            "direction": "inbound",
            "agent_id": "7",
            "agent_name": "Aiko",
            "queue_id": "12",
            "queue_name": "Billing",
            "duration_sec": 180,
            "recording_path": "recordings/call.wav",
            "transcript_text": "Agent: Hello, thanks for calling. Customer: Hi.",
            "created_at": utcnow() - timedelta(hours=1),
        }
        fields.update(kwargs)
        row = Interaction(**fields)
        db.session.add(row)
        db.session.commit()
        return row
    return _make


@pytest.fixture
def make_profile(app, rubric):
    def _make(**kwargs):
        fields = {
            "name": "Billing calls",
            "is_active": True,
            "evaluation_form_id": rubric.id,
            "direction": "all",
            "scheduler_enabled": True,
            "cron_expression": "0 17 * * *",
            "max_evaluations": 50,
        }
        fields.update(kwargs)
        row = SelectionProfile(**fields)
        db.session.add(row)
        db.session.commit()
        return row
    return _make


@pytest.fixture
def make_user(app):
    def _make(role="qa", agent_ref=None, email=None):
        user = User(name=f"{role} user", email=email or f"{role}-{agent_ref or 'x'}@example.com",
                    role=role, agent_ref=agent_ref)
        db.session.add(user)
        db.session.commit()
        return user
    return _make
