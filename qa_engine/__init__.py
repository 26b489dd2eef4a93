import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .errors import QAEngineError
from .extensions import db, init_services, login_manager, migrate


def create_app(config_object="config.Config", queue=None, clock=None):
    """App factory.

    ``queue`` and ``clock`` override the configured job queue and the
    services' clock (tests pass an in-memory queue and a fake clock).
    """
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    db.init_app(app)
    migrate.init_app(app, db, directory="alembic")
    login_manager.init_app(app)

    from . import models  # noqa: F401

    @login_manager.user_loader
    def load_user(user_id):
        from .models.user import User
        return User.query.get(int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required"}), 401

    @app.errorhandler(QAEngineError)
    def handle_engine_error(e):
        if e.status_code >= 500:
            app.logger.error("%s: %s", e.__class__.__name__, e.message)
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"error": e.description}), e.code

    from .blueprints.scheduler import bp as scheduler_bp
    from .blueprints.evaluations import bp as evaluations_bp
    from .blueprints.jobs import bp as jobs_bp
    app.register_blueprint(scheduler_bp)
    app.register_blueprint(evaluations_bp)
    app.register_blueprint(jobs_bp, url_prefix="/jobs")

    init_services(app, queue=queue, clock=clock)

    return app
