# hookwise/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db as _db, migrate
from .insights import InsightRecorder


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)
    # Werkzeug refuses larger bodies before they are read
    if app.config.get("MAX_CONTENT_LENGTH") is None:
        app.config["MAX_CONTENT_LENGTH"] = app.config["MAX_WEBHOOK_PAYLOAD_BYTES"]

    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"))

    # Initialize database
    _db.init_app(app)
    migrate.init_app(app, _db)

    # Register models (so SQLAlchemy knows about them)
    with app.app_context():
        from . import models  # noqa: F401

    app.extensions["insights"] = InsightRecorder(app, run_async=app.config.get("INSIGHTS_ASYNC", True))

    from .app import bp as main_bp
    app.register_blueprint(main_bp)

    from .cli import register_commands
    register_commands(app)

    return app
