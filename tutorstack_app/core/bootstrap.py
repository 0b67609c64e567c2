"""Bootstrap helpers for configuring the Flask application."""

from __future__ import annotations

import logging

from flask import Flask

from .extensions import db, scheduler
from .error_handlers import register_error_handlers
from .logging_config import setup_logging
from .module_registry import register_default_modules


def configure_logging(app: Flask) -> None:
    """Configure the package logger, which is also ``app.logger``."""

    # Flask names app.logger after the import name, so module loggers
    # (tutorstack_app.modules.*) inherit these handlers.
    setup_logging(
        app,
        log_level=app.config.get('LOG_LEVEL', 'INFO'),
        log_dir=app.config.get('LOG_DIR'),
    )
    if app.testing:
        app.logger.setLevel(logging.DEBUG)
    app.logger.info("Flask app logger configured successfully.")


def register_extensions(app: Flask) -> None:
    """Initialize shared extensions with the Flask app instance."""

    db.init_app(app)
    register_error_handlers(app)

    if not app.config.get('JOB_WORKER_ENABLED'):
        return

    from apscheduler.schedulers import SchedulerAlreadyRunningError
    from ..modules.jobs.services.job_service import run_job_worker

    try:
        scheduler.init_app(app)
        if not scheduler.running:
            scheduler.start()
        if not scheduler.get_job('fsrs_job_worker'):
            scheduler.add_job(
                id='fsrs_job_worker',
                func=run_job_worker,
                args=[app],
                trigger='interval',
                seconds=app.config.get('JOB_WORKER_INTERVAL_SECONDS', 30),
                replace_existing=True,
                max_instances=1,
            )
            app.logger.info("Registered background job worker (every %ss).",
                            app.config.get('JOB_WORKER_INTERVAL_SECONDS', 30))
    except SchedulerAlreadyRunningError:
        app.logger.info("Scheduler already running, skipping re-initialization.")


def register_blueprints(app: Flask) -> None:
    """Register all default blueprints with the app."""

    register_default_modules(app)


def initialize_database(app: Flask) -> None:
    """Create database tables for every registered model."""

    # Import models so their tables are attached to the metadata
    from ..modules.content import models as _content_models  # noqa: F401
    from ..modules.students import models as _student_models  # noqa: F401
    from ..modules.fsrs import models as _fsrs_models  # noqa: F401
    from ..modules.jobs import models as _job_models  # noqa: F401

    db.create_all()
    app.logger.info("Database tables ensured.")
