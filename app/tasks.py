import sys
import os

# Add app directory to path BEFORE any imports
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

import structlog

from celery_app import celery
from celery.signals import worker_ready
from flask import Flask

from constants import SMARTEXAM_DB
from db import db, init_db

# Configure structlog for Celery workers to ensure we see output
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
        if os.environ.get("LOG_FORMAT") == "json"
        else structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger("main")


def create_app_context():
    """Create a minimal app context for celery tasks"""
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = SMARTEXAM_DB
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    db.init_app(app)
    init_db(app)
    return app


# Lazy initialization of Flask app to avoid errors on import
_flask_app = None
_remote = None


def get_flask_app():
    global _flask_app
    if _flask_app is None:
        logger.info("Creating Flask app context (lazy initialization)...")
        _flask_app = create_app_context()
    return _flask_app


def get_remote():
    """Document service built from the settings file, shared by the worker's tasks"""
    global _remote
    if _remote is None:
        from document_service import create_document_service
        from settings import load_settings

        _remote = create_document_service(load_settings())
    return _remote


@worker_ready.connect
def worker_ready_log(sender=None, **kwargs):
    logger.info("Celery worker ready")


@celery.task(name="tasks.sync_pack_content")
def sync_pack_content(pack_id):
    """Download the content of a purchased pack in background"""
    from content_sync import sync_pack

    logger.info("task_execution_started", task="sync_pack_content", pack_id=pack_id)
    with get_flask_app().app_context():
        summary = sync_pack(get_remote(), pack_id)
    logger.info("task_execution_completed", task="sync_pack_content", pack_id=pack_id, synced=summary["synced"])
    return summary
