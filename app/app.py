"""
SmartExam - Question pack sync service
Application Factory
"""
import os
import sys
import logging

import flask.cli
flask.cli.show_server_banner = lambda *args: None

from flask import Flask, request
import structlog

# Local imports
from constants import *
from settings import load_settings
from db import db, init_db
from auth import login_manager, FlaskLoginIdentityProvider
from api_responses import error_response, ErrorCode
from exceptions import register_exception_handlers
from metrics import init_metrics
from utils import ColoredFormatter, FilterRemoveDateFromWerkzeugLogs, get_or_create_secret_key

# Services
from document_service import create_document_service
from sync_cache import SyncCache
from sync_manager import SyncManager
from marketplace_service import MarketplaceService
from trial_state import TrialStateManager
from remote_config import RemoteConfigManager
from paper_builder import PaperBuilder

# Routes
from routes.sync import sync_bp
from routes.marketplace import marketplace_bp
from routes.trial import trial_bp
from routes.papers import papers_bp
from routes.system import system_bp

# Jobs
from jobs.scheduler import JobScheduler

# Endpoints that stay reachable in maintenance mode
MAINTENANCE_EXEMPT = {"system.health_check_api", "system.remote_config_api", "metrics"}


def configure_logging():
    formatter = ColoredFormatter(
        '[%(asctime)s.%(msecs)03d] %(levelname)s (%(module)s) %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logging.basicConfig(level=logging.INFO, handlers=[handler])

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
            structlog.processors.JSONRenderer() if os.environ.get('LOG_FORMAT') == 'json' else structlog.dev.ConsoleRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Apply filter to hide date from http access logs
    logging.getLogger('werkzeug').addFilter(FilterRemoveDateFromWerkzeugLogs())


configure_logging()
logger = structlog.get_logger('main')


def init_services(app, settings, remote=None, enqueue=None):
    """Build the services once and keep them on app.extensions"""
    remote = remote or create_document_service(settings)
    identity = FlaskLoginIdentityProvider()
    sync_settings = settings.get('sync', {})

    remote_config = RemoteConfigManager(remote, defaults=settings.get('remote_config'))
    sync_manager = SyncManager(
        remote,
        identity=identity,
        cache=SyncCache(ttl_seconds=float(sync_settings.get('rate_limit_minutes', SYNC_RATE_LIMIT_MINUTES)) * 60),
        max_workers=int(sync_settings.get('max_workers', SYNC_MAX_WORKERS)),
    )

    services = {
        'remote': remote,
        'remote_config': remote_config,
        'sync_manager': sync_manager,
        'marketplace': MarketplaceService(remote, identity, enqueue=enqueue),
        'trial': TrialStateManager(
            remote,
            state_file=app.config.get('TRIAL_STATE_FILE', TRIAL_STATE_FILE),
            trial_days=int(settings.get('trial', {}).get('length_days', TRIAL_LENGTH_DAYS)),
        ),
        'paper_builder': PaperBuilder(remote_config),
    }
    app.extensions['smartexam'] = services
    return services


def init_maintenance_guard(app):
    @app.before_request
    def reject_during_maintenance():
        if request.endpoint in MAINTENANCE_EXEMPT or not request.path.startswith('/api/'):
            return None
        if app.extensions['smartexam']['remote_config'].is_maintenance_mode():
            return error_response(
                ErrorCode.SERVICE_UNAVAILABLE, message="Service under maintenance", status_code=503
            )
        return None


def create_app(config=None, remote=None, enqueue=None):
    """
    Application factory

    Args:
        config: extra Flask config (tests pass TESTING, SQLALCHEMY_DATABASE_URI, SETTINGS_FILE...)
        remote: document service to use instead of the configured Firestore client
        enqueue: callable queueing a pack content job, defaults to the Celery task
    """
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = SMARTEXAM_DB
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config.update(config or {})
    if not app.config.get('SECRET_KEY'):
        app.config['SECRET_KEY'] = get_or_create_secret_key()

    settings = load_settings(force=True, config_file=app.config.get('SETTINGS_FILE'))

    # Initialize components
    db.init_app(app)
    login_manager.init_app(app)
    register_exception_handlers(app)

    # Register blueprints
    app.register_blueprint(sync_bp)
    app.register_blueprint(marketplace_bp)
    app.register_blueprint(trial_bp)
    app.register_blueprint(papers_bp)
    app.register_blueprint(system_bp)

    init_metrics(app)

    init_db(app)
    services = init_services(app, settings, remote=remote, enqueue=enqueue)
    init_maintenance_guard(app)

    if not app.config.get('TESTING'):
        services['remote_config'].fetch_and_activate()
        job_scheduler = JobScheduler()
        job_scheduler.init_app(app)
        app.extensions['smartexam']['scheduler'] = job_scheduler

    logger.info("SmartExam service initialized", version=BUILD_VERSION)
    return app


if __name__ == '__main__':
    app = create_app()
    logger.info('Starting server on port 8465...')
    app.run(debug=False, use_reloader=False, host="0.0.0.0", port=8465)
