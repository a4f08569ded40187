"""
System Routes - health check and active configuration
"""

from flask import Blueprint
from sqlalchemy import text

from api_responses import success_response, handle_api_errors
from constants import BUILD_VERSION
from db import db
from routes import API_PREFIX, get_service
from utils import now_utc
import logging

logger = logging.getLogger("main")

system_bp = Blueprint("system", __name__, url_prefix=API_PREFIX)


@system_bp.route("/health", methods=["GET"])
@handle_api_errors
def health_check_api():
    """
    Health check endpoint for monitoring.
    """
    overall_status = "healthy"
    checks = {
        "timestamp": now_utc().isoformat(),
        "version": BUILD_VERSION,
        "database": "unknown",
        "sync_cache": get_service("sync_manager").cache.stats(),
        "maintenance_mode": get_service("remote_config").is_maintenance_mode(),
    }

    try:
        db.session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        checks["database"] = f"error: {str(e)}"
        overall_status = "unhealthy"

    checks["status"] = overall_status
    return success_response(data=checks, status_code=200 if overall_status == "healthy" else 503)


@system_bp.route("/config", methods=["GET"])
@handle_api_errors
def remote_config_api():
    return success_response(data=get_service("remote_config").get_all())
