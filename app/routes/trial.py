"""
Trial Routes
"""

from flask import Blueprint, request
from flask_login import current_user

from api_responses import success_response, handle_api_errors, validation_error_response
from auth import token_required
from routes import API_PREFIX, get_service
from utils import now_ms

trial_bp = Blueprint("trial", __name__, url_prefix=API_PREFIX)


def _trial_payload(state):
    now = now_ms()
    data = state.to_dict()
    data.update(
        {
            "is_active": state.is_active(now),
            "days_remaining": state.days_remaining(now),
            "hours_remaining": state.hours_remaining(now),
        }
    )
    return data


@trial_bp.route("/trial", methods=["GET"])
@token_required
@handle_api_errors
def get_trial_api():
    state = get_service("trial").get_trial_state(current_user.uid)
    return success_response(data=_trial_payload(state))


@trial_bp.route("/trial/start", methods=["POST"])
@token_required
@handle_api_errors
def start_trial_api():
    data = request.get_json(silent=True) or {}
    device_hash = data.get("device_hash")
    if not device_hash:
        return validation_error_response("device_hash", "Device hash is required")

    state = get_service("trial").start_trial(current_user.uid, device_hash)
    return success_response(data=_trial_payload(state), status_code=201)
