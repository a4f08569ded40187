"""
Marketplace Routes - pack catalog, pack content and purchases
"""

from flask import Blueprint, request
from flask_login import current_user

from api_responses import success_response, error_response, handle_api_errors, validation_error_response, ErrorCode
from auth import token_required
from routes import API_PREFIX, get_service

marketplace_bp = Blueprint("marketplace", __name__, url_prefix=API_PREFIX)


def _marketplace_disabled():
    return error_response(
        ErrorCode.SERVICE_UNAVAILABLE, message="Marketplace is not enabled", status_code=503
    )


@marketplace_bp.route("/packs", methods=["GET"])
@token_required
@handle_api_errors
def list_packs_api():
    if not get_service("remote_config").is_marketplace_enabled():
        return _marketplace_disabled()

    packs = get_service("marketplace").get_available_packs()
    user_id = current_user.uid
    sync_manager = get_service("sync_manager")
    for pack in packs:
        pack["purchased"] = sync_manager.is_pack_purchased(user_id, pack["id"])
    return success_response(data=packs)


@marketplace_bp.route("/packs/<pack_id>/questions", methods=["GET"])
@token_required
@handle_api_errors
def pack_questions_api(pack_id):
    questions = get_service("sync_manager").get_questions_for_pack(pack_id)
    return success_response(data=questions)


@marketplace_bp.route("/purchases", methods=["POST"])
@token_required
@handle_api_errors
def record_purchase_api():
    if not get_service("remote_config").is_marketplace_enabled():
        return _marketplace_disabled()

    data = request.get_json(silent=True) or {}
    pack_id = data.get("pack_id")
    transaction_id = data.get("transaction_id")
    if not pack_id:
        return validation_error_response("pack_id", "Pack id is required")
    if not transaction_id:
        return validation_error_response("transaction_id", "Transaction id is required")

    get_service("marketplace").record_purchase(pack_id, transaction_id, user_id=current_user.uid)
    return success_response(
        data={"pack_id": pack_id, "accepted": True},
        message="Purchase recorded, content download queued",
        status_code=202,
    )
