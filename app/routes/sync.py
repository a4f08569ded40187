"""
Sync Routes - purchased pack synchronization
"""

from flask import Blueprint
from flask_login import current_user

from api_responses import success_response, error_response, handle_api_errors
from auth import token_required
from exceptions import SyncFailedException
from repositories.purchasedpack_repository import PurchasedPackRepository
from repositories.question_repository import QuestionRepository
from routes import API_PREFIX, get_service
import logging

logger = logging.getLogger("main")

sync_bp = Blueprint("sync", __name__, url_prefix=API_PREFIX)


def _local_content(user_id):
    """What the local store already holds for the user, served even when a sync fails"""
    pack_ids = [p.pack_id for p in PurchasedPackRepository.get_by_user(user_id)]
    return {"pack_ids": pack_ids, "item_count": len(QuestionRepository.get_by_pack_ids(pack_ids))}


def _sync_failed(e, user_id):
    return error_response(e.code, message=e.message, details={"local": _local_content(user_id)}, status_code=502)


@sync_bp.route("/sync", methods=["POST"])
@token_required
@handle_api_errors
def sync_purchased_packs_api():
    user_id = current_user.uid
    try:
        result = get_service("sync_manager").sync_purchased_packs(user_id)
    except SyncFailedException as e:
        return _sync_failed(e, user_id)
    return success_response(data=result.to_dict())


@sync_bp.route("/sync/refresh", methods=["POST"])
@token_required
@handle_api_errors
def force_refresh_api():
    user_id = current_user.uid
    try:
        result = get_service("sync_manager").force_refresh(user_id)
    except SyncFailedException as e:
        return _sync_failed(e, user_id)
    return success_response(data=result.to_dict())


@sync_bp.route("/sync/clear", methods=["POST"])
@token_required
@handle_api_errors
def clear_cache_api():
    get_service("sync_manager").clear_cache()
    return success_response(message="Sync cache cleared")


@sync_bp.route("/sync/test", methods=["POST"])
@token_required
@handle_api_errors
def test_connection_api():
    connected = get_service("sync_manager").test_connection()
    return success_response(data={"connected": connected})
