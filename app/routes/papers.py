"""
Paper Routes - assessment paper assembly
"""

from flask import Blueprint, request

from api_responses import success_response, handle_api_errors, validation_error_response, not_found_response
from auth import token_required
from db import to_dict
from repositories.paper_repository import PaperRepository
from routes import API_PREFIX, get_service

papers_bp = Blueprint("papers", __name__, url_prefix=API_PREFIX)


def _paper_payload(paper):
    data = to_dict(paper)
    data["questions"] = [
        {"question_id": pq.question_id, "question_order": pq.question_order} for pq in paper.questions
    ]
    return data


@papers_bp.route("/papers", methods=["GET"])
@token_required
@handle_api_errors
def list_papers_api():
    return success_response(data=[_paper_payload(p) for p in PaperRepository.get_all()])


@papers_bp.route("/papers/<paper_id>", methods=["GET"])
@token_required
@handle_api_errors
def get_paper_api(paper_id):
    paper = PaperRepository.get_by_id(paper_id)
    if not paper:
        return not_found_response("Paper", paper_id)
    return success_response(data=_paper_payload(paper))


@papers_bp.route("/papers", methods=["POST"])
@token_required
@handle_api_errors
def create_paper_api():
    data = request.get_json(silent=True) or {}
    for field in ("title", "subject", "grade", "target_marks"):
        if data.get(field) in (None, ""):
            return validation_error_response(field, f"{field} is required")

    paper = get_service("paper_builder").create_paper(
        data["title"], data["subject"], int(data["grade"]), int(data["target_marks"])
    )
    return success_response(data=_paper_payload(paper), status_code=201)
