"""
ProjectHub
Change requests blueprint.

Endpoints:
    GET    /api/v1/change-requests                 list live change requests
    POST   /api/v1/change-requests                 submit {"wbs_num", "type", "what", "justification"}
    GET    /api/v1/change-requests/<id>            single change request
    POST   /api/v1/change-requests/<id>/review     {"accepted": bool, "review_notes", "start_date"}
    DELETE /api/v1/change-requests/<id>            delete an open change request
"""

from flask import Blueprint, jsonify

from projecthub.blueprints import json_body, paginate, parse_wbs
from projecthub.core.exceptions import ValidationError
from projecthub.middleware.current_user import get_current_user
from projecthub.services import change_request_service

change_requests_bp = Blueprint("change_requests", __name__, url_prefix="/api/v1")


@change_requests_bp.route("/change-requests", methods=["GET"])
def list_change_requests():
    items, total = paginate(change_request_service.get_all_change_requests())
    return jsonify({"items": items, "total": total})


@change_requests_bp.route("/change-requests", methods=["POST"])
def create_change_request():
    data = json_body()
    if not data.get("wbs_num"):
        raise ValidationError("wbs_num is required")
    cr = change_request_service.create_change_request(
        get_current_user(),
        parse_wbs(data["wbs_num"]),
        data.get("type"),
        what=data.get("what", ""),
        justification=data.get("justification", ""),
    )
    return jsonify(cr), 201


@change_requests_bp.route("/change-requests/<int:cr_id>", methods=["GET"])
def get_change_request(cr_id):
    return jsonify(change_request_service.get_single_change_request(cr_id))


@change_requests_bp.route("/change-requests/<int:cr_id>/review", methods=["POST"])
def review_change_request(cr_id):
    data = json_body()
    if not isinstance(data.get("accepted"), bool):
        raise ValidationError("accepted must be true or false")
    return jsonify(change_request_service.review_change_request(
        get_current_user(),
        cr_id,
        data["accepted"],
        review_notes=data.get("review_notes"),
        start_date=data.get("start_date"),
    ))


@change_requests_bp.route("/change-requests/<int:cr_id>", methods=["DELETE"])
def delete_change_request(cr_id):
    return jsonify(change_request_service.delete_change_request(get_current_user(), cr_id))
