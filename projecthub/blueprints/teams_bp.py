"""
ProjectHub
Teams blueprint.

Endpoints:
    GET    /api/v1/teams                           list teams
    GET    /api/v1/teams/<id>                      single team
    POST   /api/v1/teams/<id>/set-members          {"user_ids": [...]}
    POST   /api/v1/teams/<id>/set-leads            {"user_ids": [...]}
    POST   /api/v1/teams/<id>/set-head             {"user_id": 3}
    POST   /api/v1/teams/<id>/edit-description     {"new_description": "..."}
"""

from flask import Blueprint, jsonify

from projecthub.blueprints import json_body, paginate
from projecthub.core.exceptions import ValidationError
from projecthub.middleware.current_user import get_current_user
from projecthub.services import team_service
from projecthub.utils.helpers import parse_int_list

teams_bp = Blueprint("teams", __name__, url_prefix="/api/v1")


@teams_bp.route("/teams", methods=["GET"])
def list_teams():
    items, total = paginate(team_service.get_all_teams())
    return jsonify({"items": items, "total": total})


@teams_bp.route("/teams/<team_id>", methods=["GET"])
def get_team(team_id):
    return jsonify(team_service.get_single_team(team_id))


@teams_bp.route("/teams/<team_id>/set-members", methods=["POST"])
def set_members(team_id):
    user_ids = parse_int_list(json_body().get("user_ids"), "user_ids")
    return jsonify(team_service.set_team_members(get_current_user(), team_id, user_ids))


@teams_bp.route("/teams/<team_id>/set-leads", methods=["POST"])
def set_leads(team_id):
    user_ids = parse_int_list(json_body().get("user_ids"), "user_ids")
    return jsonify(team_service.set_team_leads(get_current_user(), team_id, user_ids))


@teams_bp.route("/teams/<team_id>/set-head", methods=["POST"])
def set_head(team_id):
    user_id = json_body().get("user_id")
    if user_id is None:
        raise ValidationError("user_id is required")
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise ValidationError("user_id must be an integer") from None
    return jsonify(team_service.set_team_head(get_current_user(), team_id, user_id))


@teams_bp.route("/teams/<team_id>/edit-description", methods=["POST"])
def edit_description(team_id):
    description = json_body().get("new_description")
    if not isinstance(description, str):
        raise ValidationError("new_description must be a string")
    return jsonify(team_service.edit_description(get_current_user(), team_id, description))
