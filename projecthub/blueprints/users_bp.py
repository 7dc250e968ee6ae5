"""
ProjectHub
Users blueprint.

Endpoints:
    GET    /api/v1/users                     list users
    GET    /api/v1/users/me                  the acting user
    GET    /api/v1/users/<id>                single user
    POST   /api/v1/users/<id>/change-role    {"role": "LEADERSHIP"}
"""

from flask import Blueprint, jsonify

from projecthub.blueprints import json_body, paginate
from projecthub.middleware.current_user import get_current_user
from projecthub.services import user_service

users_bp = Blueprint("users", __name__, url_prefix="/api/v1")


@users_bp.route("/users", methods=["GET"])
def list_users():
    items, total = paginate(user_service.get_all_users())
    return jsonify({"items": items, "total": total})


@users_bp.route("/users/me", methods=["GET"])
def current_user():
    return jsonify(get_current_user().to_dict())


@users_bp.route("/users/<int:user_id>", methods=["GET"])
def get_user(user_id):
    return jsonify(user_service.get_single_user(user_id))


@users_bp.route("/users/<int:user_id>/change-role", methods=["POST"])
def change_role(user_id):
    data = json_body()
    return jsonify(user_service.update_user_role(get_current_user(), user_id, data.get("role")))
