"""
ProjectHub
Risk log blueprint.

Endpoints:
    GET    /api/v1/projects/<project_id>/risks     live risks of a project
    POST   /api/v1/projects/<project_id>/risks     {"detail": "..."}
    POST   /api/v1/risks/<id>/edit                 {"detail"?, "resolved"?}
    DELETE /api/v1/risks/<id>                      soft delete
"""

from flask import Blueprint, jsonify

from projecthub.blueprints import json_body
from projecthub.core.exceptions import ValidationError
from projecthub.middleware.current_user import get_current_user
from projecthub.services import risk_service

risks_bp = Blueprint("risks", __name__, url_prefix="/api/v1")


@risks_bp.route("/projects/<int:project_id>/risks", methods=["GET"])
def list_risks(project_id):
    return jsonify({"items": risk_service.get_risks_for_project(project_id)})


@risks_bp.route("/projects/<int:project_id>/risks", methods=["POST"])
def create_risk(project_id):
    risk = risk_service.create_risk(get_current_user(), project_id, json_body().get("detail"))
    return jsonify(risk), 201


@risks_bp.route("/risks/<risk_id>/edit", methods=["POST"])
def edit_risk(risk_id):
    data = json_body()
    resolved = data.get("resolved")
    if resolved is not None and not isinstance(resolved, bool):
        raise ValidationError("resolved must be true or false")
    return jsonify(risk_service.edit_risk(get_current_user(), risk_id, detail=data.get("detail"), resolved=resolved))


@risks_bp.route("/risks/<risk_id>", methods=["DELETE"])
def delete_risk(risk_id):
    return jsonify(risk_service.delete_risk(get_current_user(), risk_id))
