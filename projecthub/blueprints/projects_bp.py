"""
ProjectHub
Projects blueprint.

Endpoints:
    GET    /api/v1/projects                        list live projects
    POST   /api/v1/projects                        create (cites an accepted CR)
    GET    /api/v1/projects/<wbs>                  single project
    POST   /api/v1/projects/<wbs>/edit             edit (cites an accepted CR)
    POST   /api/v1/projects/<wbs>/set-team         {"team_id": "..."}   admin only
    DELETE /api/v1/projects/<wbs>                  soft delete            admin only
    POST   /api/v1/projects/<wbs>/favorite         toggle favorite
    GET    /api/v1/projects/<wbs>/work-packages    live work packages
"""

from flask import Blueprint, jsonify

from projecthub.blueprints import json_body, paginate, parse_wbs
from projecthub.core.exceptions import ValidationError
from projecthub.middleware.current_user import get_current_user
from projecthub.services import project_service, work_package_service

projects_bp = Blueprint("projects", __name__, url_prefix="/api/v1")

_EDITABLE_FIELDS = (
    "name", "summary", "budget", "project_lead_id", "project_manager_id",
    "goals", "features", "other_constraints",
)


def _require(data, field):
    if data.get(field) in (None, ""):
        raise ValidationError(f"{field} is required")
    return data[field]


@projects_bp.route("/projects", methods=["GET"])
def list_projects():
    items, total = paginate(project_service.get_all_projects())
    return jsonify({"items": items, "total": total})


@projects_bp.route("/projects", methods=["POST"])
def create_project():
    data = json_body()
    project = project_service.create_project(
        get_current_user(),
        _require(data, "cr_id"),
        _require(data, "car_number"),
        _require(data, "name"),
        summary=data.get("summary", ""),
        team_id=data.get("team_id"),
        budget=data.get("budget", 0),
    )
    return jsonify(project), 201


@projects_bp.route("/projects/<wbs>", methods=["GET"])
def get_project(wbs):
    return jsonify(project_service.get_single_project(parse_wbs(wbs)))


@projects_bp.route("/projects/<wbs>/edit", methods=["POST"])
def edit_project(wbs):
    data = json_body()
    edits = {k: data[k] for k in _EDITABLE_FIELDS if k in data}
    return jsonify(project_service.edit_project(get_current_user(), parse_wbs(wbs), _require(data, "cr_id"), edits))


@projects_bp.route("/projects/<wbs>/set-team", methods=["POST"])
def set_team(wbs):
    data = json_body()
    return jsonify(project_service.set_project_team(get_current_user(), parse_wbs(wbs), data.get("team_id")))


@projects_bp.route("/projects/<wbs>", methods=["DELETE"])
def delete_project(wbs):
    return jsonify(project_service.delete_project(get_current_user(), parse_wbs(wbs)))


@projects_bp.route("/projects/<wbs>/favorite", methods=["POST"])
def toggle_favorite(wbs):
    return jsonify(project_service.toggle_favorite(get_current_user(), parse_wbs(wbs)))


@projects_bp.route("/projects/<wbs>/work-packages", methods=["GET"])
def list_work_packages(wbs):
    items, total = paginate(work_package_service.get_work_packages_for_project(parse_wbs(wbs)))
    return jsonify({"items": items, "total": total})
