"""
ProjectHub
Work packages blueprint.

Endpoints:
    POST   /api/v1/work-packages                       create under a project (cites an accepted CR)
    GET    /api/v1/work-packages/<wbs>                 single work package
    POST   /api/v1/work-packages/<wbs>/edit            edit (cites an accepted CR)
    DELETE /api/v1/work-packages/<wbs>                 soft delete, admin only
    POST   /api/v1/description-bullets/<id>/check      toggle a bullet's checked state
"""

from flask import Blueprint, jsonify

from projecthub.blueprints import json_body, parse_wbs
from projecthub.core.exceptions import ValidationError
from projecthub.middleware.current_user import get_current_user
from projecthub.services import work_package_service

work_packages_bp = Blueprint("work_packages", __name__, url_prefix="/api/v1")

_EDITABLE_FIELDS = (
    "name", "start_date", "duration", "project_lead_id", "project_manager_id",
    "expected_activities", "deliverables",
)


@work_packages_bp.route("/work-packages", methods=["POST"])
def create_work_package():
    data = json_body()
    for field in ("cr_id", "project_wbs_num", "name"):
        if data.get(field) in (None, ""):
            raise ValidationError(f"{field} is required")
    work_package = work_package_service.create_work_package(
        get_current_user(),
        data["cr_id"],
        parse_wbs(data["project_wbs_num"]),
        data["name"],
        start_date=data.get("start_date"),
        duration=data.get("duration", 1),
        expected_activities=data.get("expected_activities"),
        deliverables=data.get("deliverables"),
    )
    return jsonify(work_package), 201


@work_packages_bp.route("/work-packages/<wbs>", methods=["GET"])
def get_work_package(wbs):
    return jsonify(work_package_service.get_single_work_package(parse_wbs(wbs)))


@work_packages_bp.route("/work-packages/<wbs>/edit", methods=["POST"])
def edit_work_package(wbs):
    data = json_body()
    if data.get("cr_id") in (None, ""):
        raise ValidationError("cr_id is required")
    edits = {k: data[k] for k in _EDITABLE_FIELDS if k in data}
    return jsonify(work_package_service.edit_work_package(get_current_user(), parse_wbs(wbs), data["cr_id"], edits))


@work_packages_bp.route("/work-packages/<wbs>", methods=["DELETE"])
def delete_work_package(wbs):
    return jsonify(work_package_service.delete_work_package(get_current_user(), parse_wbs(wbs)))


@work_packages_bp.route("/description-bullets/<int:bullet_id>/check", methods=["POST"])
def check_bullet(bullet_id):
    return jsonify(work_package_service.check_description_bullet(get_current_user(), bullet_id))
