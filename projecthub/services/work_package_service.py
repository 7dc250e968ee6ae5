"""Work package service layer.

Work package status is not edited directly: activation and completion happen
through reviewed change requests (see ``change_request_service``). This
module covers creation, edits, deletion and the description bullet
checklist that the completion gate reads.
"""

import logging
from datetime import datetime, timezone

from projecthub.core.exceptions import DeletedEntityError, NotFoundError, ValidationError
from projecthub.core.wbs import WbsNumber, require_project_wbs, require_work_package_wbs
from projecthub.models.project import DescriptionBullet, WbsElement, WorkPackage
from projecthub.repository import get_repository
from projecthub.services.change_request_service import validate_change_request_accepted
from projecthub.services.permission import require
from projecthub.services.wbs_common import (
    apply_field_edits,
    apply_lead_edits,
    check_bullet_ids,
    check_lead_ids,
    get_project,
    get_work_package,
    next_number,
    reconcile_bullets,
    record_change,
    validate_bullet_items,
)
from projecthub.utils.helpers import parse_date

logger = logging.getLogger(__name__)

_WORK_PACKAGE_BULLETS = (
    ("expected_activities", "expected_activity", "expected activity"),
    ("deliverables", "deliverable", "deliverable"),
)


def _log(actor, work_package, message, *args):
    logger.info(message, *args, extra={
        "user_id": actor.id,
        "entity_type": "work_package",
        "entity_id": work_package.id,
        "wbs_num": str(work_package.wbs_element.wbs_number),
    })


def _validate_duration(value):
    try:
        duration = int(value)
    except (TypeError, ValueError):
        raise ValidationError("duration must be an integer number of weeks") from None
    if duration < 1:
        raise ValidationError("duration must be at least 1 week")
    return duration


def get_single_work_package(wbs: WbsNumber, *, repo=None):
    require_work_package_wbs(wbs)
    repo = repo or get_repository()
    return get_work_package(repo, wbs).to_dict()


def get_work_packages_for_project(project_wbs: WbsNumber, *, repo=None):
    require_project_wbs(project_wbs)
    repo = repo or get_repository()
    project = get_project(repo, project_wbs)
    return [wp.to_dict() for wp in project.work_packages if not wp.wbs_element.is_deleted]


def create_work_package(actor, cr_id, project_wbs: WbsNumber, name, start_date=None, duration=1,
                        expected_activities=None, deliverables=None, *, repo=None):
    """Create the next work package ``c.p.N`` under a live project."""
    require_project_wbs(project_wbs)
    repo = repo or get_repository()
    require(actor, "work_package.create", None, "Guests cannot create work packages", repo=repo)
    cr = validate_change_request_accepted(cr_id, repo=repo)
    project = get_project(repo, project_wbs)

    if not name or not str(name).strip():
        raise ValidationError("name is required")
    duration = _validate_duration(duration)
    parsed_start = parse_date(start_date)
    if start_date and parsed_start is None:
        raise ValidationError(f"Invalid start_date: {start_date}")
    activities = validate_bullet_items(expected_activities or [], "expected_activities")
    deliverable_items = validate_bullet_items(deliverables or [], "deliverables")

    wp_number = next_number(
        repo, WbsElement.work_package_number,
        WbsElement.car_number == project_wbs.car_number,
        WbsElement.project_number == project_wbs.project_number,
    )
    now = datetime.now(timezone.utc)
    project_wbs_element = project.wbs_element
    wbs_element = WbsElement(
        car_number=project_wbs.car_number,
        project_number=project_wbs.project_number,
        work_package_number=wp_number,
        name=str(name).strip(),
        status="inactive",
        project_lead_id=project_wbs_element.project_lead_id,
        project_manager_id=project_wbs_element.project_manager_id,
        date_created=now,
    )
    work_package = WorkPackage(wbs_element=wbs_element, project=project, start_date=parsed_start,
                               duration=duration)
    repo.add(work_package)
    for items, bullet_type in ((activities, "expected_activity"), (deliverable_items, "deliverable")):
        for item in items:
            repo.add(DescriptionBullet(bullet_type=bullet_type, detail=item["detail"], date_added=now,
                                       work_package=work_package))
    record_change(repo, cr, wbs_element, actor, "New Work Package Created", now)
    repo.commit()
    _log(actor, work_package, "Work package %s created under CR #%s", wbs_element.wbs_number, cr.id)
    return work_package.to_dict()


def edit_work_package(actor, wbs: WbsNumber, cr_id, data, *, repo=None):
    """Edit a work package under an accepted change request.

    ``data`` keys (all optional): name, start_date, duration,
    project_lead_id, project_manager_id, expected_activities, deliverables.
    """
    require_work_package_wbs(wbs)
    repo = repo or get_repository()
    work_package = get_work_package(repo, wbs)
    require(actor, "work_package.edit", None, "Guests cannot edit work packages", repo=repo)
    cr = validate_change_request_accepted(cr_id, repo=repo)

    if "name" in data and not str(data["name"] or "").strip():
        raise ValidationError("name cannot be empty")
    edits = dict(data)
    if "duration" in edits:
        edits["duration"] = _validate_duration(edits["duration"])
    if "start_date" in edits:
        parsed = parse_date(edits["start_date"])
        if edits["start_date"] and parsed is None:
            raise ValidationError(f"Invalid start_date: {edits['start_date']}")
        edits["start_date"] = parsed
    bullets = {key: validate_bullet_items(data.get(key), key) for key, _, _ in _WORK_PACKAGE_BULLETS}
    check_lead_ids(repo, edits)
    for key, bullet_type, _ in _WORK_PACKAGE_BULLETS:
        if bullets[key] is not None:
            check_bullet_ids(work_package.bullets, bullets[key], bullet_type)

    now = datetime.now(timezone.utc)
    changes = []
    apply_lead_edits(work_package.wbs_element, edits, changes)
    apply_field_edits(work_package.wbs_element, (("name", "name"),), edits, changes)
    apply_field_edits(work_package, (("start_date", "start date"), ("duration", "duration")), edits, changes)
    for key, bullet_type, label in _WORK_PACKAGE_BULLETS:
        if bullets[key] is not None:
            reconcile_bullets({"work_package": work_package}, work_package.bullets, bullets[key], bullet_type,
                              actor, label, changes, now, repo)

    for detail in changes:
        record_change(repo, cr, work_package.wbs_element, actor, detail, now)
    repo.commit()
    _log(actor, work_package, "Work package %s edited (%d changes) under CR #%s", wbs, len(changes), cr.id)
    return work_package.to_dict()


def delete_work_package(actor, wbs: WbsNumber, *, repo=None):
    repo = repo or get_repository()
    require(actor, "work_package.delete", repo=repo)
    require_work_package_wbs(wbs)
    work_package = get_work_package(repo, wbs)

    work_package.wbs_element.mark_deleted(actor)
    repo.commit()
    _log(actor, work_package, "Work package %s deleted", wbs)
    return work_package.to_dict()


def check_description_bullet(actor, bullet_id, *, repo=None):
    """Toggle a bullet's checked state, recording who checked it and when."""
    repo = repo or get_repository()
    bullet = repo.get(DescriptionBullet, bullet_id)
    if bullet is None:
        raise NotFoundError("Description Bullet", bullet_id)
    if bullet.is_deleted:
        raise DeletedEntityError("Description Bullet", bullet_id)
    owner = bullet.owner_wbs_element
    if owner is None or owner.is_deleted:
        raise DeletedEntityError("WBS Element", str(owner.wbs_number) if owner else None)
    require(actor, "bullet.check", bullet,
            "You must be leadership or the project lead or manager to check this bullet", repo=repo)
    if owner.status == "complete":
        raise ValidationError("Cannot change bullets of a completed work package")

    if bullet.date_time_checked is None:
        bullet.date_time_checked = datetime.now(timezone.utc)
        bullet.user_checked_id = actor.id
        bullet.user_checked = actor
        state = "checked"
    else:
        bullet.date_time_checked = None
        bullet.user_checked_id = None
        bullet.user_checked = None
        state = "unchecked"
    repo.commit()
    logger.info("Bullet %s %s on %s", bullet.id, state, owner.wbs_number,
                extra={"user_id": actor.id, "entity_type": "description_bullet", "entity_id": bullet.id,
                       "wbs_num": str(owner.wbs_number)})
    return bullet.to_dict()
