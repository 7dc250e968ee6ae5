"""Project service layer.

Creation and edits cite an accepted change request and leave Change audit
rows behind. Admin-only operations check the actor's role, then the WBS
shape, before touching the repository.
"""

import logging
from datetime import datetime, timezone

from projecthub.core.exceptions import NotFoundError, ValidationError
from projecthub.core.wbs import WbsNumber, require_project_wbs
from projecthub.models.project import Project, WbsElement
from projecthub.models.team import Team
from projecthub.repository import get_repository
from projecthub.services.change_request_service import validate_change_request_accepted
from projecthub.services.permission import require
from projecthub.services.wbs_common import (
    apply_field_edits,
    apply_lead_edits,
    check_bullet_ids,
    check_lead_ids,
    get_project,
    next_number,
    reconcile_bullets,
    record_change,
    validate_bullet_items,
)

logger = logging.getLogger(__name__)

_PROJECT_BULLETS = (
    ("goals", "goal", "goal"),
    ("features", "feature", "feature"),
    ("other_constraints", "constraint", "constraint"),
)


def _log(actor, project, message, *args):
    logger.info(message, *args, extra={
        "user_id": actor.id,
        "entity_type": "project",
        "entity_id": project.id,
        "wbs_num": str(project.wbs_element.wbs_number),
    })


def get_all_projects(*, repo=None):
    repo = repo or get_repository()
    projects = repo.find_many(
        Project,
        Project.wbs_element.has(WbsElement.date_deleted.is_(None)),
        order_by=Project.id,
    )
    return [p.to_dict() for p in projects]


def get_single_project(wbs: WbsNumber, *, repo=None):
    require_project_wbs(wbs)
    repo = repo or get_repository()
    return get_project(repo, wbs).to_dict()


def create_project(actor, cr_id, car_number, name, summary="", team_id=None, budget=0, *, repo=None):
    """Create project ``car_number.N.0`` where N is the next free project number."""
    repo = repo or get_repository()
    require(actor, "project.create", None, "Guests cannot create projects", repo=repo)
    cr = validate_change_request_accepted(cr_id, repo=repo)

    if not name or not str(name).strip():
        raise ValidationError("name is required")
    try:
        car_number = int(car_number)
    except (TypeError, ValueError):
        raise ValidationError("car_number must be an integer") from None
    team = None
    if team_id is not None:
        team = repo.get(Team, team_id)
        if team is None:
            raise NotFoundError("Team", team_id)

    project_number = next_number(repo, WbsElement.project_number, WbsElement.car_number == car_number)
    now = datetime.now(timezone.utc)
    wbs_element = WbsElement(
        car_number=car_number,
        project_number=project_number,
        work_package_number=0,
        name=str(name).strip(),
        status="active",
        date_created=now,
    )
    project = Project(wbs_element=wbs_element, team=team, summary=summary or "", budget=int(budget or 0))
    repo.add(project)
    record_change(repo, cr, wbs_element, actor, "New Project Created", now)
    repo.commit()
    _log(actor, project, "Project %s created under CR #%s", wbs_element.wbs_number, cr.id)
    return project.to_dict()


def edit_project(actor, wbs: WbsNumber, cr_id, data, *, repo=None):
    """Edit a project's fields and bullets under an accepted change request.

    ``data`` keys (all optional): name, summary, budget, project_lead_id,
    project_manager_id, goals, features, other_constraints.
    """
    require_project_wbs(wbs)
    repo = repo or get_repository()
    project = get_project(repo, wbs)
    require(actor, "project.edit", None, "Guests cannot edit projects", repo=repo)
    cr = validate_change_request_accepted(cr_id, repo=repo)

    if "name" in data and not str(data["name"] or "").strip():
        raise ValidationError("name cannot be empty")
    if "budget" in data:
        try:
            data = {**data, "budget": int(data["budget"])}
        except (TypeError, ValueError):
            raise ValidationError("budget must be an integer") from None
        if data["budget"] < 0:
            raise ValidationError("budget cannot be negative")
    bullets = {key: validate_bullet_items(data.get(key), key) for key, _, _ in _PROJECT_BULLETS}
    check_lead_ids(repo, data)
    for key, bullet_type, _ in _PROJECT_BULLETS:
        if bullets[key] is not None:
            check_bullet_ids(project.bullets, bullets[key], bullet_type)

    now = datetime.now(timezone.utc)
    changes = []
    apply_lead_edits(project.wbs_element, data, changes)
    apply_field_edits(project.wbs_element, (("name", "name"),), data, changes)
    apply_field_edits(project, (("summary", "summary"), ("budget", "budget")), data, changes)
    for key, bullet_type, label in _PROJECT_BULLETS:
        if bullets[key] is not None:
            reconcile_bullets({"project": project}, project.bullets, bullets[key], bullet_type,
                              actor, label, changes, now, repo)

    for detail in changes:
        record_change(repo, cr, project.wbs_element, actor, detail, now)
    repo.commit()
    _log(actor, project, "Project %s edited (%d changes) under CR #%s", wbs, len(changes), cr.id)
    return project.to_dict()


def set_project_team(actor, wbs: WbsNumber, team_id, *, repo=None):
    repo = repo or get_repository()
    require(actor, "project.set_team", repo=repo)
    require_project_wbs(wbs)
    project = get_project(repo, wbs)
    team = repo.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team", team_id)

    project.team = team
    repo.commit()
    _log(actor, project, "Project %s assigned to team %s", wbs, team.team_name)
    return project.to_dict()


def delete_project(actor, wbs: WbsNumber, *, repo=None):
    """Soft-delete a project and every live work package under it."""
    repo = repo or get_repository()
    require(actor, "project.delete", repo=repo)
    require_project_wbs(wbs)
    project = get_project(repo, wbs)

    now = datetime.now(timezone.utc)
    project.wbs_element.mark_deleted(actor, now)
    cascaded = 0
    for work_package in project.work_packages:
        if not work_package.wbs_element.is_deleted:
            work_package.wbs_element.mark_deleted(actor, now)
            cascaded += 1
    repo.commit()
    _log(actor, project, "Project %s deleted with %d work packages", wbs, cascaded)
    return project.to_dict()


def toggle_favorite(actor, wbs: WbsNumber, *, repo=None):
    """Add the project to the actor's favorites, or remove it if already there."""
    require_project_wbs(wbs)
    repo = repo or get_repository()
    project = get_project(repo, wbs)

    if any(u.id == actor.id for u in project.favorited_by):
        project.favorited_by.remove(actor)
        favorited = False
    else:
        project.favorited_by.append(actor)
        favorited = True
    repo.commit()
    _log(actor, project, "Project %s %s favorites", wbs, "added to" if favorited else "removed from")
    return {**project.to_dict(), "favorited": favorited}
