"""Helpers shared by the project, work package and change request services.

- WBS lookups that raise NotFoundError / DeletedEntityError
- Change audit rows for CR-gated edits
- Bullet list reconciliation (keep / edit / soft-delete / add)
"""

from datetime import datetime, timezone

from sqlalchemy import and_, func, select

from projecthub.core.exceptions import DeletedEntityError, NotFoundError, ValidationError
from projecthub.models.change_request import Change
from projecthub.models.project import DescriptionBullet, Project, WbsElement, WorkPackage
from projecthub.models.user import User


def _wbs_match(wbs):
    return (
        WbsElement.car_number == wbs.car_number,
        WbsElement.project_number == wbs.project_number,
        WbsElement.work_package_number == wbs.work_package_number,
    )


def find_wbs_element(repo, wbs):
    return repo.find_first(WbsElement, *_wbs_match(wbs))


def get_live_wbs_element(repo, wbs):
    element = find_wbs_element(repo, wbs)
    if element is None:
        raise NotFoundError("WBS Element", str(wbs))
    if element.is_deleted:
        raise DeletedEntityError("WBS Element", str(wbs))
    return element


def get_project(repo, wbs, *, allow_deleted=False):
    """Resolve a project by WBS; the WBS shape must already be validated."""
    project = repo.find_first(Project, Project.wbs_element.has(and_(*_wbs_match(wbs))))
    if project is None:
        raise NotFoundError("Project", str(wbs))
    if project.wbs_element.is_deleted and not allow_deleted:
        raise DeletedEntityError("Project", project.id)
    return project


def get_work_package(repo, wbs):
    work_package = repo.find_first(WorkPackage, WorkPackage.wbs_element.has(and_(*_wbs_match(wbs))))
    if work_package is None:
        raise NotFoundError("Work Package", str(wbs))
    if work_package.wbs_element.is_deleted:
        raise DeletedEntityError("Work Package", work_package.id)
    return work_package


def next_number(repo, column, *criteria):
    """Highest value of ``column`` under ``criteria`` plus one (1 when empty)."""
    highest = repo.scalar(select(func.max(column)).where(*criteria))
    return (highest or 0) + 1


def record_change(repo, cr, wbs_element, actor, detail, now=None):
    change = Change(
        change_request_id=cr.id,
        wbs_element=wbs_element,
        implementer_id=actor.id,
        detail=detail,
        date_implemented=now or datetime.now(timezone.utc),
    )
    repo.add(change)
    return change


def apply_field_edits(target, fields, data, changes):
    """Set each ``fields`` attribute present in ``data``; log a Change line for each difference."""
    for field, label in fields:
        if field not in data:
            continue
        old, new = getattr(target, field), data[field]
        if old != new:
            setattr(target, field, new)
            changes.append(f"Edited {label} from \"{old}\" to \"{new}\"")


_LEAD_FIELDS = (("project_lead_id", "project lead"), ("project_manager_id", "project manager"))


def check_lead_ids(repo, data):
    """Raise NotFoundError if ``data`` names a lead or manager that does not exist."""
    for field, _ in _LEAD_FIELDS:
        new_id = data.get(field)
        if new_id is not None and repo.get(User, new_id) is None:
            raise NotFoundError("User", new_id)


def apply_lead_edits(wbs_element, data, changes):
    """Update project lead / manager from ``data``; ids must already be checked."""
    for field, label in _LEAD_FIELDS:
        if field not in data:
            continue
        new_id = data[field]
        if getattr(wbs_element, field) != new_id:
            setattr(wbs_element, field, new_id)
            changes.append(f"Changed {label} to user {new_id}")


def validate_bullet_items(items, label):
    """Normalize a bullet payload: a list of strings or ``{"id", "detail"}`` dicts."""
    if items is None:
        return None
    if not isinstance(items, list):
        raise ValidationError(f"{label} must be a list")
    normalized = []
    for item in items:
        if isinstance(item, str):
            item = {"detail": item}
        if not isinstance(item, dict) or not str(item.get("detail", "")).strip():
            raise ValidationError(f"each of {label} needs a non-empty detail")
        normalized.append({"id": item.get("id"), "detail": str(item["detail"]).strip()})
    return normalized


def _live_bullets(existing, bullet_type):
    return {b.id: b for b in existing if b.bullet_type == bullet_type and not b.is_deleted}


def check_bullet_ids(existing, items, bullet_type):
    """Raise NotFoundError for an item id that is not a live bullet of ``bullet_type``."""
    live = _live_bullets(existing, bullet_type)
    for item in items:
        if item["id"] is not None and item["id"] not in live:
            raise NotFoundError("Description Bullet", item["id"])


def reconcile_bullets(owner_kwargs, existing, items, bullet_type, actor, label, changes, now, repo):
    """Make the live bullets of ``bullet_type`` match ``items``.

    Items with an ``id`` keep that bullet (editing its detail); live bullets
    whose id is not listed are soft-deleted; items without an id are added.
    """
    live = _live_bullets(existing, bullet_type)
    check_bullet_ids(existing, items, bullet_type)

    keep = set()
    for item in items:
        bullet_id = item["id"]
        if bullet_id is not None:
            bullet = live[bullet_id]
            keep.add(bullet_id)
            if bullet.detail != item["detail"]:
                changes.append(f"Edited {label} from \"{bullet.detail}\" to \"{item['detail']}\"")
                bullet.detail = item["detail"]
        else:
            repo.add(DescriptionBullet(bullet_type=bullet_type, detail=item["detail"], date_added=now,
                                       **owner_kwargs))
            changes.append(f"Added {label} \"{item['detail']}\"")
    for bullet_id, bullet in live.items():
        if bullet_id not in keep:
            bullet.mark_deleted(actor, now)
            changes.append(f"Removed {label} \"{bullet.detail}\"")
