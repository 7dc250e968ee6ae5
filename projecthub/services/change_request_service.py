"""Change request service layer.

Change requests gate every project and work package edit. Review of an
ACTIVATION or STAGE_GATE request also drives the work package lifecycle:

    accept ACTIVATION  → work package inactive → active
    accept STAGE_GATE  → completion gate, then active → complete

The lifecycle step runs before the review is committed, so a failed gate
leaves the change request open.
"""

import logging
from datetime import datetime, timezone

from projecthub.core.exceptions import DeletedEntityError, NotFoundError, ValidationError
from projecthub.models.change_request import CR_TRANSITIONS, CR_TYPES, ChangeRequest
from projecthub.models.project import ensure_bullets_checked, validate_work_package_transition
from projecthub.repository import get_repository
from projecthub.services.notification import NotificationService
from projecthub.services.permission import require
from projecthub.services.wbs_common import get_live_wbs_element, record_change
from projecthub.utils.helpers import parse_date

logger = logging.getLogger(__name__)

WORK_PACKAGE_ONLY_TYPES = {"activation", "stage_gate"}


def _get_change_request(repo, cr_id):
    cr = repo.get(ChangeRequest, cr_id)
    if cr is None:
        raise NotFoundError("Change Request", cr_id)
    if cr.is_deleted:
        raise DeletedEntityError("Change Request", cr_id)
    return cr


def _get_mutable_change_request(repo, cr_id):
    """Like ``_get_change_request`` but also rejects requests on a deleted WBS element."""
    cr = _get_change_request(repo, cr_id)
    if cr.wbs_element.is_deleted:
        raise DeletedEntityError("WBS Element", str(cr.wbs_element.wbs_number))
    return cr


def validate_change_request_accepted(cr_id, *, repo=None):
    """Return the change request if it exists, is live, reviewed and accepted."""
    repo = repo or get_repository()
    cr = _get_change_request(repo, cr_id)
    if cr.date_reviewed is None:
        raise ValidationError("Cannot implement an unreviewed change request")
    if not cr.accepted:
        raise ValidationError("Cannot implement a denied change request")
    return cr


def get_all_change_requests(*, repo=None):
    repo = repo or get_repository()
    crs = repo.find_many(ChangeRequest, ChangeRequest.date_deleted.is_(None), order_by=ChangeRequest.id.desc())
    return [cr.to_dict() for cr in crs]


def get_single_change_request(cr_id, *, repo=None):
    repo = repo or get_repository()
    return _get_change_request(repo, cr_id).to_dict()


def create_change_request(actor, wbs, cr_type, what="", justification="", *, repo=None):
    """Submit a new change request against a live project or work package."""
    repo = repo or get_repository()
    wbs_element = get_live_wbs_element(repo, wbs)
    require(actor, "change_request.create", None, "Guests cannot create change requests", repo=repo)

    if cr_type not in CR_TYPES:
        raise ValidationError(f"Invalid change request type: {cr_type}. Must be one of: {sorted(CR_TYPES)}")
    if cr_type in WORK_PACKAGE_ONLY_TYPES and wbs.is_project:
        raise ValidationError(f"{cr_type} change requests can only target a work package")

    cr = ChangeRequest(
        submitter_id=actor.id,
        wbs_element=wbs_element,
        type=cr_type,
        what=what or "",
        justification=justification or "",
    )
    repo.add(cr)
    repo.commit()
    logger.info("Change request #%s (%s) submitted on %s", cr.id, cr_type, wbs,
                extra={"user_id": actor.id, "entity_type": "change_request", "entity_id": cr.id,
                       "wbs_num": str(wbs)})
    NotificationService.notify_change_request_submitted(cr)
    return cr.to_dict()


def _apply_work_package_lifecycle(repo, cr, actor, now, start_date):
    """Run the work package transition an accepted ACTIVATION / STAGE_GATE request implies."""
    wbs_element = cr.wbs_element
    if wbs_element.is_deleted:
        raise DeletedEntityError("Work Package", str(wbs_element.wbs_number))
    work_package = wbs_element.work_package

    if cr.type == "activation":
        wbs_element.status = validate_work_package_transition(wbs_element.status, "activate")
        if start_date is not None:
            work_package.start_date = start_date
        elif work_package.start_date is None:
            work_package.start_date = now.date()
        record_change(repo, cr, wbs_element, actor, "Activated work package", now)
    else:
        target = validate_work_package_transition(wbs_element.status, "complete")
        ensure_bullets_checked(work_package)
        wbs_element.status = target
        record_change(repo, cr, wbs_element, actor, "Completed work package", now)
    return work_package


def review_change_request(actor, cr_id, accepted, review_notes=None, start_date=None, *, repo=None):
    """Accept or deny an open change request.

    Args:
        accepted: True to accept, False to deny.
        start_date: optional start date applied when accepting an ACTIVATION request.
    """
    repo = repo or get_repository()
    cr = _get_mutable_change_request(repo, cr_id)
    reason = ("You cannot review your own change request" if cr.submitter_id == actor.id
              else "Only leadership can review change requests")
    require(actor, "change_request.review", cr, reason, repo=repo)

    action = "accept" if accepted else "deny"
    if cr.status not in CR_TRANSITIONS[action]["from"]:
        raise ValidationError(f"Change request #{cr.id} has already been reviewed")

    now = datetime.now(timezone.utc)
    completed = None
    if accepted and cr.type in WORK_PACKAGE_ONLY_TYPES:
        completed = _apply_work_package_lifecycle(repo, cr, actor, now, parse_date(start_date))

    cr.reviewer_id = actor.id
    cr.reviewer = actor
    cr.date_reviewed = now
    cr.accepted = bool(accepted)
    cr.review_notes = review_notes
    repo.commit()

    logger.info("Change request #%s %s", cr.id, CR_TRANSITIONS[action]["to"],
                extra={"user_id": actor.id, "entity_type": "change_request", "entity_id": cr.id,
                       "transition": action})
    NotificationService.notify_change_request_reviewed(cr)
    if completed is not None and cr.type == "stage_gate":
        NotificationService.notify_work_package_completed(completed)
    return cr.to_dict()


def delete_change_request(actor, cr_id, *, repo=None):
    """Soft-delete an open change request (submitter or admin)."""
    repo = repo or get_repository()
    cr = _get_mutable_change_request(repo, cr_id)
    require(actor, "change_request.delete", cr,
            "You must be the submitter or an admin to delete a change request", repo=repo)
    if cr.status != "open":
        raise ValidationError("Cannot delete a reviewed change request")

    cr.mark_deleted(actor)
    repo.commit()
    logger.info("Change request #%s deleted", cr.id,
                extra={"user_id": actor.id, "entity_type": "change_request", "entity_id": cr.id})
    return cr.to_dict()
