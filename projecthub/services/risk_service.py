"""Risk service layer.

Risks follow the transition table in ``projecthub.models.risk``. A deleted
risk rejects every further mutation with DeletedEntityError, checked before
permissions, so callers can tell "gone" apart from "not allowed".
"""

import logging
from datetime import datetime, timezone

from projecthub.core.exceptions import DeletedEntityError, NotFoundError, ValidationError
from projecthub.models.project import Project
from projecthub.models.risk import Risk, apply_risk_transition
from projecthub.repository import get_repository
from projecthub.services.permission import require

logger = logging.getLogger(__name__)


def _get_project(repo, project_id):
    project = repo.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project", project_id)
    if project.wbs_element.is_deleted:
        raise DeletedEntityError("Project", project_id)
    return project


def _get_live_risk(repo, risk_id):
    risk = repo.get(Risk, risk_id)
    if risk is None:
        raise NotFoundError("Risk", risk_id)
    if risk.is_deleted:
        raise DeletedEntityError("Risk", risk_id)
    if risk.project.wbs_element.is_deleted:
        raise DeletedEntityError("Project", risk.project_id)
    return risk


def _log(actor, risk, message, *args):
    logger.info(message, *args, extra={"user_id": actor.id, "entity_type": "risk", "entity_id": risk.id})


def get_risks_for_project(project_id, *, repo=None):
    repo = repo or get_repository()
    project = _get_project(repo, project_id)
    return [r.to_dict() for r in project.risks if not r.is_deleted]


def create_risk(actor, project_id, detail, *, repo=None):
    repo = repo or get_repository()
    project = _get_project(repo, project_id)
    require(actor, "risk.create", project,
            "You must be on the project's team or in leadership to create risks", repo=repo)
    if not detail or not str(detail).strip():
        raise ValidationError("detail is required")

    risk = Risk(project=project, detail=str(detail).strip(), created_by_user_id=actor.id,
                date_created=datetime.now(timezone.utc))
    repo.add(risk)
    repo.commit()
    _log(actor, risk, "Risk created on project %s", project.wbs_element.wbs_number)
    return risk.to_dict()


def edit_risk(actor, risk_id, detail=None, resolved=None, *, repo=None):
    """Edit a risk's detail and/or flip its resolution.

    ``resolved`` None leaves the resolution alone; True/False resolves or
    unresolves when it differs from the current state.
    """
    repo = repo or get_repository()
    risk = _get_live_risk(repo, risk_id)
    require(actor, "risk.edit", risk, repo=repo)
    if detail is not None and not str(detail).strip():
        raise ValidationError("detail cannot be empty")

    now = datetime.now(timezone.utc)
    transitions = []
    if detail is not None and detail != risk.detail:
        transitions.append("edit_detail")
    if resolved is not None and bool(resolved) != risk.is_resolved:
        transitions.append("resolve" if resolved else "unresolve")

    for transition in transitions:
        apply_risk_transition(risk, transition, actor, now)
    if "edit_detail" in transitions:
        risk.detail = str(detail).strip()
    repo.commit()
    _log(actor, risk, "Risk edited: %s", ", ".join(transitions) or "no changes")
    return risk.to_dict()


def delete_risk(actor, risk_id, *, repo=None):
    """Soft-delete a risk (its creator, project leadership, or org leadership)."""
    repo = repo or get_repository()
    risk = _get_live_risk(repo, risk_id)
    require(actor, "risk.delete", risk, repo=repo)

    apply_risk_transition(risk, "delete", actor)
    repo.commit()
    _log(actor, risk, "Risk deleted")
    return risk.to_dict()
