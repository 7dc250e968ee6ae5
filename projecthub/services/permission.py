"""
Permission evaluator.

Single entry point ``can_perform(user, action, target)`` that answers whether
``user`` may run ``action`` against ``target``. Every rule is a pure
predicate registered in ``_RULES``; nothing here raises for a denial.
Services call ``require()`` to turn a ``False`` into AccessDeniedError.

Targets per action:

    project.create / project.edit  None
    work_package.create / .edit   None
    change_request.create         None
    risk.create                   Project
    risk.edit / risk.delete       Risk
    team.edit                     Team
    project.set_team              None
    project.delete                None
    work_package.delete           None
    bullet.check                  DescriptionBullet
    change_request.review         ChangeRequest
    change_request.delete         ChangeRequest
    finance.manage                None
    reimbursement_request.edit    ReimbursementRequest
    reimbursement_request.view    ReimbursementRequest
    user.update_role              RoleGrant(target_user, new_role)

Usage:
    from projecthub.services.permission import can_perform, require

    if can_perform(user, "risk.edit", risk):
        ...
    require(user, "team.edit", team, "you must be an admin or the team head to update the members!")
"""

import logging
from collections import namedtuple

from flask import current_app

from projecthub.core.exceptions import AccessDeniedAdminOnlyError, AccessDeniedError
from projecthub.core.roles import is_admin, is_guest, is_leadership
from projecthub.models.team import Team
from projecthub.repository import get_repository

logger = logging.getLogger(__name__)

RoleGrant = namedtuple("RoleGrant", ["target_user", "new_role"])

ADMIN_ONLY_ACTIONS = {
    "project.set_team": "set project teams",
    "project.delete": "delete projects",
    "work_package.delete": "delete work packages",
}


# ── Shared predicates ────────────────────────────────────────────────────────


def _leads_project(user, project):
    return project is not None and project.wbs_element.is_led_by(user.id)


def is_on_finance_team(user, repo=None) -> bool:
    """True if ``user`` is head, lead or member of the configured finance team."""
    repo = repo or get_repository()
    team_name = current_app.config.get("FINANCE_TEAM_NAME", "Finance")
    team = repo.find_first(Team, Team.team_name == team_name)
    if team is None:
        logger.warning("Finance team %r does not exist; only admins can manage finance", team_name)
        return False
    return team.has_user(user.id)


# ── Rules ────────────────────────────────────────────────────────────────────


def _not_guest(user, target, repo):
    return not is_guest(user.role)


def _risk_create(user, project, repo):
    if is_guest(user.role):
        return False
    if is_leadership(user.role) or _leads_project(user, project):
        return True
    return project.team is not None and project.team.has_user(user.id)


def _risk_edit(user, risk, repo):
    return is_leadership(user.role) or _leads_project(user, risk.project)


def _risk_delete(user, risk, repo):
    return risk.created_by_user_id == user.id or _risk_edit(user, risk, repo)


def _team_edit(user, team, repo):
    return is_admin(user.role) or team.head_id == user.id


def _admin_only(user, target, repo):
    return is_admin(user.role)


def _bullet_check(user, bullet, repo):
    if is_leadership(user.role):
        return True
    wbs = bullet.owner_wbs_element
    return wbs is not None and wbs.is_led_by(user.id)


def _change_request_review(user, cr, repo):
    return is_leadership(user.role) and cr.submitter_id != user.id


def _change_request_delete(user, cr, repo):
    return is_admin(user.role) or cr.submitter_id == user.id


def _finance_manage(user, target, repo):
    return is_admin(user.role) or is_on_finance_team(user, repo)


def _reimbursement_request_edit(user, request, repo):
    return request.recipient_id == user.id


def _reimbursement_request_view(user, request, repo):
    return request.recipient_id == user.id or _finance_manage(user, None, repo)


def _user_update_role(user, grant, repo):
    if not is_admin(user.role):
        return False
    if grant.target_user.id == user.id:
        return False
    return grant.new_role <= user.role


_RULES = {
    "project.create": _not_guest,
    "project.edit": _not_guest,
    "work_package.create": _not_guest,
    "work_package.edit": _not_guest,
    "change_request.create": _not_guest,
    "risk.create": _risk_create,
    "risk.edit": _risk_edit,
    "risk.delete": _risk_delete,
    "team.edit": _team_edit,
    "project.set_team": _admin_only,
    "project.delete": _admin_only,
    "work_package.delete": _admin_only,
    "bullet.check": _bullet_check,
    "change_request.review": _change_request_review,
    "change_request.delete": _change_request_delete,
    "finance.manage": _finance_manage,
    "reimbursement_request.edit": _reimbursement_request_edit,
    "reimbursement_request.view": _reimbursement_request_view,
    "user.update_role": _user_update_role,
}

ACTIONS = frozenset(_RULES)


def can_perform(user, action, target=None, *, repo=None) -> bool:
    """Return True if ``user`` may perform ``action`` on ``target``.

    Raises:
        KeyError: for an unregistered action (programming error).
    """
    rule = _RULES[action]
    if user is None:
        return False
    return bool(rule(user, target, repo))


def require(user, action, target=None, reason="", *, repo=None):
    """Raise AccessDeniedError unless ``can_perform`` allows the action."""
    if can_perform(user, action, target, repo=repo):
        return
    logger.info("Access denied: user=%s action=%s", getattr(user, "id", None), action,
                extra={"user_id": getattr(user, "id", None)})
    if action in ADMIN_ONLY_ACTIONS:
        raise AccessDeniedAdminOnlyError(ADMIN_ONLY_ACTIONS[action])
    raise AccessDeniedError(reason)
