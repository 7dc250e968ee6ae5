"""
ProjectHub
Tests — permission evaluator.

Covers:
    - role thresholds per action
    - relationship rules (project lead/manager, team membership, submitter)
    - finance team membership
    - require() error types
"""

import pytest

from projecthub.core.exceptions import AccessDeniedAdminOnlyError, AccessDeniedError
from projecthub.core.roles import Role
from projecthub.models import db
from projecthub.models.risk import Risk
from projecthub.services.permission import ACTIONS, RoleGrant, can_perform, is_on_finance_team, require


def _risk(project, creator):
    risk = Risk(project=project, detail="supplier slip", created_by_user_id=creator.id)
    db.session.add(risk)
    db.session.commit()
    return risk


def test_unknown_action_is_a_programming_error(member):
    with pytest.raises(KeyError):
        can_perform(member, "project.launch_rocket")


def test_no_user_is_never_allowed():
    assert all(not can_perform(None, action) for action in ACTIONS if action.endswith("create"))


def test_guests_cannot_create_or_edit(guest, member):
    for action in ("project.create", "project.edit", "work_package.create",
                   "work_package.edit", "change_request.create"):
        assert not can_perform(guest, action)
        assert can_perform(member, action)


def test_admin_only_actions(head, admin):
    for action in ("project.set_team", "project.delete", "work_package.delete"):
        assert not can_perform(head, action)
        assert can_perform(admin, action)
        with pytest.raises(AccessDeniedAdminOnlyError, match="Only admins can"):
            require(head, action)


class TestRiskRules:
    def test_create_requires_team_or_leadership(self, make_user, make_team, make_project, guest, member, leader):
        outsider = make_user(Role.MEMBER)
        team = make_team(make_user(Role.HEAD), members=[member])
        project = make_project(team=team)
        assert can_perform(member, "risk.create", project)
        assert can_perform(leader, "risk.create", project)
        assert not can_perform(outsider, "risk.create", project)
        assert not can_perform(guest, "risk.create", project)

    def test_project_lead_can_edit(self, make_user, make_project, member):
        lead = make_user(Role.MEMBER)
        project = make_project(lead=lead)
        risk = _risk(project, member)
        assert can_perform(lead, "risk.edit", risk)
        assert not can_perform(member, "risk.edit", risk)

    def test_creator_can_delete_but_not_edit(self, make_project, member):
        risk = _risk(make_project(), member)
        assert can_perform(member, "risk.delete", risk)
        assert not can_perform(member, "risk.edit", risk)


class TestChangeRequestRules:
    def test_cannot_review_own(self, make_project, make_change_request, leader, head):
        cr = make_change_request(leader, make_project().wbs_element)
        assert not can_perform(leader, "change_request.review", cr)
        assert can_perform(head, "change_request.review", cr)

    def test_members_cannot_review(self, make_project, make_change_request, member, leader):
        cr = make_change_request(leader, make_project().wbs_element)
        assert not can_perform(member, "change_request.review", cr)


class TestBulletRules:
    def test_lead_manager_or_leadership(self, make_user, make_project, make_work_package, make_bullet, member,
                                        leader):
        manager = make_user(Role.MEMBER)
        wp = make_work_package(make_project(), manager=manager)
        bullet = make_bullet(wp, "deliverable")
        assert can_perform(manager, "bullet.check", bullet)
        assert can_perform(leader, "bullet.check", bullet)
        assert not can_perform(member, "bullet.check", bullet)


class TestFinanceRules:
    def test_finance_team_members_and_admins(self, make_user, make_team, member, admin):
        finance_member = make_user(Role.MEMBER)
        make_team(make_user(Role.HEAD), name="Finance", members=[finance_member])
        assert is_on_finance_team(finance_member)
        assert can_perform(finance_member, "finance.manage")
        assert can_perform(admin, "finance.manage")
        assert not can_perform(member, "finance.manage")

    def test_no_finance_team_means_admins_only(self, member, admin):
        assert not is_on_finance_team(member)
        assert can_perform(admin, "finance.manage")


class TestRoleGrants:
    def test_admin_cannot_grant_above_own_role(self, make_user, admin, member):
        assert can_perform(admin, "user.update_role", RoleGrant(member, Role.ADMIN))
        assert not can_perform(admin, "user.update_role", RoleGrant(member, Role.APP_ADMIN))

    def test_non_admin_denied_with_reason(self, head, member):
        with pytest.raises(AccessDeniedError, match="only admins"):
            require(head, "user.update_role", RoleGrant(member, Role.GUEST), "only admins can update roles")
