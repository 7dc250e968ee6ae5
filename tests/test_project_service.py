"""
ProjectHub
Tests — project service.

Covers:
    - create / edit gated by an accepted change request
    - Change audit rows
    - admin-only delete with WBS shape checks and work package cascade
    - set team
    - favorites toggle
"""

import pytest

from projecthub.core.exceptions import (
    AccessDeniedAdminOnlyError,
    AccessDeniedError,
    DeletedEntityError,
    NotFoundError,
    ValidationError,
)
from projecthub.core.wbs import WbsNumber
from projecthub.models.change_request import Change
from projecthub.services import project_service


@pytest.fixture()
def project(make_project):
    return make_project(1, 1, name="Impact Attenuator")


@pytest.fixture()
def accepted_cr(make_change_request, project, member, leader):
    return make_change_request(member, project.wbs_element, reviewer=leader, accepted=True)


class TestCreate:
    def test_next_project_number_under_car(self, project, accepted_cr, member):
        result = project_service.create_project(member, accepted_cr.id, 1, "Brakes", summary="stop")
        assert result["wbs_num"] == {"car_number": 1, "project_number": 2, "work_package_number": 0}
        assert result["status"] == "active"
        changes = Change.query.filter_by(change_request_id=accepted_cr.id).all()
        assert [c.detail for c in changes] == ["New Project Created"]

    def test_first_project_on_new_car(self, accepted_cr, member):
        result = project_service.create_project(member, accepted_cr.id, 7, "Chassis")
        assert result["wbs_num"]["project_number"] == 1

    def test_guest_cannot_create(self, accepted_cr, guest):
        with pytest.raises(AccessDeniedError):
            project_service.create_project(guest, accepted_cr.id, 1, "Brakes")

    def test_unreviewed_cr_rejected(self, make_change_request, project, member):
        cr = make_change_request(member, project.wbs_element)
        with pytest.raises(ValidationError, match="unreviewed"):
            project_service.create_project(member, cr.id, 1, "Brakes")

    def test_denied_cr_rejected(self, make_change_request, project, member, leader):
        cr = make_change_request(member, project.wbs_element, reviewer=leader, accepted=False)
        with pytest.raises(ValidationError, match="denied"):
            project_service.create_project(member, cr.id, 1, "Brakes")

    def test_missing_cr(self, member):
        with pytest.raises(NotFoundError, match="Change Request"):
            project_service.create_project(member, 404, 1, "Brakes")


class TestEdit:
    def test_edit_fields_and_bullets_records_changes(self, project, accepted_cr, member, make_user):
        lead = make_user()
        result = project_service.edit_project(member, WbsNumber(1, 1, 0), accepted_cr.id, {
            "name": "Impact Attenuator v2",
            "budget": 500,
            "project_lead_id": lead.id,
            "goals": ["pass inspection"],
        })
        assert result["name"] == "Impact Attenuator v2"
        assert result["budget"] == 500
        assert result["project_lead"]["id"] == lead.id
        assert [g["detail"] for g in result["goals"]] == ["pass inspection"]
        details = [c.detail for c in Change.query.filter_by(change_request_id=accepted_cr.id)]
        assert len(details) == 4

    def test_removed_bullets_are_soft_deleted(self, project, accepted_cr, member, make_bullet):
        keep = make_bullet(project, "feature", "carbon fibre")
        drop = make_bullet(project, "feature", "aluminium")
        result = project_service.edit_project(member, WbsNumber(1, 1, 0), accepted_cr.id, {
            "features": [{"id": keep.id, "detail": "carbon fibre"}],
        })
        assert [f["id"] for f in result["features"]] == [keep.id]
        assert drop.is_deleted

    def test_unknown_bullet_id_leaves_project_untouched(self, project, accepted_cr, member):
        with pytest.raises(NotFoundError, match="Description Bullet"):
            project_service.edit_project(member, WbsNumber(1, 1, 0), accepted_cr.id, {
                "name": "Renamed",
                "goals": [{"id": 999, "detail": "ghost"}],
            })
        assert project.wbs_element.name == "Impact Attenuator"

    def test_negative_budget(self, project, accepted_cr, member):
        with pytest.raises(ValidationError, match="budget"):
            project_service.edit_project(member, WbsNumber(1, 1, 0), accepted_cr.id, {"budget": -1})


class TestDelete:
    def test_admin_deletes_with_work_packages(self, project, make_work_package, admin):
        wp = make_work_package(project)
        result = project_service.delete_project(admin, WbsNumber(1, 1, 0))
        assert result["date_deleted"] is not None
        assert wp.wbs_element.is_deleted

    def test_second_delete_reports_deleted(self, project, admin):
        project_service.delete_project(admin, WbsNumber(1, 1, 0))
        with pytest.raises(DeletedEntityError):
            project_service.delete_project(admin, WbsNumber(1, 1, 0))

    def test_work_package_wbs_is_rejected(self, admin):
        with pytest.raises(ValidationError, match="1.1.1 is not a valid project WBS #"):
            project_service.delete_project(admin, WbsNumber(1, 1, 1))

    def test_role_checked_before_lookup(self, head):
        with pytest.raises(AccessDeniedAdminOnlyError, match="Only admins can delete projects"):
            project_service.delete_project(head, WbsNumber(100, 100, 0))

    def test_missing_project(self, admin):
        with pytest.raises(NotFoundError, match="Project"):
            project_service.delete_project(admin, WbsNumber(100, 100, 0))


class TestSetTeam:
    def test_admin_sets_team(self, project, make_team, head, admin):
        team = make_team(head, name="Mechanical")
        assert project_service.set_project_team(admin, WbsNumber(1, 1, 0), team.id)["team"]["id"] == team.id

    def test_unknown_team(self, project, admin):
        with pytest.raises(NotFoundError, match="Team"):
            project_service.set_project_team(admin, WbsNumber(1, 1, 0), "nope")


class TestFavorites:
    def test_toggle_is_an_involution(self, project, member):
        assert project_service.toggle_favorite(member, WbsNumber(1, 1, 0))["favorited"] is True
        assert project.favorited_by == [member]
        assert project_service.toggle_favorite(member, WbsNumber(1, 1, 0))["favorited"] is False
        assert project.favorited_by == []

    def test_missing_project(self, member):
        with pytest.raises(NotFoundError):
            project_service.toggle_favorite(member, WbsNumber(100, 100, 0))

    def test_work_package_wbs(self, member):
        with pytest.raises(ValidationError, match="not a valid project WBS #"):
            project_service.toggle_favorite(member, WbsNumber(100, 100, 100))


def test_list_excludes_deleted(make_project, admin):
    make_project(1, 1)
    make_project(1, 2, deleted_by=admin)
    assert [p["wbs_num"]["project_number"] for p in project_service.get_all_projects()] == [1]


def test_single_project(project, admin):
    assert project_service.get_single_project(WbsNumber(1, 1, 0))["name"] == "Impact Attenuator"
    with pytest.raises(ValidationError):
        project_service.get_single_project(WbsNumber(1, 1, 2))
    project_service.delete_project(admin, WbsNumber(1, 1, 0))
    with pytest.raises(DeletedEntityError):
        project_service.get_single_project(WbsNumber(1, 1, 0))
