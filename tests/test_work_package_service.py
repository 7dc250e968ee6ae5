"""
ProjectHub
Tests — work package service: creation, edits, deletion, description bullets.
"""

from datetime import date

import pytest

from projecthub.core.exceptions import (
    AccessDeniedAdminOnlyError,
    AccessDeniedError,
    DeletedEntityError,
    NotFoundError,
    ValidationError,
)
from projecthub.core.wbs import WbsNumber
from projecthub.services import work_package_service


@pytest.fixture()
def project(make_project, make_user):
    return make_project(1, 1, lead=make_user(), manager=make_user())


@pytest.fixture()
def accepted_cr(make_change_request, project, member, leader):
    return make_change_request(member, project.wbs_element, reviewer=leader, accepted=True)


class TestCreate:
    def test_numbers_and_inherits_leadership(self, project, accepted_cr, member, make_work_package):
        make_work_package(project, number=1)
        result = work_package_service.create_work_package(
            member, accepted_cr.id, WbsNumber(1, 1, 0), "Bracket", start_date="2026-03-02", duration=3,
            expected_activities=["design"], deliverables=["drawing"],
        )
        assert result["wbs_num"]["work_package_number"] == 2
        assert result["status"] == "inactive"
        assert result["start_date"] == "2026-03-02"
        assert result["project_lead"]["id"] == project.wbs_element.project_lead_id
        assert [b["detail"] for b in result["expected_activities"]] == ["design"]
        assert [b["detail"] for b in result["deliverables"]] == ["drawing"]

    def test_zero_duration(self, accepted_cr, member):
        with pytest.raises(ValidationError, match="duration"):
            work_package_service.create_work_package(member, accepted_cr.id, WbsNumber(1, 1, 0), "X", duration=0)

    def test_guest_denied(self, accepted_cr, guest):
        with pytest.raises(AccessDeniedError):
            work_package_service.create_work_package(guest, accepted_cr.id, WbsNumber(1, 1, 0), "X")

    def test_parent_must_be_project_wbs(self, accepted_cr, member):
        with pytest.raises(ValidationError, match="not a valid project WBS #"):
            work_package_service.create_work_package(member, accepted_cr.id, WbsNumber(1, 1, 4), "X")


class TestEdit:
    def test_edit_dates_and_deliverables(self, project, accepted_cr, member, make_work_package, make_bullet):
        wp = make_work_package(project)
        old = make_bullet(wp, "deliverable", "old drawing")
        result = work_package_service.edit_work_package(member, WbsNumber(1, 1, 1), accepted_cr.id, {
            "start_date": "2026-05-04",
            "duration": 6,
            "deliverables": ["new drawing"],
        })
        assert result["start_date"] == "2026-05-04"
        assert result["duration"] == 6
        assert [d["detail"] for d in result["deliverables"]] == ["new drawing"]
        assert old.is_deleted
        assert wp.start_date == date(2026, 5, 4)

    def test_project_wbs_rejected(self, accepted_cr, member):
        with pytest.raises(ValidationError, match="not a valid work package WBS #"):
            work_package_service.edit_work_package(member, WbsNumber(1, 1, 0), accepted_cr.id, {})


class TestDelete:
    def test_admin_only(self, project, make_work_package, leader):
        make_work_package(project)
        with pytest.raises(AccessDeniedAdminOnlyError, match="delete work packages"):
            work_package_service.delete_work_package(leader, WbsNumber(1, 1, 1))

    def test_delete_then_lookup(self, project, make_work_package, admin):
        make_work_package(project)
        work_package_service.delete_work_package(admin, WbsNumber(1, 1, 1))
        with pytest.raises(DeletedEntityError):
            work_package_service.get_single_work_package(WbsNumber(1, 1, 1))
        assert work_package_service.get_work_packages_for_project(WbsNumber(1, 1, 0)) == []


class TestCheckBullet:
    def test_toggle_records_checker(self, project, make_work_package, make_bullet):
        wp = make_work_package(project)
        bullet = make_bullet(wp, "expected_activity")
        manager = project.wbs_element.project_manager
        checked = work_package_service.check_description_bullet(manager, bullet.id)
        assert checked["user_checked"]["id"] == manager.id
        assert checked["date_time_checked"] is not None
        unchecked = work_package_service.check_description_bullet(manager, bullet.id)
        assert unchecked["user_checked"] is None and unchecked["date_time_checked"] is None

    def test_unrelated_member_denied(self, project, make_work_package, make_bullet, member):
        bullet = make_bullet(make_work_package(project), "deliverable")
        with pytest.raises(AccessDeniedError):
            work_package_service.check_description_bullet(member, bullet.id)

    def test_completed_work_package_is_frozen(self, project, make_work_package, make_bullet, leader):
        bullet = make_bullet(make_work_package(project, status="complete"), "deliverable", checked_by=leader)
        with pytest.raises(ValidationError, match="completed work package"):
            work_package_service.check_description_bullet(leader, bullet.id)

    def test_missing_bullet(self, leader):
        with pytest.raises(NotFoundError, match="Description Bullet"):
            work_package_service.check_description_bullet(leader, 12345)
