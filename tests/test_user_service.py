"""
ProjectHub
Tests — user lookups and role changes.
"""

import pytest

from projecthub.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from projecthub.core.roles import Role
from projecthub.services import user_service


def test_admin_promotes_member(admin, member):
    assert user_service.update_user_role(admin, member.id, "leadership")["role"] == "LEADERSHIP"
    assert member.role is Role.LEADERSHIP


def test_cannot_change_own_role(admin):
    with pytest.raises(AccessDeniedError, match="your own role"):
        user_service.update_user_role(admin, admin.id, "GUEST")


def test_cannot_grant_above_own_role(admin, member):
    with pytest.raises(AccessDeniedError):
        user_service.update_user_role(admin, member.id, "APP_ADMIN")
    assert member.role is Role.MEMBER


def test_non_admin_denied(head, member):
    with pytest.raises(AccessDeniedError):
        user_service.update_user_role(head, member.id, "GUEST")


def test_invalid_role(admin, member):
    with pytest.raises(ValidationError, match="Invalid role"):
        user_service.update_user_role(admin, member.id, "OVERLORD")


def test_missing_user(admin):
    with pytest.raises(NotFoundError, match="User with id 999"):
        user_service.update_user_role(admin, 999, "MEMBER")


def test_lookups(member, leader):
    assert [u["id"] for u in user_service.get_all_users()] == [member.id, leader.id]
    assert user_service.get_single_user(leader.id)["first_name"] == "Lee"
