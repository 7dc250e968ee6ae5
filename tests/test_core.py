"""
ProjectHub
Tests — core value types: roles and WBS numbers.
"""

import pytest

from projecthub.core.exceptions import ValidationError
from projecthub.core.roles import Role, is_admin, is_guest, is_head, is_leadership, rank
from projecthub.core.wbs import WbsNumber, require_project_wbs, require_work_package_wbs


# ═════════════════════════════════════════════════════════════════════════════
# ROLES
# ═════════════════════════════════════════════════════════════════════════════

class TestRoles:
    def test_total_order(self):
        ordered = [Role.GUEST, Role.MEMBER, Role.LEADERSHIP, Role.HEAD, Role.ADMIN, Role.APP_ADMIN]
        assert sorted(ordered, key=rank) == ordered
        assert [rank(r) for r in ordered] == sorted(rank(r) for r in ordered)

    def test_predicates(self):
        assert is_guest(Role.GUEST) and not is_guest(Role.MEMBER)
        assert not is_leadership(Role.MEMBER)
        assert is_leadership(Role.LEADERSHIP) and is_leadership(Role.APP_ADMIN)
        assert not is_head(Role.LEADERSHIP) and is_head(Role.HEAD)
        assert not is_admin(Role.HEAD) and is_admin(Role.ADMIN) and is_admin(Role.APP_ADMIN)

    @pytest.mark.parametrize("raw", ["admin", "ADMIN", " Admin "])
    def test_parse_is_case_insensitive(self, raw):
        assert Role.parse(raw) is Role.ADMIN

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValidationError, match="Invalid role"):
            Role.parse("SUPERUSER")


# ═════════════════════════════════════════════════════════════════════════════
# WBS NUMBERS
# ═════════════════════════════════════════════════════════════════════════════

class TestWbsNumber:
    def test_parse_and_str(self):
        wbs = WbsNumber.parse("1.2.3")
        assert (wbs.car_number, wbs.project_number, wbs.work_package_number) == (1, 2, 3)
        assert str(wbs) == "1.2.3"
        assert not wbs.is_project
        assert WbsNumber.parse("1.2.0").is_project

    @pytest.mark.parametrize("raw", ["1.2", "1.2.3.4", "a.b.c", "1.-2.0", ""])
    def test_parse_rejects_malformed(self, raw):
        with pytest.raises(ValidationError, match="WBS Invalid"):
            WbsNumber.parse(raw)

    def test_from_dict(self):
        wbs = WbsNumber.from_dict({"car_number": 1, "project_number": 4, "work_package_number": 0})
        assert wbs == WbsNumber(1, 4, 0)
        with pytest.raises(ValidationError):
            WbsNumber.from_dict({"car_number": 1})

    def test_shape_guards(self):
        require_project_wbs(WbsNumber(1, 1, 0))
        require_work_package_wbs(WbsNumber(1, 1, 1))
        with pytest.raises(ValidationError, match="1.1.1 is not a valid project WBS #"):
            require_project_wbs(WbsNumber(1, 1, 1))
        with pytest.raises(ValidationError, match="not a valid work package WBS #"):
            require_work_package_wbs(WbsNumber(1, 1, 0))
