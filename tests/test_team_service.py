"""
ProjectHub
Tests — team service: membership invariants and access rules.
"""

import pytest

from projecthub.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from projecthub.core.roles import Role
from projecthub.services import team_service


@pytest.fixture()
def team(make_team, make_user, head):
    return make_team(head, name="Software", leads=[make_user(Role.LEADERSHIP)])


class TestSetMembers:
    def test_head_sets_members(self, team, head, make_user):
        a, b = make_user(), make_user()
        result = team_service.set_team_members(head, team.id, [a.id, b.id])
        assert [m["id"] for m in result["members"]] == [a.id, b.id]

    def test_admin_sets_members(self, team, admin, member):
        result = team_service.set_team_members(admin, team.id, [member.id])
        assert [m["id"] for m in result["members"]] == [member.id]

    def test_guest_is_denied_and_membership_unchanged(self, team, guest, member):
        with pytest.raises(AccessDeniedError, match="admin or the team head"):
            team_service.set_team_members(guest, team.id, [member.id])
        assert team.members == []

    def test_head_cannot_be_member(self, team, head):
        with pytest.raises(ValidationError, match="team head cannot be a member"):
            team_service.set_team_members(head, team.id, [head.id])

    def test_lead_cannot_be_member(self, team, head):
        with pytest.raises(ValidationError, match="team leads cannot be members"):
            team_service.set_team_members(head, team.id, [team.leads[0].id])

    def test_unknown_user(self, team, head):
        with pytest.raises(NotFoundError, match="User with id 9999"):
            team_service.set_team_members(head, team.id, [9999])

    def test_unknown_team(self, admin):
        with pytest.raises(NotFoundError, match="Team"):
            team_service.set_team_members(admin, "missing", [])


class TestSetLeads:
    def test_members_cannot_be_leads(self, team, head, member):
        team_service.set_team_members(head, team.id, [member.id])
        with pytest.raises(ValidationError, match="team members cannot be leads"):
            team_service.set_team_leads(head, team.id, [member.id])

    def test_replace_leads(self, team, head, make_user):
        new_lead = make_user(Role.LEADERSHIP)
        result = team_service.set_team_leads(head, team.id, [new_lead.id])
        assert [u["id"] for u in result["leads"]] == [new_lead.id]


class TestSetHead:
    def test_candidate_must_be_at_least_head(self, team, admin, leader):
        with pytest.raises(AccessDeniedError, match="at least a head"):
            team_service.set_team_head(admin, team.id, leader.id)

    def test_candidate_heading_another_team_is_denied(self, team, admin, make_team, make_user):
        other_head = make_user(Role.HEAD)
        make_team(other_head, name="Hardware")
        with pytest.raises(AccessDeniedError, match="must not be a head or lead of another team"):
            team_service.set_team_head(admin, team.id, other_head.id)
        assert team.head_id != other_head.id

    def test_candidate_leading_another_team_is_denied(self, team, admin, make_team, make_user):
        other_lead = make_user(Role.HEAD)
        make_team(make_user(Role.HEAD), name="Hardware", leads=[other_lead])
        with pytest.raises(AccessDeniedError, match="must not be a head or lead of another team"):
            team_service.set_team_head(admin, team.id, other_lead.id)
        assert team.head_id != other_lead.id

    def test_new_head_leaves_member_list(self, team, admin, head, make_user):
        new_head = make_user(Role.HEAD)
        team_service.set_team_members(head, team.id, [new_head.id])
        result = team_service.set_team_head(admin, team.id, new_head.id)
        assert result["head"]["id"] == new_head.id
        assert new_head.id not in [m["id"] for m in result["members"]]

    def test_non_head_cannot_change_head(self, team, member, make_user):
        with pytest.raises(AccessDeniedError):
            team_service.set_team_head(member, team.id, make_user(Role.HEAD).id)


class TestDescription:
    def test_edit(self, team, head):
        assert team_service.edit_description(head, team.id, "We build the car")["description"] == "We build the car"

    def test_word_limit(self, team, head):
        with pytest.raises(ValidationError, match="less than 300 words"):
            team_service.edit_description(head, team.id, "word " * 301)


def test_lookups(team, make_team, make_user):
    make_team(make_user(Role.HEAD), name="Aerodynamics")
    assert [t["team_name"] for t in team_service.get_all_teams()] == ["Aerodynamics", "Software"]
    single = team_service.get_single_team(team.id)
    assert single["head"]["first_name"] == "Hana"
    assert len(single["leads"]) == 1
    with pytest.raises(NotFoundError):
        team_service.get_single_team(999)
