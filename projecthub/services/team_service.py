"""Team service layer.

Every write keeps the membership invariants documented on ``Team``:
one head, head not a lead or member, leads and members disjoint. All checks
run before anything is assigned, so a rejected update leaves the team as it
was.
"""

import logging

from sqlalchemy import or_

from projecthub.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from projecthub.core.roles import is_head
from projecthub.models.team import DESCRIPTION_MAX_WORDS, Team
from projecthub.models.user import User
from projecthub.repository import get_repository
from projecthub.services.permission import require
from projecthub.utils.helpers import is_under_word_count

logger = logging.getLogger(__name__)

_EDIT_DENIED = "you must be an admin or the team head to update the members!"


def _get_team(repo, team_id):
    team = repo.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team", team_id)
    return team


def _get_users(repo, user_ids):
    """Load users in the order given; raise NotFoundError for the first missing id."""
    found = {u.id: u for u in repo.find_many(User, User.id.in_(user_ids))} if user_ids else {}
    for uid in user_ids:
        if uid not in found:
            raise NotFoundError("User", uid)
    return [found[uid] for uid in dict.fromkeys(user_ids)]


def _log_team_change(actor, team, what):
    logger.info("Team %s: %s", team.team_name, what,
                extra={"user_id": actor.id, "entity_type": "team", "entity_id": team.id})


def get_all_teams(*, repo=None):
    repo = repo or get_repository()
    return [t.to_dict() for t in repo.find_many(Team, order_by=Team.team_name)]


def get_single_team(team_id, *, repo=None):
    repo = repo or get_repository()
    return _get_team(repo, team_id).to_dict()


def set_team_members(actor, team_id, user_ids, *, repo=None):
    """Replace the team's members with ``user_ids``."""
    repo = repo or get_repository()
    team = _get_team(repo, team_id)
    require(actor, "team.edit", team, _EDIT_DENIED, repo=repo)

    users = _get_users(repo, user_ids)
    ids = {u.id for u in users}
    if team.head_id in ids:
        raise ValidationError("team head cannot be a member!")
    if any(lead.id in ids for lead in team.leads):
        raise ValidationError("team leads cannot be members!")

    team.members = users
    repo.commit()
    _log_team_change(actor, team, f"members set to {sorted(ids)}")
    return team.to_dict()


def set_team_leads(actor, team_id, user_ids, *, repo=None):
    """Replace the team's leads with ``user_ids``."""
    repo = repo or get_repository()
    team = _get_team(repo, team_id)
    require(actor, "team.edit", team, "you must be an admin or the team head to update the leads!", repo=repo)

    users = _get_users(repo, user_ids)
    ids = {u.id for u in users}
    if team.head_id in ids:
        raise ValidationError("team head cannot be a lead!")
    if any(member.id in ids for member in team.members):
        raise ValidationError("team members cannot be leads!")

    team.leads = users
    repo.commit()
    _log_team_change(actor, team, f"leads set to {sorted(ids)}")
    return team.to_dict()


def set_team_head(actor, team_id, user_id, *, repo=None):
    """Make ``user_id`` the head of the team.

    The candidate must be at least HEAD and must not already be head or lead
    of a different team. If they are a lead or member of this team they are
    removed from that list.
    """
    repo = repo or get_repository()
    team = _get_team(repo, team_id)
    require(actor, "team.edit", team, "You must be an admin or the head to update the head!", repo=repo)

    new_head = repo.get(User, user_id)
    if new_head is None:
        raise NotFoundError("User", user_id)
    if not is_head(new_head.role):
        raise AccessDeniedError("The team head must be at least a head")

    other_team = repo.find_first(
        Team,
        Team.id != team.id,
        or_(Team.head_id == new_head.id, Team.leads.any(User.id == new_head.id)),
    )
    if other_team is not None:
        raise AccessDeniedError("The new team head must not be a head or lead of another team")

    team.head = new_head
    team.leads = [u for u in team.leads if u.id != new_head.id]
    team.members = [u for u in team.members if u.id != new_head.id]
    repo.commit()
    _log_team_change(actor, team, f"head set to user {new_head.id}")
    return team.to_dict()


def edit_description(actor, team_id, description, *, repo=None):
    repo = repo or get_repository()
    team = _get_team(repo, team_id)
    require(actor, "team.edit", team, "you must be an admin or the team head to update the description!",
            repo=repo)
    if not is_under_word_count(description, DESCRIPTION_MAX_WORDS):
        raise ValidationError(f"Description must be less than {DESCRIPTION_MAX_WORDS} words")

    team.description = description
    repo.commit()
    _log_team_change(actor, team, "description edited")
    return team.to_dict()
