"""User service layer: lookups and role changes."""

import logging

from projecthub.core.exceptions import AccessDeniedError, NotFoundError
from projecthub.core.roles import Role
from projecthub.models.user import User
from projecthub.repository import get_repository
from projecthub.services.permission import RoleGrant, require

logger = logging.getLogger(__name__)


def get_all_users(*, repo=None):
    repo = repo or get_repository()
    return [u.to_dict() for u in repo.find_many(User, order_by=User.id)]


def get_single_user(user_id, *, repo=None):
    repo = repo or get_repository()
    user = repo.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user.to_dict()


def update_user_role(actor, target_user_id, new_role, *, repo=None):
    """Change another user's role.

    Admins only; an admin may not change their own role or grant a role
    above their own.
    """
    repo = repo or get_repository()
    target = repo.get(User, target_user_id)
    if target is None:
        raise NotFoundError("User", target_user_id)
    role = Role.parse(new_role)

    if target.id == actor.id:
        raise AccessDeniedError("cannot change your own role")
    require(actor, "user.update_role", RoleGrant(target, role),
            "only admins can update roles, and not above their own", repo=repo)

    old_role = target.role
    target.role = role
    repo.commit()
    logger.info("Role of user %s changed %s → %s", target.id, old_role.name, role.name,
                extra={"user_id": actor.id, "entity_type": "user", "entity_id": target.id})
    return target.to_dict()
