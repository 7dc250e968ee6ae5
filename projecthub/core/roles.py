"""
Role model — a total order over user roles.

    GUEST < MEMBER < LEADERSHIP < HEAD < ADMIN < APP_ADMIN

Roles are an IntEnum so that ``<``, ``>=`` etc. compare rank directly. The
predicates below are the only place role thresholds are spelled out; the
permission evaluator and services consume them instead of comparing names.
"""

from enum import IntEnum

from projecthub.core.exceptions import ValidationError


class Role(IntEnum):
    GUEST = 1
    MEMBER = 2
    LEADERSHIP = 3
    HEAD = 4
    ADMIN = 5
    APP_ADMIN = 6

    @classmethod
    def parse(cls, value) -> "Role":
        """Return the Role for a name (case-insensitive) or an existing Role."""
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            valid = ", ".join(r.name for r in cls)
            raise ValidationError(f"Invalid role '{value}'. Must be one of: {valid}") from None


def rank(role: Role) -> int:
    return int(role)


def is_guest(role: Role) -> bool:
    return role == Role.GUEST


def is_leadership(role: Role) -> bool:
    return role >= Role.LEADERSHIP


def is_head(role: Role) -> bool:
    return role >= Role.HEAD


def is_admin(role: Role) -> bool:
    return role >= Role.ADMIN
