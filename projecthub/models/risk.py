"""
ProjectHub
Risk model.

A risk is a free-text concern raised against a project. Lifecycle:

    open ──resolve──▶ resolved ──unresolve──▶ open
    open | resolved ──delete──▶ deleted (terminal)

``resolved_by_user_id`` and ``resolved_at`` are set together on resolve and
cleared together on unresolve; they are non-null iff ``is_resolved``.
"""

import uuid
from datetime import datetime, timezone

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.soft_delete import SoftDeleteMixin


# (current state, transition) → new state
RISK_TRANSITIONS = {
    ("open", "resolve"): "resolved",
    ("open", "edit_detail"): "open",
    ("open", "delete"): "deleted",
    ("resolved", "unresolve"): "open",
    ("resolved", "edit_detail"): "resolved",
    ("resolved", "delete"): "deleted",
}


def _set_resolved(risk, actor, now):
    risk.is_resolved = True
    risk.resolved_by_user_id = actor.id
    risk.resolved_at = now


def _clear_resolved(risk, actor, now):
    risk.is_resolved = False
    risk.resolved_by_user_id = None
    risk.resolved_at = None


def _delete(risk, actor, now):
    risk.mark_deleted(actor, now)


_RISK_EFFECTS = {
    "resolve": _set_resolved,
    "unresolve": _clear_resolved,
    "delete": _delete,
}


def apply_risk_transition(risk, transition, actor, now=None):
    """Move ``risk`` along ``transition``, applying its field side-effects.

    Raises:
        ValidationError: if the edge is not in RISK_TRANSITIONS.
    """
    key = (risk.state, transition)
    if key not in RISK_TRANSITIONS:
        raise ValidationError(f"Cannot {transition} a risk that is {risk.state}")
    effect = _RISK_EFFECTS.get(transition)
    if effect is not None:
        effect(risk, actor, now or datetime.now(timezone.utc))
    return RISK_TRANSITIONS[key]


class Risk(SoftDeleteMixin, db.Model):
    __tablename__ = "risks"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    detail = db.Column(db.Text, nullable=False)
    is_resolved = db.Column(db.Boolean, nullable=False, default=False)
    resolved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    date_created = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    project = db.relationship("Project", back_populates="risks")
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    resolved_by = db.relationship("User", foreign_keys=[resolved_by_user_id])
    deleted_by = db.relationship("User", foreign_keys="Risk.deleted_by_user_id")

    @property
    def state(self):
        if self.is_deleted:
            return "deleted"
        return "resolved" if self.is_resolved else "open"

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "wbs_num": self.project.wbs_element.wbs_number.to_dict() if self.project else None,
            "detail": self.detail,
            "is_resolved": self.is_resolved,
            "resolved_by": self.resolved_by.to_dict() if self.resolved_by else None,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "created_by": self.created_by.to_dict() if self.created_by else None,
            "date_created": self.date_created.isoformat() if self.date_created else None,
            "deleted_by": self.deleted_by.to_dict() if self.deleted_by else None,
            "date_deleted": self.date_deleted.isoformat() if self.date_deleted else None,
        }

    def __repr__(self):
        return f"<Risk {self.id}: {self.detail[:40]}>"
