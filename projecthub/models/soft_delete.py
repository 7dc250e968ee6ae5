"""
Soft Delete Mixin — the shared "Deletable" capability.

Adds ``date_deleted`` / ``deleted_by_user_id`` columns and query helpers.
Deleted records stay in the table and are permanently blocked from further
mutation; there is no restore.

Usage:
    class Risk(SoftDeleteMixin, db.Model):
        ...

    risk.mark_deleted(user)
    repo.commit()

    Risk.query_active().all()
"""

from datetime import datetime, timezone

from sqlalchemy.orm import declared_attr

from projecthub.models import db


class SoftDeleteMixin:
    """Mixin that adds soft delete support to any SQLAlchemy model."""

    date_deleted = db.Column(db.DateTime(timezone=True), nullable=True, default=None, index=True)

    @declared_attr
    def deleted_by_user_id(cls):
        return db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    def mark_deleted(self, actor, at=None):
        """Mark this record as deleted by ``actor`` (a User or None)."""
        self.date_deleted = at or datetime.now(timezone.utc)
        self.deleted_by_user_id = actor.id if actor is not None else None

    @property
    def is_deleted(self):
        return self.date_deleted is not None

    @classmethod
    def query_active(cls):
        """Return a query that excludes soft-deleted records."""
        return cls.query.filter(cls.date_deleted.is_(None))
