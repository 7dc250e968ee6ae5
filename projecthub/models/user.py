"""
User model.

Users are created by the authentication layer and never hard-deleted.
``role`` is only changed through ``user_service.update_user_role``.
"""

from datetime import datetime, timezone

from projecthub.core.roles import Role
from projecthub.models import db


user_favorite_projects = db.Table(
    "user_favorite_projects",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    db.Column("project_id", db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(200), unique=True, nullable=False)
    role = db.Column(db.Enum(Role, native_enum=False, length=20), nullable=False, default=Role.GUEST)
    slack_id = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    favorite_projects = db.relationship(
        "Project", secondary=user_favorite_projects, back_populates="favorited_by",
    )

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role.name if self.role else None,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.role.name if self.role else '-'})>"
