"""
Team model.

Membership invariants (enforced by ``team_service`` on every write):
    - exactly one head
    - head is neither a lead nor a member
    - leads and members are disjoint
"""

import uuid

from projecthub.models import db


team_leads = db.Table(
    "team_leads",
    db.Column("team_id", db.String(36), db.ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

team_members = db.Table(
    "team_members",
    db.Column("team_id", db.String(36), db.ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

DESCRIPTION_MAX_WORDS = 300


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    team_name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, default="")
    head_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    head = db.relationship("User", foreign_keys=[head_id])
    leads = db.relationship("User", secondary=team_leads, order_by="User.id")
    members = db.relationship("User", secondary=team_members, order_by="User.id")
    projects = db.relationship("Project", back_populates="team")

    def has_user(self, user_id):
        """True if the user is this team's head, a lead, or a member."""
        return (
            self.head_id == user_id
            or any(u.id == user_id for u in self.leads)
            or any(u.id == user_id for u in self.members)
        )

    def to_dict(self):
        return {
            "id": self.id,
            "team_name": self.team_name,
            "description": self.description,
            "head": self.head.to_dict() if self.head else None,
            "leads": [u.to_dict() for u in self.leads],
            "members": [u.to_dict() for u in self.members],
            "projects": [
                {"id": p.id, "wbs_num": p.wbs_element.wbs_number.to_dict(), "name": p.wbs_element.name}
                for p in self.projects if not p.wbs_element.is_deleted
            ],
        }

    def __repr__(self):
        return f"<Team {self.team_name}>"
