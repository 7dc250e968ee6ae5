"""
ProjectHub
Change Request models.

Models:
    - ChangeRequest: a proposal against a WBS element, reviewed by leadership
    - Change: audit row recording one field change implemented under a CR

Project and work package mutations are only accepted when they cite a
reviewed-and-accepted change request. ACTIVATION and STAGE_GATE requests
additionally drive the work package lifecycle when accepted.
"""

from datetime import datetime, timezone

from projecthub.models import db
from projecthub.models.soft_delete import SoftDeleteMixin


CR_TYPES = {"issue", "definition_change", "other", "activation", "stage_gate"}

# open → accepted | denied (terminal once reviewed)
CR_TRANSITIONS = {
    "accept": {"from": {"open"}, "to": "accepted"},
    "deny": {"from": {"open"}, "to": "denied"},
}


class ChangeRequest(SoftDeleteMixin, db.Model):
    __tablename__ = "change_requests"

    id = db.Column(db.Integer, primary_key=True)
    submitter_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    wbs_element_id = db.Column(
        db.Integer, db.ForeignKey("wbs_elements.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    type = db.Column(db.String(30), nullable=False, default="other")
    what = db.Column(db.Text, default="")
    justification = db.Column(db.Text, default="")
    date_submitted = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    reviewer_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    date_reviewed = db.Column(db.DateTime(timezone=True), nullable=True)
    accepted = db.Column(db.Boolean, nullable=True)
    review_notes = db.Column(db.Text, nullable=True)

    submitter = db.relationship("User", foreign_keys=[submitter_id])
    reviewer = db.relationship("User", foreign_keys=[reviewer_id])
    wbs_element = db.relationship("WbsElement")
    changes = db.relationship("Change", back_populates="change_request", order_by="Change.id")

    @property
    def status(self):
        if self.date_reviewed is None:
            return "open"
        return "accepted" if self.accepted else "denied"

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "status": self.status,
            "wbs_num": self.wbs_element.wbs_number.to_dict() if self.wbs_element else None,
            "submitter": self.submitter.to_dict() if self.submitter else None,
            "what": self.what,
            "justification": self.justification,
            "date_submitted": self.date_submitted.isoformat() if self.date_submitted else None,
            "reviewer": self.reviewer.to_dict() if self.reviewer else None,
            "date_reviewed": self.date_reviewed.isoformat() if self.date_reviewed else None,
            "accepted": self.accepted,
            "review_notes": self.review_notes,
            "implemented_changes": [c.to_dict() for c in self.changes],
        }

    def __repr__(self):
        return f"<ChangeRequest #{self.id} {self.type} ({self.status})>"


class Change(db.Model):
    __tablename__ = "changes"

    id = db.Column(db.Integer, primary_key=True)
    change_request_id = db.Column(
        db.Integer, db.ForeignKey("change_requests.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    wbs_element_id = db.Column(
        db.Integer, db.ForeignKey("wbs_elements.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    implementer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    detail = db.Column(db.Text, nullable=False)
    date_implemented = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    change_request = db.relationship("ChangeRequest", back_populates="changes")
    wbs_element = db.relationship("WbsElement", back_populates="changes")
    implementer = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "change_request_id": self.change_request_id,
            "wbs_num": self.wbs_element.wbs_number.to_dict() if self.wbs_element else None,
            "implementer": self.implementer.to_dict() if self.implementer else None,
            "detail": self.detail,
            "date_implemented": self.date_implemented.isoformat() if self.date_implemented else None,
        }
