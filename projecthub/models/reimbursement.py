"""
ProjectHub
Finance domain models.

Models:
    - Vendor: where an expense was purchased
    - ExpenseType: SABO expense category; ``allowed`` gates new requests
    - ReimbursementRequest: a member's claim for money spent on the team
    - ReimbursementProduct: one purchased item, charged to a WBS element
    - ReceiptFile: reference to a receipt stored in the document store
    - ReimbursementStatus: lifecycle history, one row per transition
    - Reimbursement: a payout recorded against a user's owed balance

Request lifecycle:

    pending ─assign_sabo─▶ sabo_assigned ─send_to_advisor─▶ advisor_review
            ─approve─▶ approved ─mark_delivered─▶ delivered
    any of the first four ─delete─▶ deleted

All money amounts are integer cents.
"""

import uuid
from datetime import datetime, timezone

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.soft_delete import SoftDeleteMixin


ACCOUNTS = {"cash", "budget"}

REQUEST_STATUSES = {"pending", "sabo_assigned", "advisor_review", "approved", "delivered", "deleted"}
REQUEST_TERMINAL_STATUSES = {"delivered", "deleted"}

REQUEST_TRANSITIONS = {
    "assign_sabo": {"from": {"pending"}, "to": "sabo_assigned"},
    "send_to_advisor": {"from": {"sabo_assigned"}, "to": "advisor_review"},
    "approve": {"from": {"advisor_review"}, "to": "approved"},
    "mark_delivered": {"from": {"approved"}, "to": "delivered"},
    "delete": {"from": {"pending", "sabo_assigned", "advisor_review", "approved"}, "to": "deleted"},
}


def _uuid():
    return str(uuid.uuid4())


def _now():
    return datetime.now(timezone.utc)


def apply_request_transition(request, action, actor, now=None):
    """Validate and execute a lifecycle transition on a reimbursement request.

    Appends a ReimbursementStatus history row. Raises ValidationError for an
    edge that is not in REQUEST_TRANSITIONS.
    """
    rule = REQUEST_TRANSITIONS.get(action)
    if rule is None:
        raise ValidationError(f"Unknown reimbursement request transition: {action}")
    if request.status not in rule["from"]:
        raise ValidationError(
            f"Cannot {action.replace('_', ' ')} a reimbursement request that is {request.status.replace('_', ' ')}"
        )

    now = now or _now()
    request.status = rule["to"]
    if action == "mark_delivered":
        request.date_delivered = now
    elif action == "delete":
        request.mark_deleted(actor, now)
    request.status_history.append(
        ReimbursementStatus(type=rule["to"], user_id=actor.id, date_created=now)
    )
    return request.status


class Vendor(db.Model):
    __tablename__ = "vendors"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), unique=True, nullable=False)
    date_created = db.Column(db.DateTime(timezone=True), default=_now)

    def to_dict(self):
        return {"id": self.id, "name": self.name}


class ExpenseType(db.Model):
    __tablename__ = "expense_types"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    code = db.Column(db.Integer, unique=True, nullable=False)
    allowed = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "code": self.code, "allowed": self.allowed}


class ReimbursementRequest(SoftDeleteMixin, db.Model):
    __tablename__ = "reimbursement_requests"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    identifier = db.Column(db.Integer, unique=True, nullable=False, comment="human-facing sequential number")
    recipient_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    vendor_id = db.Column(db.String(36), db.ForeignKey("vendors.id"), nullable=False)
    expense_type_id = db.Column(db.String(36), db.ForeignKey("expense_types.id"), nullable=False)
    account = db.Column(db.String(20), nullable=False, default="cash")
    date_of_expense = db.Column(db.Date, nullable=False)
    total_cost = db.Column(db.Integer, nullable=False, comment="cents")
    sabo_id = db.Column(db.Integer, unique=True, nullable=True)
    status = db.Column(db.String(30), nullable=False, default="pending", index=True)
    date_created = db.Column(db.DateTime(timezone=True), default=_now)
    date_delivered = db.Column(db.DateTime(timezone=True), nullable=True)

    recipient = db.relationship("User", foreign_keys=[recipient_id])
    vendor = db.relationship("Vendor")
    expense_type = db.relationship("ExpenseType")
    products = db.relationship(
        "ReimbursementProduct", back_populates="request", order_by="ReimbursementProduct.id",
        cascade="all, delete-orphan",
    )
    receipts = db.relationship(
        "ReceiptFile", back_populates="request", order_by="ReceiptFile.id", cascade="all, delete-orphan",
    )
    status_history = db.relationship(
        "ReimbursementStatus", back_populates="request", order_by="ReimbursementStatus.id",
        cascade="all, delete-orphan",
    )

    @property
    def active_products(self):
        return [p for p in self.products if not p.is_deleted]

    def to_dict(self):
        return {
            "id": self.id,
            "identifier": self.identifier,
            "recipient": self.recipient.to_dict() if self.recipient else None,
            "vendor": self.vendor.to_dict() if self.vendor else None,
            "expense_type": self.expense_type.to_dict() if self.expense_type else None,
            "account": self.account,
            "date_of_expense": self.date_of_expense.isoformat() if self.date_of_expense else None,
            "total_cost": self.total_cost,
            "sabo_id": self.sabo_id,
            "status": self.status,
            "reimbursement_products": [p.to_dict() for p in self.active_products],
            "receipt_pictures": [r.to_dict() for r in self.receipts if not r.is_deleted],
            "reimbursement_statuses": [s.to_dict() for s in self.status_history],
            "date_created": self.date_created.isoformat() if self.date_created else None,
            "date_delivered": self.date_delivered.isoformat() if self.date_delivered else None,
            "date_deleted": self.date_deleted.isoformat() if self.date_deleted else None,
        }

    def __repr__(self):
        return f"<ReimbursementRequest #{self.identifier} ({self.status})>"


class ReimbursementProduct(SoftDeleteMixin, db.Model):
    __tablename__ = "reimbursement_products"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    request_id = db.Column(
        db.String(36), db.ForeignKey("reimbursement_requests.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    cost = db.Column(db.Integer, nullable=False, comment="cents")
    wbs_element_id = db.Column(db.Integer, db.ForeignKey("wbs_elements.id"), nullable=False)

    request = db.relationship("ReimbursementRequest", back_populates="products")
    wbs_element = db.relationship("WbsElement")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "cost": self.cost,
            "wbs_num": self.wbs_element.wbs_number.to_dict() if self.wbs_element else None,
        }


class ReceiptFile(SoftDeleteMixin, db.Model):
    __tablename__ = "receipt_files"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    request_id = db.Column(
        db.String(36), db.ForeignKey("reimbursement_requests.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(300), nullable=False)
    storage_file_id = db.Column(db.String(200), nullable=False, index=True)
    date_added = db.Column(db.DateTime(timezone=True), default=_now)

    request = db.relationship("ReimbursementRequest", back_populates="receipts")

    def to_dict(self):
        return {"id": self.id, "name": self.name, "storage_file_id": self.storage_file_id}


class ReimbursementStatus(db.Model):
    __tablename__ = "reimbursement_statuses"

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.String(36), db.ForeignKey("reimbursement_requests.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    type = db.Column(db.String(30), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    date_created = db.Column(db.DateTime(timezone=True), default=_now)

    request = db.relationship("ReimbursementRequest", back_populates="status_history")
    user = db.relationship("User")

    def to_dict(self):
        return {
            "type": self.type,
            "user": self.user.to_dict() if self.user else None,
            "date_created": self.date_created.isoformat() if self.date_created else None,
        }


class Reimbursement(db.Model):
    __tablename__ = "reimbursements"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_submitter_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False, comment="cents")
    date_created = db.Column(db.DateTime(timezone=True), default=_now)

    user_submitter = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "user_submitter": self.user_submitter.to_dict() if self.user_submitter else None,
            "amount": self.amount,
            "date_created": self.date_created.isoformat() if self.date_created else None,
        }
