"""
ProjectHub
Project / Work Package domain models.

Models:
    - WbsElement: identity + lifecycle shared by projects and work packages
    - Project: WBS x.y.0, owned by a team, carries goals/features/constraints
    - WorkPackage: WBS x.y.z (z > 0), carries expected activities/deliverables
    - DescriptionBullet: checklist item attached to a project or work package

Architecture chain: WbsElement → Project → WorkPackage → DescriptionBullet
"""

from datetime import datetime, timezone

from projecthub.core.exceptions import ValidationError
from projecthub.core.wbs import WbsNumber
from projecthub.models import db
from projecthub.models.soft_delete import SoftDeleteMixin
from projecthub.models.user import user_favorite_projects


# ── Constants ────────────────────────────────────────────────────────────────

WBS_STATUSES = {"inactive", "active", "complete"}

PROJECT_BULLET_TYPES = {"goal", "feature", "constraint"}
WORK_PACKAGE_BULLET_TYPES = {"expected_activity", "deliverable"}
BULLET_TYPES = PROJECT_BULLET_TYPES | WORK_PACKAGE_BULLET_TYPES

# Work package lifecycle. Transitions fire only from an accepted change
# request (activation / stage gate); "complete" is additionally guarded by
# ensure_bullets_checked().
WORK_PACKAGE_TRANSITIONS = {
    "activate": {"from": {"inactive"}, "to": "active"},
    "complete": {"from": {"active"}, "to": "complete"},
}


def validate_work_package_transition(current_status, action):
    """Return the target status for ``action`` or raise ValidationError."""
    rule = WORK_PACKAGE_TRANSITIONS.get(action)
    if rule is None:
        raise ValidationError(f"Unknown work package transition: {action}")
    if current_status not in rule["from"]:
        raise ValidationError(f"Cannot {action} a work package that is {current_status}")
    return rule["to"]


def ensure_bullets_checked(work_package):
    """Completion gate: every live expected activity and deliverable must be checked.

    Raises:
        ValidationError naming the first unsatisfied category.
    """
    def _unchecked(bullets):
        return any(b.date_time_checked is None and b.date_deleted is None for b in bullets)

    if _unchecked(work_package.expected_activities):
        raise ValidationError(
            "Work Package has unchecked expected activities",
            details={"category": "expected_activities"},
        )
    if _unchecked(work_package.deliverables):
        raise ValidationError(
            "Work Package has unchecked deliverables",
            details={"category": "deliverables"},
        )


# ═══════════════════════════════════════════════════════════════════════════
#  WBS ELEMENT
# ═══════════════════════════════════════════════════════════════════════════

class WbsElement(SoftDeleteMixin, db.Model):
    __tablename__ = "wbs_elements"
    __table_args__ = (
        db.UniqueConstraint("car_number", "project_number", "work_package_number", name="uq_wbs_number"),
    )

    id = db.Column(db.Integer, primary_key=True)
    car_number = db.Column(db.Integer, nullable=False)
    project_number = db.Column(db.Integer, nullable=False)
    work_package_number = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="inactive")
    project_lead_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    project_manager_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    date_created = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    project_lead = db.relationship("User", foreign_keys=[project_lead_id])
    project_manager = db.relationship("User", foreign_keys=[project_manager_id])
    project = db.relationship("Project", back_populates="wbs_element", uselist=False)
    work_package = db.relationship("WorkPackage", back_populates="wbs_element", uselist=False)
    changes = db.relationship("Change", back_populates="wbs_element", order_by="Change.id")

    @property
    def wbs_number(self):
        return WbsNumber(self.car_number, self.project_number, self.work_package_number)

    def is_led_by(self, user_id):
        return user_id is not None and user_id in (self.project_lead_id, self.project_manager_id)

    def __repr__(self):
        return f"<WbsElement {self.wbs_number}: {self.name[:40]}>"


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT
# ═══════════════════════════════════════════════════════════════════════════

class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    wbs_element_id = db.Column(
        db.Integer, db.ForeignKey("wbs_elements.id", ondelete="CASCADE"), unique=True, nullable=False,
    )
    team_id = db.Column(db.String(36), db.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True)
    summary = db.Column(db.Text, default="")
    budget = db.Column(db.Integer, default=0, comment="whole dollars")

    wbs_element = db.relationship("WbsElement", back_populates="project")
    team = db.relationship("Team", back_populates="projects")
    work_packages = db.relationship("WorkPackage", back_populates="project", order_by="WorkPackage.id")
    bullets = db.relationship("DescriptionBullet", back_populates="project", order_by="DescriptionBullet.id")
    risks = db.relationship("Risk", back_populates="project", order_by="Risk.date_created")
    favorited_by = db.relationship("User", secondary=user_favorite_projects, back_populates="favorite_projects")

    def _bullets(self, bullet_type):
        return [b for b in self.bullets if b.bullet_type == bullet_type]

    @property
    def goals(self):
        return self._bullets("goal")

    @property
    def features(self):
        return self._bullets("feature")

    @property
    def other_constraints(self):
        return self._bullets("constraint")

    def to_dict(self):
        wbs = self.wbs_element
        return {
            "id": self.id,
            "wbs_num": wbs.wbs_number.to_dict(),
            "name": wbs.name,
            "status": wbs.status,
            "summary": self.summary,
            "budget": self.budget,
            "team": {"id": self.team.id, "team_name": self.team.team_name} if self.team else None,
            "project_lead": wbs.project_lead.to_dict() if wbs.project_lead else None,
            "project_manager": wbs.project_manager.to_dict() if wbs.project_manager else None,
            "goals": [b.to_dict() for b in self.goals if not b.is_deleted],
            "features": [b.to_dict() for b in self.features if not b.is_deleted],
            "other_constraints": [b.to_dict() for b in self.other_constraints if not b.is_deleted],
            "work_packages": [wp.to_summary() for wp in self.work_packages if not wp.wbs_element.is_deleted],
            "date_created": wbs.date_created.isoformat() if wbs.date_created else None,
            "date_deleted": wbs.date_deleted.isoformat() if wbs.date_deleted else None,
            "deleted_by_user_id": wbs.deleted_by_user_id,
        }

    def __repr__(self):
        return f"<Project {self.wbs_element.wbs_number if self.wbs_element else self.id}>"


# ═══════════════════════════════════════════════════════════════════════════
#  WORK PACKAGE
# ═══════════════════════════════════════════════════════════════════════════

class WorkPackage(db.Model):
    __tablename__ = "work_packages"

    id = db.Column(db.Integer, primary_key=True)
    wbs_element_id = db.Column(
        db.Integer, db.ForeignKey("wbs_elements.id", ondelete="CASCADE"), unique=True, nullable=False,
    )
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = db.Column(db.Date, nullable=True)
    duration = db.Column(db.Integer, default=1, comment="weeks")

    wbs_element = db.relationship("WbsElement", back_populates="work_package")
    project = db.relationship("Project", back_populates="work_packages")
    bullets = db.relationship("DescriptionBullet", back_populates="work_package", order_by="DescriptionBullet.id")

    @property
    def expected_activities(self):
        return [b for b in self.bullets if b.bullet_type == "expected_activity"]

    @property
    def deliverables(self):
        return [b for b in self.bullets if b.bullet_type == "deliverable"]

    def to_summary(self):
        wbs = self.wbs_element
        return {
            "id": self.id,
            "wbs_num": wbs.wbs_number.to_dict(),
            "name": wbs.name,
            "status": wbs.status,
        }

    def to_dict(self):
        wbs = self.wbs_element
        return {
            **self.to_summary(),
            "project_name": self.project.wbs_element.name if self.project else None,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "duration": self.duration,
            "project_lead": wbs.project_lead.to_dict() if wbs.project_lead else None,
            "project_manager": wbs.project_manager.to_dict() if wbs.project_manager else None,
            "expected_activities": [b.to_dict() for b in self.expected_activities if not b.is_deleted],
            "deliverables": [b.to_dict() for b in self.deliverables if not b.is_deleted],
            "date_deleted": wbs.date_deleted.isoformat() if wbs.date_deleted else None,
        }

    def __repr__(self):
        return f"<WorkPackage {self.wbs_element.wbs_number if self.wbs_element else self.id}>"


# ═══════════════════════════════════════════════════════════════════════════
#  DESCRIPTION BULLET
# ═══════════════════════════════════════════════════════════════════════════

class DescriptionBullet(SoftDeleteMixin, db.Model):
    __tablename__ = "description_bullets"
    __table_args__ = (
        db.CheckConstraint(
            "(project_id IS NULL) <> (work_package_id IS NULL)",
            name="ck_bullet_single_owner",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    bullet_type = db.Column(db.String(30), nullable=False)
    detail = db.Column(db.Text, nullable=False)
    date_added = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    date_time_checked = db.Column(db.DateTime(timezone=True), nullable=True)
    user_checked_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    work_package_id = db.Column(
        db.Integer, db.ForeignKey("work_packages.id", ondelete="CASCADE"), nullable=True, index=True,
    )

    user_checked = db.relationship("User", foreign_keys=[user_checked_id])
    project = db.relationship("Project", back_populates="bullets")
    work_package = db.relationship("WorkPackage", back_populates="bullets")

    @property
    def owner_wbs_element(self):
        owner = self.work_package or self.project
        return owner.wbs_element if owner else None

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.bullet_type,
            "detail": self.detail,
            "date_added": self.date_added.isoformat() if self.date_added else None,
            "date_time_checked": self.date_time_checked.isoformat() if self.date_time_checked else None,
            "user_checked": self.user_checked.to_dict() if self.user_checked else None,
        }
