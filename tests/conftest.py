"""
Shared pytest fixtures for the ProjectHub test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / make_team / make_project / make_work_package /
      make_bullet / make_change_request: ORM factories
    - guest / member / leader / head / admin: one user per role
    - as_user: X-User-Id header builder for API tests
"""

import itertools
from datetime import datetime, timezone

import pytest

from projecthub import create_app
from projecthub.core.roles import Role
from projecthub.models import db as _db
from projecthub.models.change_request import ChangeRequest
from projecthub.models.project import DescriptionBullet, Project, WbsElement, WorkPackage
from projecthub.models.team import Team
from projecthub.models.user import User


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def as_user():
    """Return the auth header for a user: ``client.get(url, headers=as_user(admin))``."""
    def _headers(user):
        return {"X-User-Id": str(user.id)}
    return _headers


# ── ORM factories ────────────────────────────────────────────────────────

_seq = itertools.count(1)


@pytest.fixture()
def make_user():
    def _make(role=Role.MEMBER, first_name=None, last_name="Tester", slack_id=None):
        n = next(_seq)
        user = User(
            first_name=first_name or f"User{n}",
            last_name=last_name,
            email=f"user{n}@projecthub.test",
            role=role,
            slack_id=slack_id,
        )
        _db.session.add(user)
        _db.session.commit()
        return user
    return _make


@pytest.fixture()
def guest(make_user):
    return make_user(Role.GUEST, first_name="Gina")


@pytest.fixture()
def member(make_user):
    return make_user(Role.MEMBER, first_name="Mo")


@pytest.fixture()
def leader(make_user):
    return make_user(Role.LEADERSHIP, first_name="Lee")


@pytest.fixture()
def head(make_user):
    return make_user(Role.HEAD, first_name="Hana")


@pytest.fixture()
def admin(make_user):
    return make_user(Role.ADMIN, first_name="Ada")


@pytest.fixture()
def make_team():
    def _make(head, name=None, leads=(), members=()):
        team = Team(team_name=name or f"Team {next(_seq)}", head=head,
                    leads=list(leads), members=list(members))
        _db.session.add(team)
        _db.session.commit()
        return team
    return _make


@pytest.fixture()
def make_project():
    def _make(car_number=1, project_number=1, name="Test Project", lead=None, manager=None, team=None,
              deleted_by=None):
        wbs = WbsElement(
            car_number=car_number,
            project_number=project_number,
            work_package_number=0,
            name=name,
            status="active",
            project_lead_id=lead.id if lead else None,
            project_manager_id=manager.id if manager else None,
        )
        project = Project(wbs_element=wbs, team=team, summary="", budget=0)
        if deleted_by is not None:
            wbs.mark_deleted(deleted_by)
        _db.session.add(project)
        _db.session.commit()
        return project
    return _make


@pytest.fixture()
def make_work_package():
    def _make(project, number=1, name="Test Work Package", status="inactive", lead=None, manager=None):
        pwbs = project.wbs_element
        wbs = WbsElement(
            car_number=pwbs.car_number,
            project_number=pwbs.project_number,
            work_package_number=number,
            name=name,
            status=status,
            project_lead_id=lead.id if lead else pwbs.project_lead_id,
            project_manager_id=manager.id if manager else pwbs.project_manager_id,
        )
        work_package = WorkPackage(wbs_element=wbs, project=project, duration=2)
        _db.session.add(work_package)
        _db.session.commit()
        return work_package
    return _make


@pytest.fixture()
def make_bullet():
    def _make(owner, bullet_type, detail="do the thing", checked_by=None):
        kwargs = {"work_package": owner} if isinstance(owner, WorkPackage) else {"project": owner}
        bullet = DescriptionBullet(bullet_type=bullet_type, detail=detail, **kwargs)
        if checked_by is not None:
            bullet.user_checked = checked_by
            bullet.date_time_checked = datetime.now(timezone.utc)
        _db.session.add(bullet)
        _db.session.commit()
        return bullet
    return _make


@pytest.fixture()
def make_change_request():
    def _make(submitter, wbs_element, cr_type="other", reviewer=None, accepted=None):
        cr = ChangeRequest(submitter_id=submitter.id, wbs_element=wbs_element, type=cr_type,
                           what="change", justification="because")
        if accepted is not None:
            cr.reviewer_id = reviewer.id if reviewer else None
            cr.accepted = accepted
            cr.date_reviewed = datetime.now(timezone.utc)
        _db.session.add(cr)
        _db.session.commit()
        return cr
    return _make
