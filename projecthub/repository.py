"""
Persistence seam used by every service.

Services receive a ``Repository`` (``repo=`` keyword, default
``get_repository()``) instead of touching ``db.session`` directly. Each
mutation performs its lookups and validations first and then calls
``repo.commit()`` exactly once, so a failed validation never leaves partial
writes behind.

Commit failures roll the session back:
    IntegrityError   → ConflictError (HTTP 409)
    anything else    → re-raised after logging (HTTP 500)
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from projecthub.core.exceptions import ConflictError
from projecthub.models import db

logger = logging.getLogger(__name__)


class Repository:
    """Thin wrapper over a SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    def get(self, model, pk):
        if pk is None:
            return None
        return self.session.get(model, pk)

    def find_first(self, model, *criteria, order_by=None):
        stmt = select(model).where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        return self.session.scalars(stmt.limit(1)).first()

    def find_many(self, model, *criteria, order_by=None):
        stmt = select(model).where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        return list(self.session.scalars(stmt))

    def scalar(self, stmt):
        return self.session.scalar(stmt)

    def add(self, obj):
        self.session.add(obj)
        return obj

    def flush(self):
        self.session.flush()

    def commit(self):
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Integrity error on commit: %s", exc.orig)
            raise ConflictError("Record", "constraint", str(exc.orig)) from exc
        except Exception:
            self.session.rollback()
            logger.exception("Unexpected database error on commit")
            raise

    def rollback(self):
        self.session.rollback()


def get_repository() -> Repository:
    return Repository(db.session)
