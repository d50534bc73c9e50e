# Overview: Record-store collaborator; list/add/update/delete per entity over the SQLAlchemy session.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import EntityNotFound, PersistenceFailure


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


class Collection:
    """
    Document-store style access to one entity type.

    autocommit=True commits every write on its own, so a sequence of writes
    can fail part way and leave earlier writes in place. autocommit=False only
    flushes; the surrounding unit_of_work() commits or rolls back everything.
    """

    def __init__(self, model, *, autocommit: bool = True, lock: bool = False):
        self.model = model
        self.autocommit = autocommit
        self.lock = lock

    @property
    def name(self) -> str:
        return self.model.__tablename__

    def list(self) -> list:
        try:
            return db.session.query(self.model).order_by(self.model.id.asc()).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceFailure(f"list on {self.name} failed", details={"table": self.name}) from exc

    def find(self, entity_id):
        """Primary-key lookup; None when the row no longer exists."""
        query = db.session.query(self.model).filter_by(id=entity_id)
        if self.lock:
            query = lock_for_update(query)
        try:
            return query.first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceFailure(
                f"read on {self.name} failed",
                details={"table": self.name, "id": entity_id},
            ) from exc

    def get(self, entity_id):
        obj = self.find(entity_id)
        if obj is None:
            raise EntityNotFound(
                f"{self.model.__name__} {entity_id} not found",
                details={"table": self.name, "id": entity_id},
            )
        return obj

    def add(self, obj):
        db.session.add(obj)
        self._write("add", getattr(obj, "id", None))
        return obj

    def update(self, entity_id, **fields):
        obj = self.get(entity_id)
        for key, value in fields.items():
            if not hasattr(self.model, key):
                raise AttributeError(f"{self.model.__name__} has no field {key!r}")
            setattr(obj, key, value)
        self._write("update", entity_id)
        return obj

    def delete(self, entity_id) -> None:
        obj = self.get(entity_id)
        db.session.delete(obj)
        self._write("delete", entity_id)

    def _write(self, operation: str, entity_id) -> None:
        try:
            if self.autocommit:
                db.session.commit()
            else:
                db.session.flush()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceFailure(
                f"{operation} on {self.name} failed",
                details={"operation": operation, "table": self.name, "id": entity_id},
            ) from exc


@contextmanager
def unit_of_work(atomic: bool = True):
    """
    Commit everything written inside the block as one transaction.

    With atomic=False the block's collections are expected to autocommit;
    nothing is rolled back on failure.
    """
    try:
        yield
    except Exception:
        if atomic:
            db.session.rollback()
        raise

    if not atomic:
        return
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceFailure("commit failed", details={"operation": "commit"}) from exc
