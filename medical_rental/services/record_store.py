from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.rental_models import Category, Equipment, Profile, Rental
from services.rental_errors import PersistenceError

STORE_LOGGER = logging.getLogger("medical_rental.store")

COLLECTIONS = {
    "profiles": Profile,
    "categories": Category,
    "equipment": Equipment,
    "rentals": Rental,
}


def _model_for(collection: str):
    model = COLLECTIONS.get(collection)
    if model is None:
        raise KeyError(f"Unknown collection: {collection}")
    return model


class RecordStore:
    """Create/read/update access to the named record collections.

    Writes are flushed, not committed; wrap them in ``transaction()`` so that
    every change in one user action lands together or not at all.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator["RecordStore"]:
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            STORE_LOGGER.warning("Store transaction rolled back: %s", exc)
            raise PersistenceError(str(exc)) from exc
        except Exception:
            self.db.rollback()
            raise

    def get(self, collection: str, record_id: Any):
        model = _model_for(collection)
        try:
            return self.db.get(model, record_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        *conditions,
        order_by=None,
        limit: int | None = None,
    ) -> list:
        """Rows matching every filter; list values mean "one of", ``None`` means IS NULL."""
        model = _model_for(collection)
        stmt = select(model)
        for field, value in (filters or {}).items():
            column = getattr(model, field)
            if isinstance(value, (list, tuple, set)):
                stmt = stmt.where(column.in_(list(value)))
            elif value is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == value)
        for condition in conditions:
            stmt = stmt.where(condition)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        if limit:
            stmt = stmt.limit(limit)
        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def create(self, collection: str, fields: dict[str, Any]):
        model = _model_for(collection)
        record = model(**fields)
        now = datetime.now()
        if hasattr(model, "CreatedAt") and getattr(record, "CreatedAt", None) is None:
            record.CreatedAt = now
        if hasattr(model, "UpdatedAt"):
            record.UpdatedAt = now
        self.db.add(record)
        self._flush()
        return record

    def update(self, collection: str, record_id: Any, fields: dict[str, Any]):
        record = self.get(collection, record_id)
        if record is None:
            raise PersistenceError(f"{collection} record {record_id} not found")
        for field, value in fields.items():
            if not hasattr(record, field):
                raise KeyError(f"Unknown field {field} on {collection}")
            setattr(record, field, value)
        if hasattr(record, "UpdatedAt") and "UpdatedAt" not in fields:
            record.UpdatedAt = datetime.now()
        self._flush()
        return record

    def _flush(self) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
