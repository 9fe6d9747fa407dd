"""
Datastore

Thin write layer over a SQLAlchemy session exposing the one contract the
webhook pipeline needs: "upsert this row on that conflict key". Every
method commits on success and converts driver errors into
PersistenceError after rolling back.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .webhook_errors import PersistenceError
from ..utils.db_helpers import dialect_insert, row_to_dict

logger = logging.getLogger(__name__)


class Datastore:
    def __init__(self, db: Session):
        self.db = db

    def _columns(self, model) -> set:
        return {column.key for column in model.__table__.columns}

    def _prepare(self, model, record: Dict[str, Any]) -> Dict[str, Any]:
        """Drop keys the table does not have"""
        columns = self._columns(model)
        unknown = set(record) - columns
        if unknown:
            logger.debug(f"Ignoring unknown {model.__tablename__} fields: {sorted(unknown)}")
        return {k: v for k, v in record.items() if k in columns}

    def _upsert_statement(self, model, row: Dict[str, Any], conflict_key: str):
        stmt = dialect_insert(self.db, model.__table__).values(**row)

        update_columns = {
            key: stmt.excluded[key]
            for key in row
            if key not in (conflict_key, "id", "created_at")
        }
        if not update_columns:
            return stmt.on_conflict_do_nothing(index_elements=[conflict_key])

        if "updated_at" in self._columns(model):
            update_columns["updated_at"] = datetime.utcnow()
        return stmt.on_conflict_do_update(index_elements=[conflict_key], set_=update_columns)

    def _fail(self, operation: str, model, error: SQLAlchemyError):
        self.db.rollback()
        message = str(getattr(error, "orig", None) or error)
        logger.error(f"{operation} on {model.__tablename__} failed: {message}")
        raise PersistenceError(details=message) from error

    def fetch_one(self, model, column: str, value: Any) -> Optional[Dict[str, Any]]:
        row = self.db.execute(
            select(model).where(getattr(model, column) == value)
        ).scalars().first()
        return row_to_dict(row) if row is not None else None

    def upsert(self, model, record: Dict[str, Any], conflict_key: str) -> Dict[str, Any]:
        """
        Insert or update one row keyed by conflict_key and return it as stored.

        Only the keys present in record are written.

        Raises:
            PersistenceError: on any database error
        """
        row = self._prepare(model, record)
        if row.get(conflict_key) is None:
            raise PersistenceError(details=f"Missing conflict key {conflict_key} for {model.__tablename__}")

        try:
            self.db.execute(self._upsert_statement(model, row, conflict_key))
            self.db.commit()
            stored = self.fetch_one(model, conflict_key, row[conflict_key])
        except SQLAlchemyError as e:
            self._fail("Upsert", model, e)

        return stored or {}

    def upsert_many(self, model, records: List[Dict[str, Any]], conflict_key: str) -> int:
        """
        Upsert a batch in a single transaction. Rows without a conflict key
        are skipped. Returns the number of rows written.
        """
        rows = [self._prepare(model, record) for record in records]
        rows = [row for row in rows if row.get(conflict_key) is not None]
        if not rows:
            return 0

        try:
            for row in rows:
                self.db.execute(self._upsert_statement(model, row, conflict_key))
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("Batch upsert", model, e)
        return len(rows)

    def update(self, model, match: Dict[str, Any], values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update rows matching every column in match. Returns the first matching
        row after the update, or None when nothing matched.
        """
        values = self._prepare(model, values)
        if "updated_at" in self._columns(model):
            values.setdefault("updated_at", datetime.utcnow())

        conditions = [getattr(model, column) == value for column, value in match.items()]
        try:
            result = self.db.execute(update(model).where(*conditions).values(**values))
            self.db.commit()
            if not result.rowcount:
                return None
            row = self.db.execute(select(model).where(*conditions)).scalars().first()
        except SQLAlchemyError as e:
            self._fail("Update", model, e)

        return row_to_dict(row) if row is not None else None

    def insert(self, model: Type, record: Dict[str, Any]) -> Dict[str, Any]:
        instance = model(**self._prepare(model, record))
        try:
            self.db.add(instance)
            self.db.commit()
            self.db.refresh(instance)
        except SQLAlchemyError as e:
            self._fail("Insert", model, e)
        return row_to_dict(instance)
