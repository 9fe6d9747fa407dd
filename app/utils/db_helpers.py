"""
Database Helper Utilities

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Dialect-specific INSERT constructs supporting ON CONFLICT
- Row to dict conversion
"""

import logging
from typing import Any, Dict
from sqlalchemy.orm import Session
from sqlalchemy.dialects import postgresql, sqlite

logger = logging.getLogger(__name__)


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    try:
        return db.get_bind().dialect.name == 'postgresql'
    except Exception:
        return False


def is_sqlite(db: Session) -> bool:
    """Check if the database is SQLite"""
    try:
        return db.get_bind().dialect.name == 'sqlite'
    except Exception:
        return True  # Default to SQLite for safety


def dialect_insert(db: Session, table):
    """
    Return an INSERT construct that supports on_conflict_do_update.

    Both PostgreSQL and SQLite (3.24+) implement ON CONFLICT, through
    different SQLAlchemy dialect modules.
    """
    if is_postgres(db):
        return postgresql.insert(table)
    if is_sqlite(db):
        return sqlite.insert(table)
    raise NotImplementedError(f"Upsert not supported on {db.get_bind().dialect.name}")


def row_to_dict(instance) -> Dict[str, Any]:
    """Convert an ORM instance to a plain dict of its column values"""
    return {
        column.key: getattr(instance, column.key)
        for column in instance.__table__.columns
    }
