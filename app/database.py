import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger(__name__)

database_url = settings.database_url

# Handle SQLite special case for check_same_thread
connect_args = {}
if database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(
    database_url,
    connect_args=connect_args,
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory():
    """Dependency for components that open their own short-lived sessions (log sink)"""
    return SessionLocal


def create_tables():
    """Create all tables in the database"""
    from . import models  # noqa: F401  registers tables on Base.metadata

    logger.info(f"Creating tables on {engine.dialect.name} database")
    Base.metadata.create_all(bind=engine)
