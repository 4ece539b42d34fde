"""
Database plumbing

Engine and session factory for the response store. Services never open
connections themselves; each request gets a session from get_db and the
application owns the engine.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
import logging
import os

from config import env_flag

logger = logging.getLogger(__name__)

# SQLite file next to the working directory unless DATABASE_URL points elsewhere
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./survey.db")
DATABASE_ECHO = env_flag("DATABASE_ECHO", False)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE on survey_answers without this pragma
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, echo: bool = False):
    """
    Create an engine for the response store.

    SQLite gets a single shared connection usable from FastAPI's worker
    threads, which also keeps "sqlite://" in-memory databases alive between
    sessions.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    sqlite_engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
    return sqlite_engine


def session_factory(bind) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = build_engine(DATABASE_URL, echo=DATABASE_ECHO)
SessionLocal = session_factory(engine)


def get_db() -> Session:
    """
    Dependency function yielding one session per request.
    The session is closed once the response has been sent.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create the survey tables if they do not exist yet."""
    from models import Base

    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Survey tables ready on {target.url.render_as_string(hide_password=True)}")
