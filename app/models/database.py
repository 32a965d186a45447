# app/models/database.py
#
# The "engine room" for the record store.
# It does 3 things:
#   1. Creates the SQLite engine (the actual connection to the .db file)
#   2. Defines Base (the parent class all models inherit from)
#   3. Provides get_db(), a safe way to open and close DB sessions
#
# Every dashboard (customer, staff, admin) reads and writes the SAME database.
# There is no partitioning: customers write their own orders and messages,
# staff/admin write statuses and ownership, purely by convention.

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from app.core.config import settings

logger = logging.getLogger(__name__)

STORE_DB_URL = settings.store_db_url


def make_engine(url: str):
    """
    Builds an engine for the given URL.

    SQLite needs check_same_thread=False because FastAPI serves requests
    from a thread pool. An in-memory SQLite URL additionally needs a
    StaticPool so every session sees the same single connection
    (otherwise each connection gets its own empty database).
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url)


engine = make_engine(STORE_DB_URL)

# SessionLocal is a "session factory": every call gives a fresh session
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

Base = declarative_base()


def get_db():
    """
    A generator that safely opens and closes a DB session.
    The try/finally guarantees the session is ALWAYS closed.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """
    Creates all tables if they don't exist yet.
    Call this once on app startup (from main.py) or from seeds.py.
    """
    # Import models here so Base "knows" about them before create_all runs
    from app.models import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
    logger.info("✅ Store tables created (or already exist).")
