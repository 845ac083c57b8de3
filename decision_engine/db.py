# FILE: decision_engine/db.py
import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Database path: ./data/decisions.db relative to project root
# Override with DECISION_DATABASE_URL env var if needed
DATABASE_URL = os.getenv("DECISION_DATABASE_URL", "sqlite:///./data/decisions.db")


def make_engine(url: str = DATABASE_URL):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url,
        connect_args=connect_args,  # Required for SQLite
        echo=False,  # Set True to log SQL statements for debugging
    )


engine = make_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Create all tables. Call once at startup."""
    # Import models so Base.metadata knows about them
    from decision_engine.store import models  # noqa: F401

    target = bind or engine
    database = target.url.database
    if target.url.get_backend_name() == "sqlite" and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=target)
