"""
Database schema and connection management.

SQLAlchemy model for job applications plus engine/session bootstrap. Works
with any SQLAlchemy URL; SQLite is the default for local runs.
"""

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import JSON, Column, Date, DateTime, Float, Index, Integer, String, Text, create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo so we never store it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class JobApplication(Base):
    """Job application record."""

    __tablename__ = "job_applications"

    id = Column(String(32), primary_key=True)  # uuid4 hex
    owner_id = Column(String(128), nullable=True, index=True)
    company = Column(String(100), nullable=False, index=True)
    position = Column(String(200), nullable=False)
    application_date = Column(Date, nullable=False, index=True)
    status = Column(String(32), nullable=False, default="applied", index=True)
    location = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    salary = Column(JSON, nullable=True)  # as supplied: number, text or object
    salary_min = Column(Float, nullable=True)
    salary_max = Column(Float, nullable=True)
    job_url = Column(String(2048), nullable=True)
    contact_email = Column(String(254), nullable=True)
    requirements = Column(JSON, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_job_applications_owner_status", "owner_id", "status"),
        Index("ix_job_applications_owner_date", "owner_id", "application_date"),
    )

    def __repr__(self) -> str:
        return f"<JobApplication {self.id} {self.company!r} {self.position!r} {self.status}>"


def get_engine(database_url: str) -> Engine:
    """
    Create an engine for a database URL.

    In-memory SQLite shares one connection so every session sees the same
    database.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)
        event.listen(engine, "connect", _register_sqlite_functions)
        return engine
    return create_engine(database_url, pool_pre_ping=True)


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection, connection_record):
    # SQLite's built-in lower() only folds ASCII; ilike compiles to lower() too
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def init_database(database_url: str) -> Engine:
    """
    Initialize database and create tables.

    Args:
        database_url: SQLAlchemy URL, e.g. sqlite:///data/jinder.db

    Returns:
        Engine bound to the initialized database
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker:
    """
    Get a session factory bound to an engine.

    Args:
        engine: Engine returned by init_database

    Returns:
        SQLAlchemy sessionmaker
    """
    return sessionmaker(bind=engine, expire_on_commit=False)
