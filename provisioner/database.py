"""
Database models for the cluster store.

No engine is created at import time; callers build one from configuration
with create_session_factory().
"""

from datetime import datetime, timezone

from sqlalchemy import (
    create_engine,
    Column,
    String,
    DateTime,
    JSON,
    Index,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Cluster(Base):
    """Cluster model - one logical network resource and its deployment state."""

    __tablename__ = "clusters"
    __table_args__ = (Index("ix_clusters_region_status", "region", "status"),)

    cluster_id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # dedicated / shared
    environment = Column(String(50), nullable=False)
    region = Column(String(50), nullable=False)
    cidr = Column(String(18), nullable=False)

    # Lifecycle
    status = Column(String(20), nullable=False, default="In-Active")
    deployment_status = Column(String(64), nullable=True)  # raw engine code
    deployment_id = Column(String(2048), nullable=True)  # stack ARN
    stack_outputs = Column(JSON, nullable=True)  # {OutputKey: OutputValue}

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    deployed_at = Column(DateTime(timezone=True), nullable=True)


def create_db_engine(database_url: str) -> Engine:
    """
    Build an engine for the given URL.

    In-memory SQLite shares one connection so every session sees the same data.
    """
    if database_url.startswith("sqlite") and (
        ":memory:" in database_url or database_url.rstrip("/") == "sqlite:"
    ):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url)


def init_db(engine: Engine) -> None:
    """Create tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)


def create_session_factory(database_url: str, create_tables: bool = True) -> sessionmaker:
    """
    Build a session factory bound to a fresh engine.

    Args:
        database_url: SQLAlchemy URL
        create_tables: Create missing tables on first use

    Returns:
        sessionmaker bound to the engine
    """
    engine = create_db_engine(database_url)
    if create_tables:
        init_db(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
