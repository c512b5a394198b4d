"""
Database schema and connection management.

Uses SQLite with SQLAlchemy to keep past batch reports.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import create_engine, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()


class BatchRun(Base):
    """One submitted batch of emails."""

    __tablename__ = "batch_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    apollo_credits = Column(Integer, nullable=False)

    resolutions = relationship(
        "Resolution",
        back_populates="batch",
        order_by="Resolution.position",
        cascade="all, delete-orphan",
    )


class Resolution(Base):
    """Result for a single email within a batch."""

    __tablename__ = "resolutions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(Integer, ForeignKey("batch_runs.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)  # index in the submitted list
    email = Column(String, nullable=False)
    linkedin = Column(String, nullable=True)
    layers = Column(Text, nullable=False, default="[]")  # JSON list of labels
    failed_layers = Column(Text, nullable=False, default="[]")
    confidence = Column(Integer, nullable=False, default=0)
    error = Column(String, nullable=True)

    batch = relationship("BatchRun", back_populates="resolutions")


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = create_engine(f"sqlite:///{db_path}")
    Session = sessionmaker(bind=engine)
    return Session()
