"""SQLAlchemy models for the buwis database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

Base = declarative_base()


class FilingSessionRecord(Base):
    """Stored filing session.

    The full session projection lives in ``payload``; the other columns are
    copies used for listing and filtering.
    """

    __tablename__ = "filing_sessions"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    year = Column(Integer, nullable=False)
    quarter = Column(String(2), nullable=False)
    taxpayer_tin = Column(String, nullable=False)
    invoice_count = Column(Integer, default=0, nullable=False)
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


class TaxpayerProfileRecord(Base):
    """Stored taxpayer profile, keyed by TIN."""

    __tablename__ = "taxpayer_profiles"

    id = Column(Integer, primary_key=True)
    tin = Column(String, nullable=False)
    name = Column(String, nullable=False)
    business_name = Column(String, nullable=False)
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("tin", name="uq_taxpayer_tin"),)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
