"""
SQLAlchemy ORM Models for Cognitia

- User: Identity-provider accounts, keyed by the provider's subject id
- Report: Immutable analysis results owned by a user
"""

from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, TIMESTAMP, ForeignKey, Index
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class User(Base):
    """Signed-in user, upserted on every successful sign-in."""
    __tablename__ = "users"

    id = Column(String(255), primary_key=True)      # provider subject id
    name = Column(Text)
    email = Column(Text)
    avatar = Column(Text)

    reports = relationship("Report", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}')>"


class Report(Base):
    """One persisted analysis outcome. Insert-only."""
    __tablename__ = "reports"
    __table_args__ = (
        Index('idx_user_reports', 'user_id', 'created_at'),
    )

    id = Column(String(255), primary_key=True)      # caller-supplied
    user_id = Column(String(255), ForeignKey("users.id"), nullable=False)
    query = Column(Text)
    context = Column(Text)
    result = Column(Text, nullable=False)           # JSON-encoded AnalysisResult
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="reports")

    def __repr__(self):
        return f"<Report(id={self.id}, user_id={self.user_id}, created_at={self.created_at})>"
