import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Numeric, String, Text

from dwella.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Record(Base):
    """Permanent home-history entry."""

    __tablename__ = "records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    home_id = Column(String(36), ForeignKey("homes.id"), nullable=False)
    title = Column(String(200), nullable=False)
    note = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=True)
    kind = Column(String(50), nullable=False, default="maintenance")
    vendor = Column(String(200), nullable=True)
    cost = Column(Numeric(12, 2), nullable=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    verified_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_records_home", "home_id"),
    )
