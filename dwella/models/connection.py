import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, String

from dwella.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class ConnectionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class Connection(Base):
    """Standing homeowner-contractor relationship scoped to one home."""

    __tablename__ = "connections"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    homeowner_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    contractor_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    home_id = Column(String(36), ForeignKey("homes.id"), nullable=False)
    status = Column(String(20), nullable=False, default=ConnectionStatus.ACTIVE.value)  # ACTIVE | ARCHIVED

    invited_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    established_via = Column(String(30), nullable=True)  # VERIFIED_SERVICE | INVITATION
    source_record_id = Column(String(36), nullable=True)  # service record that created it

    verified_service_count = Column(Integer, nullable=False, default=0)
    total_spent = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("verified_service_count >= 0", name="ck_connection_count_nonneg"),
        Index("idx_connection_home_contractor", "home_id", "contractor_id", "status"),
        Index("idx_connection_homeowner", "homeowner_id"),
    )
