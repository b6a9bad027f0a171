import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Numeric, String, Text

from dwella.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class ServiceSubmissionStatus(str, Enum):
    PENDING_REVIEW = "PENDING_REVIEW"
    DOCUMENTED_UNVERIFIED = "DOCUMENTED_UNVERIFIED"
    DOCUMENTED = "DOCUMENTED"
    DISPUTED = "DISPUTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


PENDING_SUBMISSION_STATUSES = (
    ServiceSubmissionStatus.PENDING_REVIEW.value,
    ServiceSubmissionStatus.DOCUMENTED_UNVERIFIED.value,
    ServiceSubmissionStatus.DOCUMENTED.value,
    ServiceSubmissionStatus.DISPUTED.value,
)


class ServiceRecord(Base):
    """A contractor's claim of work performed, awaiting homeowner review."""

    __tablename__ = "service_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    home_id = Column(String(36), ForeignKey("homes.id"), nullable=False)
    contractor_id = Column(String(36), ForeignKey("users.id"), nullable=False)

    service_type = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    service_date = Column(DateTime(timezone=True), nullable=False)
    cost = Column(Numeric(12, 2), nullable=True)
    address_snapshot = Column(Text, default="{}")  # JSON

    status = Column(
        String(30), nullable=False, default=ServiceSubmissionStatus.DOCUMENTED_UNVERIFIED.value
    )
    is_verified = Column(Boolean, nullable=False, default=False)
    claimed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    verified_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    # Back-reference to the permanent Record; set iff status == APPROVED
    final_record_id = Column(String(36), ForeignKey("records.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_service_record_home_status", "home_id", "status"),
        Index("idx_service_record_contractor", "contractor_id"),
    )
