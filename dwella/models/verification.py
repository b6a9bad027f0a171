import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String

from dwella.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class VerificationMethod(str, Enum):
    POSTCARD = "POSTCARD"
    VENDOR = "VENDOR"


class VerificationStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset({
    VerificationStatus.COMPLETED.value,
    VerificationStatus.EXPIRED.value,
    VerificationStatus.CANCELLED.value,
})


class HomeVerification(Base):
    """One attempt to prove ownership of a home. Never deleted (audit trail)."""

    __tablename__ = "home_verifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    home_id = Column(String(36), ForeignKey("homes.id"), nullable=False)
    method = Column(String(20), nullable=False)  # POSTCARD | VENDOR
    status = Column(
        String(20), nullable=False, default=VerificationStatus.PENDING.value
    )  # PENDING | COMPLETED | EXPIRED | CANCELLED

    code_hash = Column(String(64), nullable=True)  # NULL for VENDOR
    attempts = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=5)

    created_by_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    vendor_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    provider_id = Column(String(100), nullable=True)  # postcard provider reference

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("attempts >= 0", name="ck_home_verification_attempts_nonneg"),
        CheckConstraint(
            "method != 'POSTCARD' OR code_hash IS NOT NULL",
            name="ck_home_verification_postcard_hash",
        ),
        Index("idx_home_verification_home_method", "home_id", "method", "created_at"),
        Index("idx_home_verification_status", "status"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
