import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint

from dwella.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class HomeVerificationStatus(str, Enum):
    UNVERIFIED = "UNVERIFIED"
    VERIFIED_BY_POSTCARD = "VERIFIED_BY_POSTCARD"
    VERIFIED_BY_VENDOR = "VERIFIED_BY_VENDOR"


class HomeAccessRole(str, Enum):
    OWNER = "OWNER"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"


class Home(Base):
    __tablename__ = "homes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=True)  # NULL until claimed

    # Postal address
    address = Column(String(255), nullable=False)
    address_line2 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(50), nullable=False)
    zip = Column(String(20), nullable=False)
    country = Column(String(2), nullable=False, default="US")

    # Verification (written only by the verification workflow)
    verification_status = Column(
        String(30), nullable=False, default=HomeVerificationStatus.UNVERIFIED.value
    )
    verification_method = Column(String(20), nullable=True)  # POSTCARD | VENDOR
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verified_by_user_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_homes_owner", "owner_id"),
        Index("idx_homes_address", "address", "city", "state", "zip"),
    )


class HomeAccess(Base):
    """Shared access grant: a non-owner user allowed to act on a home."""

    __tablename__ = "home_access"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    home_id = Column(String(36), ForeignKey("homes.id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    role = Column(String(20), nullable=False, default=HomeAccessRole.VIEWER.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("home_id", "user_id", name="uq_home_access_home_user"),
        Index("idx_home_access_user", "user_id"),
    )
