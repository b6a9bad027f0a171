import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String

from dwella.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class AttachmentParent(str, Enum):
    RECORD = "RECORD"
    REMINDER = "REMINDER"
    WARRANTY = "WARRANTY"
    SERVICE_RECORD = "SERVICE_RECORD"
    SERVICE_REQUEST = "SERVICE_REQUEST"
    SERVICE_SUBMISSION = "SERVICE_SUBMISSION"
    MESSAGE = "MESSAGE"


_PARENT_VALUES = ", ".join(f"'{p.value}'" for p in AttachmentParent)


class Attachment(Base):
    """File reference owned by exactly one parent, identified by (parent_type, parent_id)."""

    __tablename__ = "attachments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    home_id = Column(String(36), ForeignKey("homes.id"), nullable=False)

    parent_type = Column(String(30), nullable=False)
    parent_id = Column(String(36), nullable=False)

    file_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    category = Column(String(20), nullable=False, default="photo")  # photo | invoice | warranty
    storage_key = Column(String(500), nullable=False)
    uploaded_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(f"parent_type IN ({_PARENT_VALUES})", name="ck_attachment_parent_type"),
        CheckConstraint("size > 0", name="ck_attachment_size_positive"),
        Index("idx_attachment_parent", "parent_type", "parent_id"),
        Index("idx_attachment_home", "home_id"),
    )
