import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text

from dwella.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Notification(Base):
    """Outbox row picked up by the external email/SMS dispatcher."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    channel = Column(String(10), nullable=False, default="EMAIL")  # EMAIL | SMS
    subject = Column(String(255), nullable=False)
    payload = Column(Text, default="{}")  # JSON
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_notifications_user", "user_id", "created_at"),
    )
