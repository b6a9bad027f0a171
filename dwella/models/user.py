import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, Index, String

from dwella.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    HOMEOWNER = "HOMEOWNER"
    PRO = "PRO"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.HOMEOWNER.value)  # HOMEOWNER | PRO | ADMIN
    business_name = Column(String(200), nullable=True)  # contractors only
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_users_role", "role"),
    )

    @property
    def display_name(self) -> str:
        """Vendor name shown on records: business name, then name, then email."""
        return self.business_name or self.name or self.email
