# backend/app/models/user.py
"""
User model for the studio booking engine.

Authentication happens upstream; this table only keeps the identity, the
role used for admin checks, and the account status.
"""

from datetime import datetime, timezone
import logging

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import UserRole, UserStatus
from ..database import Base

logger = logging.getLogger(__name__)


class User(Base):
    """A studio member or administrator."""

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    email = Column(String(320), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    stripe_customer_id = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    user_status = Column(String(20), nullable=False, default=UserStatus.ACTIVE.value)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=lambda: datetime.now(timezone.utc),
    )

    bookings = relationship("Booking", back_populates="user", lazy="select")
    subscriptions = relationship("Subscription", back_populates="user", lazy="select")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email} role={self.role}>"
