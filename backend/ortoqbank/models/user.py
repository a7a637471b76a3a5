"""User model."""

from enum import Enum

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from ortoqbank.db.base import Base


class UserRole(str, Enum):
    """User role enum."""

    USER = "user"
    ADMIN = "admin"


class User(Base):
    """User provisioned from identity-provider claims.

    ``id`` is the provider's opaque subject; it namespaces every per-user
    aggregate and interaction row.
    """

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(320), nullable=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    image_url = Column(String(1024), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
