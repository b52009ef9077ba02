"""
Portal user model.

Company and customer memberships are stored as JSON lists and decoded
through ``courseportal.services.decoding``.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from enum import Enum
import uuid

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from courseportal.core.database import Base


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CompanyRole(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class CustomerRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class PortalUser(Base):
    """
    A person who can sign in to the portal.

    ``company_memberships`` entries look like
    ``{"company_id", "roles", "display_name"}``; ``customer_memberships``
    entries look like ``{"customer_id", "customer_name", "roles",
    "assigned_course_ids"}``.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    first_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=UserStatus.ACTIVE.value,
        nullable=False
    )

    company_memberships: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    customer_memberships: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    customer_id_refs: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<PortalUser(id='{self.id}', email='{self.email}')>"

    @property
    def full_name(self) -> str:
        return f"{(self.first_name or '').strip()} {(self.last_name or '').strip()}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value
