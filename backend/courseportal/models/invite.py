"""
Course invite codes and single-use magic login links.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from courseportal.core.database import Base


class CourseInvite(Base):
    """
    A shareable code that signs a learner up to one course for one customer.
    """
    __tablename__ = "course_invites"

    code: Mapped[str] = mapped_column(String(16), primary_key=True)

    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_title: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class MagicLink(Base):
    """
    A time-limited code bound to a user id, consumed on first use.
    """
    __tablename__ = "magic_links"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)

    auth_uid: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    course_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    redirect: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    consumed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    consumed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    consumed_reason: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
