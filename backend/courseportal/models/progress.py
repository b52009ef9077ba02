"""
Progress tracking models for the course portal.

Defines CourseProgress (the per-user set of completed modules) and
CourseCompletion (the first-write-wins snapshot behind diplomas).
"""

from datetime import datetime
from typing import Optional, List
import uuid

from sqlalchemy import String, DateTime, JSON, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from courseportal.core.database import Base


class CourseProgress(Base):
    """
    Completed module ids for one user in one course.

    Created lazily on the first completion write, never deleted.
    """
    __tablename__ = "course_progress"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    completed_modules: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_user_course_progress"),
    )

    def __repr__(self) -> str:
        return (
            f"<CourseProgress(user_id='{self.user_id}', course_id='{self.course_id}', "
            f"completed={len(self.completed_modules or [])})>"
        )


class CourseCompletion(Base):
    """
    Denormalized proof that a user finished a course for a customer.

    ``completed_at`` is fixed when the snapshot is first written.
    """
    __tablename__ = "course_completions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), default="", nullable=False)

    participant_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    course_title: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=True
    )

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", "customer_id", name="uq_user_course_customer_completion"),
        Index("idx_completion_course", "course_id"),
    )

    @property
    def completion_key(self) -> str:
        return f"{self.course_id}_{self.customer_id}"
