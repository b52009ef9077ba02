"""
Course models for the course portal.

Defines Course and CourseModule. Localized text, media and question
lists are stored as JSON documents and decoded by
``courseportal.services.decoding`` on the way out.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from enum import Enum
import uuid

from sqlalchemy import Integer, String, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from courseportal.core.database import Base


class CourseStatus(str, Enum):
    """Visibility of a course."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class ExpirationType(str, Enum):
    """How long a completed course stays valid."""
    NONE = "none"
    DAYS = "days"
    MONTHS = "months"
    DATE = "date"


class ModuleType(str, Enum):
    """Kinds of course modules."""
    NORMAL = "normal"
    EXAM = "exam"


class Course(Base):
    """
    A course owned by a company and assigned to customers.
    """
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)

    # Ownership
    company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    created_by_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Localized content (locale -> text)
    title: Mapped[Dict[str, str]] = mapped_column(JSON, default=dict, nullable=False)
    description: Mapped[Dict[str, str]] = mapped_column(JSON, default=dict, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=CourseStatus.ACTIVE.value,
        nullable=False
    )

    # Expiration policy
    expiration_type: Mapped[str] = mapped_column(
        String(20),
        default=ExpirationType.NONE.value,
        nullable=False
    )
    expiration_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    expiration_months: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    expiration_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)  # ISO date

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

    __table_args__ = (
        Index("idx_course_company_status", "company_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Course(id='{self.id}', company_id='{self.company_id}')>"


class CourseModule(Base):
    """
    One sequential unit of a course, optionally ending in a quiz.

    ``media`` is the current typed media map. ``image_urls`` and
    ``video_urls`` are the legacy per-locale URL lists that older
    documents still carry.
    """
    __tablename__ = "course_modules"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)

    # Parent course (no cascade: deleting a course leaves its modules)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    title: Mapped[Any] = mapped_column(JSON, default=dict, nullable=False)
    summary: Mapped[Any] = mapped_column(JSON, default=dict, nullable=False)
    body: Mapped[Any] = mapped_column(JSON, default=dict, nullable=False)

    media: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    image_urls: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    video_urls: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    order: Mapped[Optional[Any]] = mapped_column("order", JSON, nullable=True)
    questions: Mapped[List[Any]] = mapped_column(JSON, default=list, nullable=False)

    module_type: Mapped[str] = mapped_column(
        String(20),
        default=ModuleType.NORMAL.value,
        nullable=False
    )
    exam_pass_percentage: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

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
        return f"<CourseModule(id='{self.id}', course_id='{self.course_id}')>"
