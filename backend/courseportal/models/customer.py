"""
Customer (tenant) model for the course portal.
"""

from datetime import datetime
from typing import Optional, List
from enum import Enum
import uuid

from sqlalchemy import Boolean, String, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from courseportal.core.database import Base


class CustomerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Customer(Base):
    """
    An organization granted access to a subset of a company's courses.

    Customers with ``allow_subunits`` may have child customers pointing
    back through ``parent_customer_id``.
    """
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    zipno: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    place: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    vat_number: Mapped[str] = mapped_column(String(40), default="", nullable=False)

    contact_person: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    contact_phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=CustomerStatus.ACTIVE.value,
        nullable=False
    )

    # Two-level hierarchy
    allow_subunits: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    parent_customer_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    parent_customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_by_company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    course_ids: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

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
        Index("idx_customer_company_status", "created_by_company_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Customer(id='{self.id}', company_name='{self.company_name}')>"
