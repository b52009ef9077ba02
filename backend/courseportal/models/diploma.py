"""
Diploma template model: one per company.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from courseportal.core.database import Base


class DiplomaTemplate(Base):
    __tablename__ = "diploma_templates"

    company_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    body: Mapped[str] = mapped_column(Text, default="", nullable=False)
    footer: Mapped[str] = mapped_column(Text, default="", nullable=False)
    issuer_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    signature_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    signature_title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    signature_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    accent_color: Mapped[str] = mapped_column(String(7), default="#0f172a", nullable=False)
    logo_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

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
        return f"<DiplomaTemplate(company_id='{self.company_id}')>"
