"""
Diploma template schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class DiplomaTemplateBase(BaseModel):
    title: str = ""
    body: str = ""
    footer: str = ""
    issuer_name: str = ""
    signature_name: str = ""
    signature_title: str = ""
    signature_url: Optional[str] = None
    accent_color: str = "#0f172a"
    logo_url: Optional[str] = None


class DiplomaTemplateUpdate(DiplomaTemplateBase):
    pass


class DiplomaTemplateResponse(DiplomaTemplateBase):
    model_config = ConfigDict(from_attributes=True)

    company_id: str
    updated_at: Optional[datetime] = None


class DiplomaPreviewRequest(DiplomaTemplateBase):
    company_id: str


class DiplomaRequest(BaseModel):
    course_id: str = ""
