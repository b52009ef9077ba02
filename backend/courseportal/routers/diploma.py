"""
Diploma router for the course portal.

Issues PDF diplomas for completed courses and manages the per-company
diploma template.
"""

from typing import Dict, Any
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from courseportal.core.database import get_db
from courseportal.models.user import CompanyRole
from courseportal.routers.auth import get_portal_context
from courseportal.schemas.diploma import (
    DiplomaPreviewRequest,
    DiplomaRequest,
    DiplomaTemplateResponse,
    DiplomaTemplateUpdate,
)
from courseportal.services.context import PortalContext
from courseportal.services.diploma import DEFAULT_TEMPLATE, DiplomaService, parse_color


router = APIRouter()


def pdf_response(filename: str, content: bytes) -> Response:
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    return Response(
        content=content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}",
            "Cache-Control": "no-store",
        },
    )


@router.post("/", response_class=Response)
def issue_diploma(
    payload: DiplomaRequest,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> Response:
    """
    Render the diploma for a course the current user has completed.
    """
    if not payload.course_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="course_id is required"
        )
    filename, content = DiplomaService(db).issue(context.user_id, payload.course_id)
    return pdf_response(filename, content)


@router.post("/preview", response_class=Response)
def preview_diploma(
    payload: DiplomaPreviewRequest,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> Response:
    """
    Render template fields with sample data.
    """
    context.require_company_role(payload.company_id, CompanyRole.ADMIN)
    filename, content = DiplomaService(db).preview(payload.model_dump())
    return pdf_response(filename, content)


@router.get("/templates/{company_id}", response_model=DiplomaTemplateResponse)
async def get_template(
    company_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get a company's diploma template, or the defaults when none is saved.
    """
    context.require_company_role(company_id, CompanyRole.ADMIN)
    template = DiplomaService(db).get_template(company_id)
    if template is not None:
        return DiplomaTemplateResponse.model_validate(template).model_dump()
    return {**DEFAULT_TEMPLATE, "company_id": company_id, "updated_at": None}


@router.put("/templates/{company_id}", response_model=DiplomaTemplateResponse)
async def save_template(
    company_id: str,
    payload: DiplomaTemplateUpdate,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Save a company's diploma template.
    """
    context.require_company_role(company_id, CompanyRole.ADMIN)
    values = payload.model_dump()
    values["accent_color"] = parse_color(values.get("accent_color"), DEFAULT_TEMPLATE["accent_color"])
    template = DiplomaService(db).save_template(company_id, values)
    return DiplomaTemplateResponse.model_validate(template).model_dump()
