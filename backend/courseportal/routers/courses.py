"""
Courses router for the course portal.

Company staff manage courses and their modules; learners read the
localized course view for courses assigned to them.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from courseportal.core.database import get_db
from courseportal.models.course import Course
from courseportal.models.user import CompanyRole
from courseportal.routers.auth import get_portal_context
from courseportal.schemas.course import (
    CourseContent,
    CourseCreate,
    CourseModuleView,
    CourseResponse,
    CourseUpdate,
    ModuleCreate,
    ModuleUpdate,
)
from courseportal.services.content import build_course_content
from courseportal.services.context import PortalContext
from courseportal.services.directory import CourseDirectory, ModuleDirectory
from courseportal.services.localization import detect_client_locale
from courseportal.services.progress import SqlProgressStore
from courseportal.services.watch import ChangeFeed, get_feed


router = APIRouter()

EDIT_ROLES = (CompanyRole.ADMIN, CompanyRole.EDITOR)


def _course_for_staff(db: Session, course_id: str, context: PortalContext, *roles: CompanyRole) -> Course:
    course = CourseDirectory(db).get(course_id)
    context.require_company_role(course.company_id, *roles)
    return course


@router.get("/", response_model=List[CourseResponse])
async def list_courses(
    company_id: str = Query(..., min_length=1),
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> List[Course]:
    """
    List the courses owned by a company.
    """
    context.require_company_role(company_id)
    return CourseDirectory(db).list_for_company(company_id)


@router.post("/", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    course_data: CourseCreate,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> Course:
    """
    Create a new course.
    """
    context.require_company_role(course_data.company_id, *EDIT_ROLES)
    return CourseDirectory(db, feed).create(course_data, created_by_id=context.user_id)


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> Course:
    """
    Get a course by id.
    """
    return _course_for_staff(db, course_id, context)


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: str,
    course_data: CourseUpdate,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> Course:
    """
    Update a course.
    """
    _course_for_staff(db, course_id, context, *EDIT_ROLES)
    return CourseDirectory(db, feed).update(course_id, course_data)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> Response:
    """
    Delete a course. Its modules and progress records are kept.
    """
    _course_for_staff(db, course_id, context, CompanyRole.ADMIN)
    CourseDirectory(db, feed).delete(course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{course_id}/modules", response_model=List[CourseModuleView])
async def list_modules(
    course_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> List[CourseModuleView]:
    """
    List a course's modules in display order.
    """
    _course_for_staff(db, course_id, context)
    return ModuleDirectory(db).list_for_course(course_id)


@router.post("/{course_id}/modules", response_model=CourseModuleView, status_code=status.HTTP_201_CREATED)
async def create_module(
    course_id: str,
    module_data: ModuleCreate,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> CourseModuleView:
    """
    Add a module to a course.
    """
    _course_for_staff(db, course_id, context, *EDIT_ROLES)
    return ModuleDirectory(db, feed).create(course_id, module_data)


@router.get("/{course_id}/modules/{module_id}", response_model=CourseModuleView)
async def get_module(
    course_id: str,
    module_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> CourseModuleView:
    """
    Get a single module.
    """
    _course_for_staff(db, course_id, context)
    return ModuleDirectory(db).get(course_id, module_id)


@router.put("/{course_id}/modules/{module_id}", response_model=CourseModuleView)
async def update_module(
    course_id: str,
    module_id: str,
    module_data: ModuleUpdate,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> CourseModuleView:
    """
    Update a module.
    """
    _course_for_staff(db, course_id, context, *EDIT_ROLES)
    return ModuleDirectory(db, feed).update(course_id, module_id, module_data)


@router.delete("/{course_id}/modules/{module_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_module(
    course_id: str,
    module_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> Response:
    """
    Delete a module.
    """
    _course_for_staff(db, course_id, context, *EDIT_ROLES)
    ModuleDirectory(db, feed).delete(course_id, module_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{course_id}/content", response_model=CourseContent)
async def get_course_content(
    course_id: str,
    lang: Optional[str] = None,
    accept_language: Optional[str] = Header(default=None),
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> CourseContent:
    """
    Get a course rendered in one locale, with the caller's progress.
    """
    course = CourseDirectory(db).get(course_id)
    is_staff = context.is_system_owner or context.has_company_role(course.company_id)
    if not is_staff and context.membership_for_course(course_id) is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Course is not assigned to this user."
        )

    modules = ModuleDirectory(db).list_for_course(course_id)
    completed = SqlProgressStore(db).load(context.user_id, course_id)
    return build_course_content(
        course,
        modules,
        completed,
        requested_locale=lang,
        detected_locale=detect_client_locale(accept_language),
    )
