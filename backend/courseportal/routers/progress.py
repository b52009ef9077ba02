"""
Progress router for the course portal.

Handles module completion, quiz grading and the course completion record
for the current user.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from courseportal.core.database import get_db
from courseportal.models.course import Course
from courseportal.models.progress import CourseCompletion
from courseportal.routers.auth import get_portal_context
from courseportal.schemas.progress import (
    CompletionResponse,
    ModuleCompletionResult,
    ModuleCompletionUpdate,
    ProgressResponse,
    QuizResultResponse,
    QuizSubmission,
)
from courseportal.services.context import PortalContext
from courseportal.services.diploma import DiplomaService
from courseportal.services.directory import CourseDirectory, ModuleDirectory
from courseportal.services.progress import ProgressTracker, SqlProgressStore, is_course_complete
from courseportal.services.quiz import CourseComplete, QuizSession
from courseportal.services.watch import ChangeFeed, get_feed


router = APIRouter()


def _course_for_learner(db: Session, course_id: str, context: PortalContext) -> Course:
    course = CourseDirectory(db).get(course_id)
    is_staff = context.is_system_owner or context.has_company_role(course.company_id)
    if not is_staff and context.membership_for_course(course_id) is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Course is not assigned to this user."
        )
    return course


@router.get("/{course_id}", response_model=ProgressResponse)
async def get_progress(
    course_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get the current user's completed modules in a course.
    """
    _course_for_learner(db, course_id, context)
    store = SqlProgressStore(db)
    record = store.get_record(context.user_id, course_id)
    completed = store.load(context.user_id, course_id)
    return {
        "course_id": course_id,
        "completed_modules": completed,
        "course_completed": is_course_complete(ModuleDirectory(db).module_ids(course_id), completed),
        "updated_at": record.updated_at if record else None,
    }


@router.put("/{course_id}/modules/{module_id}", response_model=ModuleCompletionResult)
async def set_module_completion(
    course_id: str,
    module_id: str,
    payload: ModuleCompletionUpdate,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> Dict[str, Any]:
    """
    Mark a module complete or incomplete for the current user.
    """
    _course_for_learner(db, course_id, context)
    module_ids = ModuleDirectory(db).module_ids(course_id)
    if module_id not in module_ids:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Module not found"
        )

    tracker = ProgressTracker(SqlProgressStore(db, feed), context.user_id, course_id)
    written = tracker.set_module_completion(module_id, payload.completed)
    return {
        "course_id": course_id,
        "module_id": module_id,
        "completed_modules": tracker.completed_modules,
        "written": written,
        "course_completed": tracker.is_course_complete(module_ids),
    }


@router.post("/{course_id}/modules/{module_id}/quiz", response_model=QuizResultResponse)
async def submit_quiz(
    course_id: str,
    module_id: str,
    submission: QuizSubmission,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> Dict[str, Any]:
    """
    Grade a module quiz; a fully correct attempt completes the module.
    """
    _course_for_learner(db, course_id, context)
    modules = ModuleDirectory(db)
    module = modules.get(course_id, module_id)
    if not module.questions:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This module has no questions"
        )

    tracker = ProgressTracker(SqlProgressStore(db, feed), context.user_id, course_id)
    session = QuizSession(module.questions, module_id, modules.module_ids(course_id), tracker)
    for question in module.questions:
        answer = submission.answers.get(question.id)
        if answer:
            session.select_alternative(question.id, answer)
        session.next()

    result = session.result
    if isinstance(session.state, CourseComplete):
        session.acknowledge()

    return {
        "score": result.score,
        "correct_count": result.correct_count,
        "total": result.total,
        "incorrect_question_ids": result.incorrect_question_ids,
        "module_completed": result.module_completed,
        "course_completed": result.course_completed,
    }


@router.post("/{course_id}/completion", response_model=CompletionResponse)
async def record_completion(
    course_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> CourseCompletion:
    """
    Record (or return the existing) completion snapshot for a finished course.
    """
    return DiplomaService(db).record_completion(context.user_id, course_id)
