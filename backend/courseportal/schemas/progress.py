"""
Progress, quiz and completion schemas.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProgressResponse(BaseModel):
    course_id: str
    completed_modules: List[str]
    course_completed: bool
    updated_at: Optional[datetime] = None


class ModuleCompletionUpdate(BaseModel):
    completed: bool = True


class ModuleCompletionResult(BaseModel):
    course_id: str
    module_id: str
    completed_modules: List[str]
    written: bool
    course_completed: bool


class QuizSubmission(BaseModel):
    """Chosen alternative id per question id."""

    answers: Dict[str, str] = Field(default_factory=dict)


class QuizResultResponse(BaseModel):
    score: int
    correct_count: int
    total: int
    incorrect_question_ids: List[str]
    module_completed: bool
    course_completed: bool


class CompletionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    course_id: str
    customer_id: str
    company_id: str
    participant_name: str
    course_title: str
    customer_name: str
    completed_at: datetime
