"""
Course and module schemas.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from courseportal.models.course import CourseStatus, ExpirationType, ModuleType


LocaleStringMap = Dict[str, str]
LocaleStringListMap = Dict[str, List[str]]
MediaType = Literal["image", "video", "document"]


class MediaItem(BaseModel):
    id: str
    url: str
    type: MediaType = "image"


LocaleMediaMap = Dict[str, List[MediaItem]]


class Alternative(BaseModel):
    id: str
    alt_text: LocaleStringMap = Field(default_factory=dict)


class Question(BaseModel):
    id: str
    title: LocaleStringMap = Field(default_factory=dict)
    content_text: LocaleStringMap = Field(default_factory=dict)
    alternatives: List[Alternative] = Field(default_factory=list)
    correct_answer_ids: List[str] = Field(default_factory=list)
    correct_answer_id: Optional[str] = None


class CourseBase(BaseModel):
    title: LocaleStringMap = Field(default_factory=dict)
    description: LocaleStringMap = Field(default_factory=dict)
    image_url: Optional[str] = None
    status: CourseStatus = CourseStatus.ACTIVE
    expiration_type: ExpirationType = ExpirationType.NONE
    expiration_days: Optional[int] = Field(default=None, ge=1)
    expiration_months: Optional[int] = Field(default=None, ge=1)
    expiration_date: Optional[str] = None


class CourseCreate(CourseBase):
    company_id: str


class CourseUpdate(BaseModel):
    title: Optional[LocaleStringMap] = None
    description: Optional[LocaleStringMap] = None
    image_url: Optional[str] = None
    status: Optional[CourseStatus] = None
    expiration_type: Optional[ExpirationType] = None
    expiration_days: Optional[int] = Field(default=None, ge=1)
    expiration_months: Optional[int] = Field(default=None, ge=1)
    expiration_date: Optional[str] = None


class CourseResponse(CourseBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    created_by_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ModuleBase(BaseModel):
    title: LocaleStringMap = Field(default_factory=dict)
    summary: LocaleStringMap = Field(default_factory=dict)
    body: LocaleStringMap = Field(default_factory=dict)
    media: LocaleMediaMap = Field(default_factory=dict)
    order: float = 0
    questions: List[Question] = Field(default_factory=list)
    module_type: ModuleType = ModuleType.NORMAL
    exam_pass_percentage: Optional[int] = Field(default=None, ge=0, le=100)


class ModuleCreate(ModuleBase):
    pass


class ModuleUpdate(BaseModel):
    title: Optional[LocaleStringMap] = None
    summary: Optional[LocaleStringMap] = None
    body: Optional[LocaleStringMap] = None
    media: Optional[LocaleMediaMap] = None
    order: Optional[float] = None
    questions: Optional[List[Question]] = None
    module_type: Optional[ModuleType] = None
    exam_pass_percentage: Optional[int] = Field(default=None, ge=0, le=100)


class CourseModuleView(ModuleBase):
    """A module decoded from storage, legacy shapes already reconciled."""

    id: str
    course_id: str
    image_urls: LocaleStringListMap = Field(default_factory=dict)
    video_urls: LocaleStringListMap = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LocalizedAlternative(BaseModel):
    id: str
    text: str


class LocalizedQuestion(BaseModel):
    id: str
    title: str
    content_text: str
    alternatives: List[LocalizedAlternative]


class ModuleContent(BaseModel):
    id: str
    title: str
    summary: str
    body: str
    media: List[MediaItem]
    questions: List[LocalizedQuestion]
    module_type: ModuleType
    completed: bool


class CourseContent(BaseModel):
    """What a learner sees for one course, rendered in one locale."""

    course_id: str
    locale: str
    available_locales: List[str]
    title: str
    description: str
    image_url: Optional[str] = None
    modules: List[ModuleContent]
    completed_modules: List[str]
    next_module_id: Optional[str] = None
    completed: bool
