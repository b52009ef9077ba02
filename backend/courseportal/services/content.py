"""
Learner-facing course view rendered in a single locale.
"""

from typing import Iterable, List, Optional, Sequence

from courseportal.models.course import Course
from courseportal.schemas.course import (
    CourseContent,
    CourseModuleView,
    LocalizedAlternative,
    LocalizedQuestion,
    ModuleContent,
)
from courseportal.services.decoding import decode_locale_map
from courseportal.services.localization import (
    collect_bundle_locales,
    get_localized_value,
    get_preferred_locale,
)
from courseportal.services.media import get_localized_media
from courseportal.services.progress import is_course_complete


def next_module_id(modules: Sequence[CourseModuleView], completed: Iterable[str]) -> Optional[str]:
    """First module not completed yet, else the first module."""
    if not modules:
        return None
    done = set(completed)
    for module in modules:
        if module.id not in done:
            return module.id
    return modules[0].id


def localize_module(module: CourseModuleView, locale: str, completed: bool) -> ModuleContent:
    return ModuleContent(
        id=module.id,
        title=get_localized_value(module.title, locale),
        summary=get_localized_value(module.summary, locale),
        body=get_localized_value(module.body, locale),
        media=get_localized_media(module.media, locale),
        questions=[
            LocalizedQuestion(
                id=question.id,
                title=get_localized_value(question.title, locale),
                content_text=get_localized_value(question.content_text, locale),
                alternatives=[
                    LocalizedAlternative(id=alternative.id, text=get_localized_value(alternative.alt_text, locale))
                    for alternative in question.alternatives
                ],
            )
            for question in module.questions
        ],
        module_type=module.module_type,
        completed=completed,
    )


def build_course_content(
    course: Course,
    modules: List[CourseModuleView],
    completed_modules: List[str],
    requested_locale: Optional[str] = None,
    detected_locale: Optional[str] = None,
) -> CourseContent:
    title = decode_locale_map(course.title).value
    description = decode_locale_map(course.description).value

    available = collect_bundle_locales(
        course.title if isinstance(course.title, dict) else title,
        course.description if isinstance(course.description, dict) else description,
        modules,
    )
    locale = get_preferred_locale(available, requested_locale, detected_locale)

    done = set(completed_modules)
    return CourseContent(
        course_id=course.id,
        locale=locale,
        available_locales=available,
        title=get_localized_value(title, locale),
        description=get_localized_value(description, locale),
        image_url=course.image_url,
        modules=[localize_module(module, locale, module.id in done) for module in modules],
        completed_modules=list(completed_modules),
        next_module_id=next_module_id(modules, done),
        completed=is_course_complete([module.id for module in modules], done),
    )
