"""
Decoding of loosely-typed stored documents.

Documents written by different versions of the portal coexist in the
store: titles that are plain strings instead of locale maps, a single
``correct_answer_id`` instead of ``correct_answer_ids``, legacy media
lists. Every decoder here returns ``Decoded`` or ``Malformed`` and never
raises.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar, Union
import logging

from courseportal.models.course import CourseModule, ModuleType
from courseportal.models.user import CompanyRole, CustomerRole
from courseportal.schemas.course import Alternative, CourseModuleView, Question
from courseportal.schemas.user import CompanyMembership, CustomerMembership
from courseportal.services.media import normalize_module_media


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Decoded(Generic[T]):
    value: T


@dataclass(frozen=True)
class Malformed:
    reason: str


DecodeResult = Union[Decoded[T], Malformed]


def decode_locale_map(raw: Any) -> Decoded[Dict[str, str]]:
    if not raw:
        return Decoded({"no": ""})
    if isinstance(raw, str):
        return Decoded({"no": raw})
    if isinstance(raw, Mapping):
        return Decoded({
            str(key): value if isinstance(value, str) else ("" if value is None else str(value))
            for key, value in raw.items()
        })
    return Decoded({"no": str(raw)})


def decode_locale_list_map(raw: Any) -> Decoded[Dict[str, List[str]]]:
    if not raw:
        return Decoded({"no": []})
    if isinstance(raw, list):
        return Decoded({"no": [item for item in raw if isinstance(item, str)]})
    if isinstance(raw, Mapping):
        result: Dict[str, List[str]] = {}
        for key, entries in raw.items():
            if isinstance(entries, list):
                result[key] = [item for item in entries if isinstance(item, str)]
            elif isinstance(entries, str):
                result[key] = [entries]
            elif entries is None:
                result[key] = []
            else:
                result[key] = [str(entries)]
        return Decoded(result)
    return Decoded({"no": [str(raw)]})


def _string_list(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, str)]


def normalize_correct_answers(
    alternative_ids: List[str],
    correct_answer_ids: Any,
    correct_answer_id: Any,
) -> List[str]:
    """
    Resolve which alternatives are correct.

    The current id list wins when every entry names an existing
    alternative; otherwise the legacy single id is used when valid, then
    the first alternative.
    """
    ids = _string_list(correct_answer_ids)
    if ids and all(answer_id in alternative_ids for answer_id in ids):
        return ids
    if isinstance(correct_answer_id, str) and correct_answer_id in alternative_ids:
        return [correct_answer_id]
    if alternative_ids:
        return [alternative_ids[0]]
    return []


def decode_question(raw: Any) -> DecodeResult[Question]:
    if not isinstance(raw, Mapping):
        return Malformed("question is not an object")
    question_id = raw.get("id")
    if not isinstance(question_id, str) or not question_id:
        return Malformed("question has no id")

    alternatives: List[Alternative] = []
    for entry in raw.get("alternatives") or []:
        if isinstance(entry, Mapping) and isinstance(entry.get("id"), str) and entry["id"]:
            alternatives.append(Alternative(
                id=entry["id"],
                alt_text=decode_locale_map(entry.get("alt_text")).value,
            ))
    alternative_ids = [alternative.id for alternative in alternatives]

    correct_ids = normalize_correct_answers(
        alternative_ids,
        raw.get("correct_answer_ids"),
        raw.get("correct_answer_id"),
    )
    return Decoded(Question(
        id=question_id,
        title=decode_locale_map(raw.get("title")).value,
        content_text=decode_locale_map(raw.get("content_text")).value,
        alternatives=alternatives,
        correct_answer_ids=correct_ids,
        correct_answer_id=correct_ids[0] if correct_ids else None,
    ))


def decode_order(raw: Any, fallback: int) -> float:
    if isinstance(raw, bool):
        return fallback
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, str):
        try:
            return float(raw)
        except ValueError:
            return fallback
    return fallback


def decode_module(row: CourseModule, index: int = 0) -> DecodeResult[CourseModuleView]:
    """Decode a stored module; ``index`` is its position in the query result."""
    if not row.id or not row.course_id:
        return Malformed("module has no id or course id")

    questions: List[Question] = []
    for raw_question in row.questions or []:
        result = decode_question(raw_question)
        if isinstance(result, Malformed):
            logger.warning(f"Dropping question in module {row.id}: {result.reason}")
            continue
        questions.append(result.value)

    image_urls = decode_locale_list_map(row.image_urls).value
    video_urls = decode_locale_list_map(row.video_urls).value
    return Decoded(CourseModuleView(
        id=row.id,
        course_id=row.course_id,
        title=decode_locale_map(row.title).value,
        summary=decode_locale_map(row.summary).value,
        body=decode_locale_map(row.body).value,
        media=normalize_module_media(row.media, row.image_urls, row.video_urls),
        image_urls=image_urls,
        video_urls=video_urls,
        order=decode_order(row.order, index),
        questions=questions,
        module_type=ModuleType.EXAM if row.module_type == ModuleType.EXAM.value else ModuleType.NORMAL,
        exam_pass_percentage=row.exam_pass_percentage,
        created_at=row.created_at,
        updated_at=row.updated_at,
    ))


def decode_company_memberships(raw: Any) -> List[CompanyMembership]:
    if not isinstance(raw, list):
        return []
    known = {role.value for role in CompanyRole}
    memberships: List[CompanyMembership] = []
    for entry in raw:
        if isinstance(entry, str):
            memberships.append(CompanyMembership(company_id=entry))
        elif isinstance(entry, Mapping) and isinstance(entry.get("company_id"), str):
            display_name = entry.get("display_name")
            memberships.append(CompanyMembership(
                company_id=entry["company_id"],
                roles=[role for role in _string_list(entry.get("roles")) if role in known],
                display_name=display_name if isinstance(display_name, str) else None,
            ))
    return memberships


def decode_customer_memberships(raw: Any) -> List[CustomerMembership]:
    if not isinstance(raw, list):
        return []
    known = {role.value for role in CustomerRole}
    memberships: List[CustomerMembership] = []
    for entry in raw:
        if not isinstance(entry, Mapping) or not isinstance(entry.get("customer_id"), str):
            continue
        customer_name = entry.get("customer_name")
        memberships.append(CustomerMembership(
            customer_id=entry["customer_id"],
            customer_name=customer_name if isinstance(customer_name, str) else None,
            roles=[role for role in _string_list(entry.get("roles")) if role in known],
            assigned_course_ids=_string_list(entry.get("assigned_course_ids")),
        ))
    return memberships


def pick_title(raw: Any, default: str = "") -> str:
    """Single display title from a stored title: ``no`` first, then any non-blank value."""
    if not raw:
        return default
    if isinstance(raw, str):
        return raw
    if isinstance(raw, Mapping):
        preferred: Optional[Any] = raw.get("no")
        if isinstance(preferred, str) and preferred.strip():
            return preferred
        for value in raw.values():
            if isinstance(value, str) and value.strip():
                return value
        return default
    return str(raw)
