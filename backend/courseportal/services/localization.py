"""
Locale resolution for localized course content.

Content fields are locale maps (``{"no": "...", "en": "..."}``). A
bundle is rendered in exactly one locale, picked from the locales the
bundle actually has.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

FALLBACK_LOCALES = ("no", "en")


def _short_code(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value[:2].lower() or None


def get_preferred_locale(
    available: Sequence[str],
    requested: Optional[str] = None,
    detected: Optional[str] = None,
) -> str:
    """
    Pick the locale to render.

    Candidates are tried in order: the requested locale, the locale
    detected from the client, then ``no`` and ``en``. When nothing
    matches the first available locale wins; with no available locales
    the requested locale (or ``no``) is returned.
    """
    if not available:
        return requested or FALLBACK_LOCALES[0]

    candidates: List[str] = []
    for candidate in (_short_code(requested), _short_code(detected), *FALLBACK_LOCALES):
        if candidate and candidate not in candidates:
            candidates.append(candidate)

    for candidate in candidates:
        if candidate in available:
            return candidate
    return available[0]


def detect_client_locale(accept_language: Optional[str]) -> Optional[str]:
    """Primary language of an ``Accept-Language`` header, e.g. ``nb-NO,nb;q=0.9`` -> ``nb``."""
    if not accept_language:
        return None
    first = accept_language.split(",")[0].split(";")[0].strip()
    return _short_code(first)


def get_localized_value(value: Optional[Mapping[str, str]], locale: str) -> str:
    """
    Value for ``locale``, falling back to ``no``, ``en`` and then the
    first non-blank entry.
    """
    if not value:
        return ""
    for key in (locale, *FALLBACK_LOCALES):
        if key in value and value[key] is not None:
            return value[key]
    for entry in value.values():
        if isinstance(entry, str) and entry.strip():
            return entry
    return ""


def get_localized_list(value: Optional[Mapping[str, List[str]]], locale: str) -> List[str]:
    """List variant of :func:`get_localized_value`."""
    if not value:
        return []
    for key in (locale, *FALLBACK_LOCALES):
        if key in value and value[key] is not None:
            return list(value[key])
    for entry in value.values():
        if entry:
            return list(entry)
    return []


def collect_locales(*maps: Optional[Mapping[str, object]]) -> List[str]:
    """Union of the keys of several locale maps, in first-seen order."""
    seen: Dict[str, None] = {}
    for locale_map in maps:
        for key in (locale_map or {}):
            seen.setdefault(key, None)
    return list(seen)


def collect_bundle_locales(
    course_title: Optional[Mapping[str, object]],
    course_description: Optional[Mapping[str, object]],
    modules: Iterable,
) -> List[str]:
    """
    Locales present anywhere in a course and its modules.

    Each module needs the fields of ``CourseModuleView``.
    """
    maps: List[Optional[Mapping[str, object]]] = [course_title, course_description]
    for module in modules:
        maps.extend([module.title, module.summary, module.body, module.media,
                     module.image_urls, module.video_urls])
        for question in module.questions:
            maps.extend([question.title, question.content_text])
            maps.extend(alternative.alt_text for alternative in question.alternatives)
    return collect_locales(*maps)

