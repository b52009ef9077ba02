"""
Module media normalization.

Modules store media either as a typed map (``locale -> [{id, url,
type}]``) or, in older documents, as separate per-locale image and video
URL lists. Everything downstream works on the typed map.
"""

from typing import Any, Dict, List, Mapping, Optional
import uuid

from courseportal.schemas.course import LocaleMediaMap, MediaItem


def _random_id() -> str:
    return uuid.uuid4().hex


def coerce_media_type(value: Any) -> str:
    if value in ("video", "document"):
        return value
    return "image"


def normalize_media_item(item: Any) -> Optional[MediaItem]:
    """One stored media entry as a ``MediaItem``, or ``None`` when unusable."""
    if not item:
        return None
    if isinstance(item, str):
        return MediaItem(id=_random_id(), url=item, type="image")
    if isinstance(item, Mapping):
        url = item.get("url")
        if isinstance(url, str) and url.strip():
            item_id = item.get("id")
            return MediaItem(
                id=item_id if isinstance(item_id, str) and item_id.strip() else _random_id(),
                url=url,
                type=coerce_media_type(item.get("type")),
            )
    return None


def _legacy_urls(legacy: Any, locale: str) -> List[str]:
    if not isinstance(legacy, Mapping):
        return []
    entries = legacy.get(locale)
    if isinstance(entries, str):
        return [entries]
    if isinstance(entries, list):
        return [entry for entry in entries if isinstance(entry, str)]
    return []


def normalize_module_media(
    media: Any,
    legacy_images: Any = None,
    legacy_videos: Any = None,
) -> LocaleMediaMap:
    """
    Canonical typed media map.

    A typed map with at least one non-empty locale is used exclusively.
    Otherwise the legacy image and video lists are merged per locale,
    images first.
    """
    result: Dict[str, List[MediaItem]] = {}
    if isinstance(media, Mapping):
        for locale, entries in media.items():
            if not isinstance(entries, list):
                continue
            normalized = [item for item in map(normalize_media_item, entries) if item]
            if normalized:
                result[locale] = normalized

    if result:
        return result

    locales: Dict[str, None] = {}
    for legacy in (legacy_images, legacy_videos):
        if isinstance(legacy, Mapping):
            for locale in legacy:
                locales.setdefault(locale, None)

    for locale in locales:
        items = [
            MediaItem(id=_random_id(), url=url, type="image")
            for url in _legacy_urls(legacy_images, locale) if url
        ]
        items.extend(
            MediaItem(id=_random_id(), url=url, type="video")
            for url in _legacy_urls(legacy_videos, locale) if url
        )
        if items:
            result[locale] = items
    return result


def media_to_legacy_lists(media: LocaleMediaMap) -> Dict[str, Dict[str, List[str]]]:
    """
    Split a typed media map back into legacy image/video URL lists.

    Written alongside the typed map so older readers keep working.
    """
    image_urls: Dict[str, List[str]] = {}
    video_urls: Dict[str, List[str]] = {}
    for locale, items in media.items():
        image_urls[locale] = [item.url for item in items if item.type == "image"]
        video_urls[locale] = [item.url for item in items if item.type == "video"]
    return {"image_urls": image_urls, "video_urls": video_urls}


def get_localized_media(media: Optional[LocaleMediaMap], locale: str) -> List[MediaItem]:
    """
    Media for ``locale``, else for ``no``, else for the first locale that
    has any.
    """
    if not media:
        return []
    if media.get(locale):
        return media[locale]
    if media.get("no"):
        return media["no"]
    for items in media.values():
        if items:
            return items
    return []
