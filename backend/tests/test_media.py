from courseportal.schemas.course import MediaItem
from courseportal.services.media import (
    get_localized_media,
    media_to_legacy_lists,
    normalize_media_item,
    normalize_module_media,
)


def test_typed_media_ignores_legacy_lists():
    media = {"no": [{"id": "m1", "url": "https://cdn/a.png", "type": "image"}]}
    result = normalize_module_media(media, {"no": ["https://cdn/legacy.png"]}, {"no": ["https://cdn/v.mp4"]})

    assert list(result) == ["no"]
    assert [item.url for item in result["no"]] == ["https://cdn/a.png"]


def test_legacy_lists_merge_images_before_videos():
    result = normalize_module_media(None, {"no": ["i1"]}, {"no": ["v1"]})

    assert [(item.url, item.type) for item in result["no"]] == [("i1", "image"), ("v1", "video")]
    assert all(item.id for item in result["no"])


def test_typed_media_with_only_empty_locales_uses_legacy():
    result = normalize_module_media({"no": []}, {"en": "single.png"}, None)

    assert [(item.url, item.type) for item in result["en"]] == [("single.png", "image")]


def test_media_item_normalization():
    assert normalize_media_item("https://cdn/x.png").type == "image"
    assert normalize_media_item({"url": "https://cdn/x.pdf", "type": "document"}).type == "document"
    assert normalize_media_item({"url": "https://cdn/x", "type": "audio"}).type == "image"
    assert normalize_media_item({"url": "  "}) is None
    assert normalize_media_item(None) is None


def test_localized_media_fallbacks():
    media = {
        "no": [MediaItem(id="1", url="no.png")],
        "en": [MediaItem(id="2", url="en.png")],
    }
    assert get_localized_media(media, "en")[0].url == "en.png"
    assert get_localized_media(media, "sv")[0].url == "no.png"
    assert get_localized_media({"de": [MediaItem(id="3", url="de.png")]}, "sv")[0].url == "de.png"
    assert get_localized_media(None, "no") == []


def test_media_to_legacy_lists():
    media = {
        "no": [
            MediaItem(id="1", url="a.png", type="image"),
            MediaItem(id="2", url="b.mp4", type="video"),
            MediaItem(id="3", url="c.pdf", type="document"),
        ]
    }
    legacy = media_to_legacy_lists(media)

    assert legacy == {"image_urls": {"no": ["a.png"]}, "video_urls": {"no": ["b.mp4"]}}
