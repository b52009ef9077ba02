from courseportal.services.localization import (
    collect_locales,
    detect_client_locale,
    get_localized_list,
    get_localized_value,
    get_preferred_locale,
)


def test_requested_locale_wins_when_available():
    assert get_preferred_locale(["en", "no"], "en", "no") == "en"


def test_unavailable_request_falls_back_to_detected():
    assert get_preferred_locale(["en", "no"], "sv", "en") == "en"


def test_falls_back_to_norwegian_then_english():
    assert get_preferred_locale(["de", "no"], "sv", "fr") == "no"
    assert get_preferred_locale(["de", "en"], None, None) == "en"


def test_first_available_locale_when_nothing_matches():
    assert get_preferred_locale(["de", "fr"], "sv", None) == "de"


def test_no_available_locales():
    assert get_preferred_locale([], None) == "no"
    assert get_preferred_locale([], "en") == "en"


def test_region_codes_are_shortened():
    assert get_preferred_locale(["en", "no"], "EN-gb") == "en"
    assert detect_client_locale("nb-NO,nb;q=0.9,en;q=0.8") == "nb"
    assert detect_client_locale(None) is None


def test_value_fallback_chain():
    assert get_localized_value({"en": "Hi"}, "no") == "Hi"
    assert get_localized_value({"no": "Hei", "en": "Hi"}, "sv") == "Hei"
    assert get_localized_value({"de": "", "fr": "Salut"}, "sv") == "Salut"
    assert get_localized_value(None, "no") == ""


def test_explicit_empty_string_is_kept_for_locale():
    assert get_localized_value({"en": "", "no": "Hei"}, "en") == ""


def test_localized_list():
    assert get_localized_list({"no": ["a"], "en": ["b"]}, "en") == ["b"]
    assert get_localized_list({"de": [], "fr": ["c"]}, "sv") == ["c"]
    assert get_localized_list({}, "no") == []


def test_collect_locales_keeps_first_seen_order():
    assert collect_locales({"no": "a"}, None, {"en": "b", "no": "c"}) == ["no", "en"]
