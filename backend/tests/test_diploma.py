from datetime import datetime, timezone

from PIL import Image

from courseportal.services.diploma import (
    DEFAULT_TEMPLATE,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    SCALE,
    DiplomaCanvas,
    DiplomaContent,
    apply_placeholders,
    diploma_filename,
    format_date,
    parse_color,
    render_diploma,
    resolve_template,
    wrap_text,
)


def no_images(url):
    return None


def sample_content():
    return DiplomaContent(
        participant_name="Ola Nordmann",
        course_name="HMS Grunnkurs",
        customer_name="Eksempel AS",
        completed_at=datetime(2026, 3, 4, tzinfo=timezone.utc),
    )


def test_wrap_text_is_greedy():
    assert wrap_text("aaa bbb ccc", len, 10) == ["aaa bbb", "ccc"]
    assert wrap_text("a\n\nb", len, 10) == ["a", "", "b"]
    assert wrap_text("averyveryverylongword x", len, 5) == ["averyveryverylongword", "x"]


def test_placeholders_replace_known_keys_and_blank_unknown():
    text = "Hei {{participantName}}, {{ courseName }}{{missing}}!"
    assert apply_placeholders(text, {"participantName": "Ola", "courseName": "HMS"}) == "Hei Ola, HMS!"


def test_parse_color():
    assert parse_color("ff0000", "#000000") == "#ff0000"
    assert parse_color("#ABCDEF", "#000000") == "#ABCDEF"
    assert parse_color("#zzz", "#0f172a") == "#0f172a"
    assert parse_color(None, "#0f172a") == "#0f172a"


def test_template_defaults_fill_blanks():
    template = resolve_template({"title": "  ", "body": "Egen tekst", "accent_color": "bad"})

    assert template.title == DEFAULT_TEMPLATE["title"]
    assert template.body == "Egen tekst"
    assert template.accent_color == DEFAULT_TEMPLATE["accent_color"]
    assert not template.has_signature_block
    assert resolve_template(None).issuer_name == DEFAULT_TEMPLATE["issuer_name"]


def test_content_replacements():
    replacements = sample_content().replacements
    assert replacements["completedDate"] == "04.03.2026"
    assert DiplomaContent("A", "B", "", datetime(2026, 1, 1)).replacements["customerName"] == "Kunde"


def test_filename_and_date_format():
    assert diploma_filename("HMS  Grunnkurs Del 1") == "kursbevis-hms-grunnkurs-del-1.pdf"
    assert format_date(datetime(2026, 12, 1)) == "01.12.2026"


def test_render_produces_pdf():
    pdf = render_diploma(resolve_template(None), sample_content(), image_loader=no_images)
    assert pdf.startswith(b"%PDF")


def test_render_with_logo_and_signature():
    requested = []

    def loader(url):
        requested.append(url)
        return Image.new("RGBA", (400, 100), (200, 0, 0, 255))

    template = resolve_template({
        "logo_url": "https://cdn.example.no/logo.png",
        "signature_url": "https://cdn.example.no/signature.png",
        "signature_name": "Per Hansen",
        "signature_title": "Daglig leder",
        "footer": "Linje en\nLinje to",
    })
    pdf = render_diploma(template, sample_content(), image_loader=loader)

    assert pdf.startswith(b"%PDF")
    assert requested == ["https://cdn.example.no/logo.png", "https://cdn.example.no/signature.png"]


def test_canvas_rasterizes_a4_above_screen_resolution():
    canvas = DiplomaCanvas()

    assert SCALE >= 3
    assert canvas.image.size == (int(PAGE_WIDTH * SCALE), int(PAGE_HEIGHT * SCALE))
    assert canvas.to_pdf().startswith(b"%PDF")
