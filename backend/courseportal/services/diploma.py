"""
Diploma issuance and rendering.

A diploma is issued only to a user whose customer membership has the
course assigned and whose progress covers every module of the course.
The first successful issuance writes a completion snapshot; later
issuances reuse its ``completed_at``. The document itself is a one page
A4 PDF drawn with Pillow. The page is a raster image, so its text
is not selectable; ``SCALE`` sets the resolution.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from io import BytesIO
from typing import Callable, Dict, List, Mapping, Optional, Tuple
import logging
import re

import httpx
from PIL import Image, ImageDraw, ImageFont
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from courseportal.core.config import settings
from courseportal.core.errors import Forbidden, NotFound
from courseportal.models.customer import Customer
from courseportal.models.diploma import DiplomaTemplate
from courseportal.models.progress import CourseCompletion
from courseportal.models.user import PortalUser
from courseportal.services.decoding import decode_customer_memberships, pick_title
from courseportal.services.directory import CourseDirectory, ModuleDirectory
from courseportal.services.metrics import as_utc
from courseportal.services.progress import SqlProgressStore, is_course_complete


logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE: Dict[str, str] = {
    "title": "Kursbevis",
    "body": (
        "Dette bekrefter at {{participantName}} har fullført kurset {{courseName}} "
        "for {{customerName}} den {{completedDate}}."
    ),
    "footer": "Utstedt av {{issuerName}}.",
    "issuer_name": "Ikontroll",
    "signature_name": "",
    "signature_title": "",
    "accent_color": "#0f172a",
}

PREVIEW_SAMPLE = {
    "participant_name": "Ola Nordmann",
    "customer_name": "Eksempel AS",
    "course_name": "HMS Grunnkurs",
}
PREVIEW_FILENAME = "diplom-preview.pdf"

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")
HEX_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")

# Page geometry in PDF points; origin bottom-left like the PDF itself.
PAGE_WIDTH = 595.28
PAGE_HEIGHT = 841.89
SCALE = 3
BORDER_INSET = 24
MARGIN = 60
TOP_PADDING = 70
LOGO_MAX_WIDTH = 160
LOGO_MAX_HEIGHT = 64
LOGO_TITLE_GAP = 40
SIGNATURE_LINE_WIDTH = 180
SIGNATURE_Y = 150
SIGNATURE_MAX_HEIGHT = 48
MUTED = (115, 115, 115)
SUMMARY_GREY = (102, 115, 128)
SIGNATURE_LINE_GREY = (179, 179, 179)


def resolve_text(value, fallback: str) -> str:
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or fallback
    return fallback


def parse_color(value, fallback: str) -> str:
    """``#RRGGBB`` (the ``#`` may be omitted), else ``fallback``."""
    if not isinstance(value, str) or not value.strip():
        return fallback
    normalized = value.strip()
    if not normalized.startswith("#"):
        normalized = f"#{normalized}"
    if HEX_COLOR_PATTERN.match(normalized):
        return normalized
    return fallback


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    clean = value.lstrip("#")
    return int(clean[0:2], 16), int(clean[2:4], 16), int(clean[4:6], 16)


def apply_placeholders(text: str, replacements: Mapping[str, str]) -> str:
    """Substitute ``{{key}}`` markers; unknown keys become empty."""
    return PLACEHOLDER_PATTERN.sub(lambda match: replacements.get(match.group(1), ""), text)


def wrap_text(text: str, measure: Callable[[str], float], max_width: float) -> List[str]:
    """
    Greedy word wrap.

    Paragraphs are split on newlines and an empty paragraph yields an
    empty line. A word that alone exceeds ``max_width`` gets its own line.
    """
    lines: List[str] = []
    for paragraph in re.split(r"\r?\n", text):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        line = words[0]
        for word in words[1:]:
            candidate = f"{line} {word}"
            if measure(candidate) <= max_width:
                line = candidate
            else:
                lines.append(line)
                line = word
        lines.append(line)
    return lines


def format_date(value: datetime) -> str:
    return value.strftime("%d.%m.%Y")


def diploma_filename(course_name: str) -> str:
    slug = re.sub(r"\s+", "-", course_name).lower()
    return f"kursbevis-{slug}.pdf"


@dataclass(frozen=True)
class ResolvedTemplate:
    title: str
    body: str
    footer: str
    issuer_name: str
    signature_name: str = ""
    signature_title: str = ""
    signature_url: str = ""
    accent_color: str = DEFAULT_TEMPLATE["accent_color"]
    logo_url: str = ""

    @property
    def has_signature_block(self) -> bool:
        return bool(self.signature_url or self.signature_name or self.signature_title)


def resolve_template(source) -> ResolvedTemplate:
    """Template fields from a stored template, payload or ``None``, with defaults for blanks."""

    def field(name: str):
        if source is None:
            return None
        if isinstance(source, Mapping):
            return source.get(name)
        return getattr(source, name, None)

    signature_url = field("signature_url")
    logo_url = field("logo_url")
    return ResolvedTemplate(
        title=resolve_text(field("title"), DEFAULT_TEMPLATE["title"]),
        body=resolve_text(field("body"), DEFAULT_TEMPLATE["body"]),
        footer=resolve_text(field("footer"), DEFAULT_TEMPLATE["footer"]),
        issuer_name=resolve_text(field("issuer_name"), DEFAULT_TEMPLATE["issuer_name"]),
        signature_name=resolve_text(field("signature_name"), ""),
        signature_title=resolve_text(field("signature_title"), ""),
        signature_url=signature_url if isinstance(signature_url, str) else "",
        accent_color=parse_color(field("accent_color"), DEFAULT_TEMPLATE["accent_color"]),
        logo_url=logo_url if isinstance(logo_url, str) else "",
    )


@dataclass(frozen=True)
class DiplomaContent:
    participant_name: str
    course_name: str
    customer_name: str
    completed_at: datetime

    @property
    def replacements(self) -> Dict[str, str]:
        return {
            "participantName": self.participant_name,
            "customerName": self.customer_name or "Kunde",
            "courseName": self.course_name,
            "completedDate": format_date(self.completed_at),
        }


def fetch_image(url: str) -> Optional[Image.Image]:
    """Download an image asset; failures are logged and yield ``None``."""
    if not url:
        return None
    try:
        response = httpx.get(url, timeout=settings.ASSET_FETCH_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
        image = Image.open(BytesIO(response.content))
        image.load()
        return image.convert("RGBA")
    except (httpx.HTTPError, OSError) as e:
        logger.warning(f"Failed to load diploma asset {url}: {e}")
        return None


def load_font(path: str, size: float):
    try:
        return ImageFont.truetype(path, int(size * SCALE))
    except OSError:
        logger.warning(f"Diploma font {path} not found, using Pillow default font")
        return ImageFont.load_default(size=int(size * SCALE))


class DiplomaCanvas:
    """Pillow page addressed in PDF points with a bottom-left origin."""

    def __init__(self):
        self.image = Image.new("RGB", (int(PAGE_WIDTH * SCALE), int(PAGE_HEIGHT * SCALE)), "white")
        self.draw = ImageDraw.Draw(self.image)
        self._fonts: Dict[Tuple[bool, float], object] = {}

    def font(self, size: float, bold: bool = False):
        key = (bold, size)
        if key not in self._fonts:
            path = settings.DIPLOMA_BOLD_FONT_PATH if bold else settings.DIPLOMA_FONT_PATH
            self._fonts[key] = load_font(path, size)
        return self._fonts[key]

    def measure(self, text: str, size: float, bold: bool = False) -> float:
        return self.font(size, bold).getlength(text) / SCALE

    @staticmethod
    def _point(x: float, y: float) -> Tuple[float, float]:
        return x * SCALE, (PAGE_HEIGHT - y) * SCALE

    def text(self, text: str, x: float, y: float, size: float, bold: bool = False, fill=(0, 0, 0)) -> None:
        """Draw with the baseline at ``y``."""
        self.draw.text(self._point(x, y), text, font=self.font(size, bold), fill=fill, anchor="ls")

    def centered_text(self, text: str, y: float, size: float, bold: bool = False, fill=(0, 0, 0)) -> None:
        x = (PAGE_WIDTH - self.measure(text, size, bold)) / 2
        self.text(text, x, y, size, bold, fill)

    def rectangle(self, x: float, y: float, width: float, height: float, outline, thickness: float) -> None:
        left, bottom = self._point(x, y)
        right, top = self._point(x + width, y + height)
        self.draw.rectangle([left, top, right, bottom], outline=outline, width=int(thickness * SCALE))

    def line(self, start: Tuple[float, float], end: Tuple[float, float], fill, thickness: float = 1) -> None:
        self.draw.line([self._point(*start), self._point(*end)], fill=fill, width=int(thickness * SCALE))

    def image_at(self, image: Image.Image, x: float, y: float, width: float, height: float) -> None:
        """Place ``image`` with its bottom-left corner at (x, y)."""
        resized = image.resize((max(int(width * SCALE), 1), max(int(height * SCALE), 1)))
        left, top = self._point(x, y + height)
        self.image.paste(resized, (int(left), int(top)), resized)

    def to_pdf(self) -> bytes:
        buffer = BytesIO()
        self.image.save(buffer, format="PDF", resolution=72 * SCALE)
        return buffer.getvalue()


def _fit(image: Image.Image, max_width: float, max_height: float) -> Tuple[float, float]:
    scale = min(max_width / image.width, max_height / image.height, 1)
    return image.width * scale, image.height * scale


def render_diploma(
    template: ResolvedTemplate,
    content: DiplomaContent,
    image_loader: Callable[[str], Optional[Image.Image]] = fetch_image,
) -> bytes:
    replacements = {**content.replacements, "issuerName": template.issuer_name}
    body_text = apply_placeholders(template.body, replacements)
    footer_text = apply_placeholders(template.footer, replacements)
    formatted_date = replacements["completedDate"]
    accent = hex_to_rgb(template.accent_color)
    inner_width = PAGE_WIDTH - MARGIN * 2

    canvas = DiplomaCanvas()
    canvas.rectangle(
        BORDER_INSET, BORDER_INSET,
        PAGE_WIDTH - BORDER_INSET * 2, PAGE_HEIGHT - BORDER_INSET * 2,
        outline=accent, thickness=2,
    )

    cursor_y = PAGE_HEIGHT - TOP_PADDING
    logo = image_loader(template.logo_url) if template.logo_url else None
    if logo is not None:
        logo_width, logo_height = _fit(logo, LOGO_MAX_WIDTH, LOGO_MAX_HEIGHT)
        logo_y = cursor_y - logo_height
        canvas.image_at(logo, (PAGE_WIDTH - logo_width) / 2, logo_y, logo_width, logo_height)
        cursor_y = logo_y - LOGO_TITLE_GAP
    else:
        cursor_y -= 10

    canvas.centered_text(template.title, cursor_y, 30, bold=True, fill=accent)
    cursor_y -= 48
    canvas.centered_text(content.participant_name, cursor_y, 26, bold=True)
    cursor_y -= 38
    canvas.centered_text(content.course_name, cursor_y, 18, bold=True)
    cursor_y -= 30

    for line in wrap_text(body_text, lambda text: canvas.measure(text, 14), inner_width):
        canvas.centered_text(line, cursor_y, 14)
        cursor_y -= 20

    cursor_y -= 8
    summary = f"Kunde: {content.customer_name or 'Kunde'} · Dato: {formatted_date}"
    canvas.centered_text(summary, cursor_y, 11, fill=SUMMARY_GREY)

    footer_lines = wrap_text(footer_text, lambda text: canvas.measure(text, 10), inner_width)
    footer_start_y = 90 + (len(footer_lines) - 1) * 12
    for index, line in enumerate(footer_lines):
        canvas.centered_text(line, footer_start_y - index * 12, 10, fill=MUTED)
    canvas.centered_text(
        f"Utstedelsesdato: {formatted_date}",
        footer_start_y - len(footer_lines) * 12 - 4,
        10,
        fill=MUTED,
    )

    if template.has_signature_block:
        signature_x = (PAGE_WIDTH - SIGNATURE_LINE_WIDTH) / 2
        signature = image_loader(template.signature_url) if template.signature_url else None
        if signature is not None:
            sig_width, sig_height = _fit(signature, SIGNATURE_LINE_WIDTH, SIGNATURE_MAX_HEIGHT)
            canvas.image_at(
                signature,
                signature_x + (SIGNATURE_LINE_WIDTH - sig_width) / 2,
                SIGNATURE_Y + 32,
                sig_width,
                sig_height,
            )
        canvas.line(
            (signature_x, SIGNATURE_Y + 28),
            (signature_x + SIGNATURE_LINE_WIDTH, SIGNATURE_Y + 28),
            fill=SIGNATURE_LINE_GREY,
        )
        if template.signature_name:
            width = canvas.measure(template.signature_name, 12, bold=True)
            canvas.text(
                template.signature_name,
                signature_x + (SIGNATURE_LINE_WIDTH - width) / 2,
                SIGNATURE_Y + 8,
                12,
                bold=True,
            )
        if template.signature_title:
            width = canvas.measure(template.signature_title, 10)
            canvas.text(
                template.signature_title,
                signature_x + (SIGNATURE_LINE_WIDTH - width) / 2,
                SIGNATURE_Y - 6,
                10,
                fill=MUTED,
            )

    return canvas.to_pdf()


def participant_name(user: PortalUser) -> str:
    return user.full_name or user.email or "Kursdeltaker"


class DiplomaService:
    def __init__(
        self,
        db: Session,
        image_loader: Callable[[str], Optional[Image.Image]] = fetch_image,
    ):
        self.db = db
        self.image_loader = image_loader

    def get_template(self, company_id: str) -> Optional[DiplomaTemplate]:
        return self.db.query(DiplomaTemplate).filter(DiplomaTemplate.company_id == company_id).first()

    def save_template(self, company_id: str, values: Dict) -> DiplomaTemplate:
        template = self.get_template(company_id)
        if template is None:
            template = DiplomaTemplate(company_id=company_id)
            self.db.add(template)
        for field, value in values.items():
            setattr(template, field, value)
        self.db.commit()
        self.db.refresh(template)
        return template

    def record_completion(self, user_id: str, course_id: str) -> CourseCompletion:
        """
        Verify that ``user_id`` finished ``course_id`` and return the
        completion snapshot, writing it when it does not exist yet.
        """
        course = CourseDirectory(self.db).get(course_id)
        user = self.db.query(PortalUser).filter(PortalUser.id == user_id).first()
        if user is None:
            raise NotFound("User not found.")

        membership = next(
            (
                entry for entry in decode_customer_memberships(user.customer_memberships)
                if course_id in entry.assigned_course_ids
            ),
            None,
        )
        if membership is None:
            raise Forbidden("Course is not assigned to this user.")

        store = SqlProgressStore(self.db)
        progress = store.get_record(user_id, course_id)
        completed_modules = store.load(user_id, course_id)
        module_ids = ModuleDirectory(self.db).module_ids(course_id)
        if not is_course_complete(module_ids, completed_modules):
            raise Forbidden("Course has not been completed yet.")

        existing = self._find_completion(user_id, course_id, membership.customer_id)
        if existing is not None:
            return existing

        customer_name = membership.customer_name
        if customer_name is None:
            customer = self.db.query(Customer).filter(Customer.id == membership.customer_id).first()
            customer_name = customer.company_name if customer else ""

        completed_at = as_utc(progress.updated_at if progress else None) or datetime.now(timezone.utc)
        completion = CourseCompletion(
            user_id=user_id,
            course_id=course_id,
            customer_id=membership.customer_id,
            company_id=course.company_id,
            participant_name=participant_name(user),
            course_title=pick_title(course.title) or "Kurs",
            customer_name=customer_name,
            completed_at=completed_at,
        )
        self.db.add(completion)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request wrote the snapshot first; keep its completed_at.
            self.db.rollback()
            existing = self._find_completion(user_id, course_id, membership.customer_id)
            if existing is None:
                raise
            return existing
        self.db.refresh(completion)
        logger.info(f"Completion recorded for user {user_id} in course {course_id}")
        return completion

    def _find_completion(self, user_id: str, course_id: str, customer_id: str) -> Optional[CourseCompletion]:
        return self.db.query(CourseCompletion).filter(
            CourseCompletion.user_id == user_id,
            CourseCompletion.course_id == course_id,
            CourseCompletion.customer_id == customer_id
        ).first()

    def issue(self, user_id: str, course_id: str) -> Tuple[str, bytes]:
        """Filename and PDF bytes of the diploma for a completed course."""
        completion = self.record_completion(user_id, course_id)
        course = CourseDirectory(self.db).get(course_id)
        user = self.db.query(PortalUser).filter(PortalUser.id == user_id).first()
        course_name = pick_title(course.title) or "Kurs"
        content = DiplomaContent(
            participant_name=participant_name(user),
            course_name=course_name,
            customer_name=completion.customer_name,
            completed_at=as_utc(completion.completed_at),
        )
        template = resolve_template(self.get_template(course.company_id))
        return diploma_filename(course_name), render_diploma(template, content, self.image_loader)

    def preview(self, source) -> Tuple[str, bytes]:
        """Render ``source`` template fields with sample data."""
        content = DiplomaContent(
            participant_name=PREVIEW_SAMPLE["participant_name"],
            course_name=PREVIEW_SAMPLE["course_name"],
            customer_name=PREVIEW_SAMPLE["customer_name"],
            completed_at=datetime.now(timezone.utc),
        )
        return PREVIEW_FILENAME, render_diploma(resolve_template(source), content, self.image_loader)
