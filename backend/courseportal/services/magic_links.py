"""
Single-use magic login links.

A link is created when a course is assigned to a user and delivered by
SMS. Resolving it exchanges the code for a sign-in token once; expired
codes are marked consumed on first sight.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from urllib.parse import urlencode
import logging

from sqlalchemy.orm import Session

from courseportal.core.config import settings
from courseportal.core.errors import Gone, NotFound, ValidationFailed
from courseportal.core.security import create_custom_token, generate_magic_code
from courseportal.models.invite import MagicLink
from courseportal.services.metrics import as_utc


logger = logging.getLogger(__name__)

DEFAULT_REDIRECT = "/my-courses"
MAX_CODE_ATTEMPTS = 5


def normalize_redirect(value: Optional[str]) -> str:
    if not value or not value.startswith("/"):
        return DEFAULT_REDIRECT
    return value


class MagicLinkService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, auth_uid: str, course_id: Optional[str] = None) -> MagicLink:
        redirect = f"/my-courses/{course_id}" if course_id else DEFAULT_REDIRECT
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_magic_code()
            if self.db.query(MagicLink.code).filter(MagicLink.code == code).first() is not None:
                continue
            link = MagicLink(
                code=code,
                auth_uid=auth_uid,
                course_id=course_id,
                redirect=redirect,
                expires_at=datetime.now(timezone.utc) + timedelta(minutes=settings.MAGIC_LINK_TTL_MINUTES),
                consumed=False,
            )
            self.db.add(link)
            self.db.commit()
            return link
        raise RuntimeError("Failed to generate unique magic login code")

    def login_url(self, auth_uid: Optional[str], course_id: Optional[str] = None) -> str:
        """Magic login URL for ``auth_uid``; the plain login page when there is no user."""
        if not auth_uid:
            return settings.PORTAL_LOGIN_URL
        link = self.create(auth_uid, course_id)
        return f"{settings.magic_login_url}?{urlencode({'code': link.code})}"

    def resolve(self, code: Optional[str], now: Optional[datetime] = None) -> Tuple[str, str]:
        """Consume ``code`` and return ``(token, redirect)``."""
        code = (code or "").strip().lower()
        if not code:
            raise ValidationFailed("Missing code.")

        link = self.db.query(MagicLink).filter(MagicLink.code == code).first()
        if link is None:
            raise NotFound("Invalid link.")
        if link.consumed:
            raise Gone("Link already used.")

        now = now or datetime.now(timezone.utc)
        expires_at = as_utc(link.expires_at)
        if expires_at is not None and expires_at < now:
            link.consumed = True
            link.consumed_at = now
            link.consumed_reason = "expired"
            self.db.commit()
            raise Gone("Link expired.")

        if not link.auth_uid:
            raise ValidationFailed("Invalid link.")

        claims = {"login_source": "sms"}
        if link.course_id:
            claims["course_id"] = link.course_id
        token = create_custom_token(link.auth_uid, claims)

        link.consumed = True
        link.consumed_at = now
        redirect = normalize_redirect(link.redirect)
        self.db.commit()
        logger.info(f"Magic link resolved for user {link.auth_uid}")
        return token, redirect
