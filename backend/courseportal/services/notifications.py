"""
SMS notifications through the configured HTTP gateway.

Delivery is best effort: missing credentials, bad numbers and gateway
errors are logged and never fail the request that triggered them.
"""

from typing import Callable, Dict, Iterable, Optional
import logging
import re

import httpx

from courseportal.core.config import settings


logger = logging.getLogger(__name__)

FALLBACK_COURSE_TITLE = "Nytt kurs"


def format_phone_number(raw: Optional[str]) -> str:
    """Digits and ``+`` only, with a leading ``00`` turned into ``+``."""
    cleaned = re.sub(r"[^\d+]", "", raw or "")
    return re.sub(r"^00", "+", cleaned)


def course_assignment_message(course_title: str, link: str) -> str:
    return f"Du har fått tilgang til kurset {course_title}. Logg inn her: {link}"


class SmsGateway:
    def __init__(self, client: Optional[httpx.Client] = None):
        self.client = client

    def send(self, to: Optional[str], text: str) -> bool:
        """Send one message; returns True when the gateway accepted it."""
        if not settings.sms_enabled:
            logger.warning("SMS credentials missing, skipping SMS.")
            return False
        recipient = format_phone_number(to)
        if not recipient:
            logger.warning("Invalid recipient phone number, skipping SMS.")
            return False

        params = {
            "user": settings.SMS_USERNAME,
            "passwd": settings.SMS_PASSWORD,
            "to": recipient,
            "msg": text,
            "from": settings.SMS_SENDER,
            "f": "json",
            "test": "true" if settings.SMS_TEST_MODE else "false",
        }
        client = self.client or httpx.Client(timeout=settings.ASSET_FETCH_TIMEOUT)
        try:
            response = client.get(settings.SMS_GATEWAY_URL, params=params)
            if response.status_code >= 400:
                logger.error(f"SMS request failed with {response.status_code}: {response.text}")
                return False
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            errors = payload.get("response", {}).get("errors") if isinstance(payload, dict) else None
            if errors:
                logger.error(f"SMS gateway reported errors: {errors}")
                return False
            return True
        except httpx.HTTPError as e:
            logger.error(f"SMS request error: {e}")
            return False
        finally:
            if self.client is None:
                client.close()


def notify_course_assignments(
    gateway: SmsGateway,
    phone: Optional[str],
    course_titles: Dict[str, str],
    course_ids: Iterable[str],
    link_for_course: Callable[[str], str],
) -> int:
    """Text one login link per newly assigned course; returns the number sent."""
    course_ids = list(course_ids)
    if not phone or not course_ids:
        return 0
    sent = 0
    for course_id in course_ids:
        title = course_titles.get(course_id) or FALLBACK_COURSE_TITLE
        if gateway.send(phone, course_assignment_message(title, link_for_course(course_id))):
            sent += 1
    return sent
