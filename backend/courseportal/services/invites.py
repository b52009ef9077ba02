"""
Course invite codes.

A customer admin creates a short code for one of the customer's
courses. New people sign up with it; existing users redeem it to get the
course added to their membership.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from courseportal.core.errors import Conflict, Gone, NotFound, ValidationFailed
from courseportal.core.security import create_custom_token, generate_invite_code, get_password_hash
from courseportal.models.customer import Customer
from courseportal.models.invite import CourseInvite
from courseportal.models.user import CustomerRole, PortalUser, UserStatus
from courseportal.services.context import PortalContext
from courseportal.services.decoding import pick_title
from courseportal.services.directory import CourseDirectory, CustomerDirectory


logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 8
MIN_PASSWORD_LENGTH = 6


def ensure_norwegian_phone(raw: Optional[str]) -> str:
    """Phone number in ``+47`` form unless it already carries a country code."""
    trimmed = (raw or "").strip()
    if not trimmed:
        return ""
    if trimmed.startswith("+"):
        return trimmed
    digits = "".join(trimmed.split())
    if digits.startswith("0047"):
        return f"+47{digits[4:]}"
    if digits.startswith("47"):
        return f"+{digits}"
    if digits.startswith("0"):
        return f"+47{digits[1:]}"
    return f"+47{digits}"


def upsert_course_membership(
    memberships: List[Dict[str, Any]],
    customer_id: str,
    customer_name: str,
    course_id: str,
) -> List[Dict[str, Any]]:
    """
    Membership list with ``course_id`` added for ``customer_id``.

    The ``user`` role is ensured and assigned courses are deduplicated;
    other memberships are left untouched.
    """
    existing = next(
        (entry for entry in memberships if isinstance(entry, dict) and entry.get("customer_id") == customer_id),
        None,
    )
    roles = [role for role in (existing or {}).get("roles") or [] if isinstance(role, str)]
    if CustomerRole.USER.value not in roles:
        roles.append(CustomerRole.USER.value)
    assigned = [course for course in (existing or {}).get("assigned_course_ids") or [] if isinstance(course, str)]
    if course_id not in assigned:
        assigned.append(course_id)

    updated = [
        entry for entry in memberships
        if not (isinstance(entry, dict) and entry.get("customer_id") == customer_id)
    ]
    updated.append({
        "customer_id": customer_id,
        "customer_name": customer_name if customer_name.strip() else (existing or {}).get("customer_name"),
        "roles": roles,
        "assigned_course_ids": assigned,
    })
    return updated


class InviteService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, context: PortalContext, course_id: str, customer_id: str) -> CourseInvite:
        if not course_id or not customer_id:
            raise ValidationFailed("course_id and customer_id are required.")

        course = CourseDirectory(self.db).get(course_id)
        customer = CustomerDirectory(self.db).get(customer_id)
        context.require_customer_admin(customer_id, customer.created_by_company_id)

        if course_id not in (customer.course_ids or []):
            raise ValidationFailed("The course is not active for this customer.")

        code = None
        for _ in range(MAX_CODE_ATTEMPTS):
            candidate = generate_invite_code()
            if self.db.query(CourseInvite.code).filter(CourseInvite.code == candidate).first() is None:
                code = candidate
                break
        if code is None:
            raise RuntimeError("Could not generate a unique invite code")

        invite = CourseInvite(
            code=code,
            course_id=course_id,
            course_title=pick_title(course.title),
            customer_id=customer_id,
            customer_name=customer.company_name,
            company_id=course.company_id,
            created_by=context.user_id,
            active=True,
        )
        self.db.add(invite)
        self.db.commit()
        self.db.refresh(invite)
        logger.info(f"Invite {code} created for course {course_id} and customer {customer_id}")
        return invite

    def _get_active(self, code: Optional[str]) -> CourseInvite:
        code = (code or "").strip().upper()
        if not code:
            raise ValidationFailed("Missing code.")
        invite = self.db.query(CourseInvite).filter(CourseInvite.code == code).first()
        if invite is None:
            raise NotFound("Invalid code.")
        if not invite.active:
            raise Gone("This code has been deactivated.")
        if not invite.course_id or not invite.customer_id:
            raise ValidationFailed("This code is invalid.")
        return invite

    def _customer_name(self, invite: CourseInvite) -> str:
        customer = self.db.query(Customer).filter(Customer.id == invite.customer_id).first()
        if customer is not None and customer.company_name:
            return customer.company_name
        return invite.customer_name or ""

    def signup(self, code: str, email: str, password: str, phone: str = "") -> str:
        """Create an account from an invite and return a sign-in token."""
        email = (email or "").strip().lower()
        if not (code or "").strip() or not email or not password:
            raise ValidationFailed("Missing code, email or password.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")

        invite = self._get_active(code)
        if self.db.query(PortalUser.id).filter(PortalUser.email == email).first() is not None:
            raise Conflict("The user already exists. Sign in instead.")

        user = PortalUser(
            email=email,
            hashed_password=get_password_hash(password),
            phone=ensure_norwegian_phone(phone),
            first_name="",
            last_name="",
            status=UserStatus.ACTIVE.value,
            company_memberships=[],
            customer_memberships=upsert_course_membership(
                [], invite.customer_id, self._customer_name(invite), invite.course_id,
            ),
            customer_id_refs=[invite.customer_id],
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.id} signed up with invite {invite.code}")

        return create_custom_token(user.id, {
            "signup_source": "course-invite",
            "course_id": invite.course_id,
            "customer_id": invite.customer_id,
        })

    def redeem(self, context: PortalContext, code: str) -> CourseInvite:
        invite = self._get_active(code)
        user = self.db.query(PortalUser).filter(PortalUser.id == context.user_id).first()
        if user is None:
            raise NotFound("User not found.")

        user.customer_memberships = upsert_course_membership(
            list(user.customer_memberships or []),
            invite.customer_id,
            self._customer_name(invite),
            invite.course_id,
        )
        refs = list(user.customer_id_refs or [])
        if invite.customer_id not in refs:
            refs.append(invite.customer_id)
        user.customer_id_refs = refs
        if not user.status:
            user.status = UserStatus.ACTIVE.value
        self.db.commit()
        logger.info(f"Invite {invite.code} redeemed by user {user.id}")
        return invite
