"""
Customer user management.

Users belong to customers through membership entries on the user. Adding
or updating a membership replaces it wholesale; every course that was not
assigned before triggers an SMS with a magic login link.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import String, cast
from sqlalchemy.orm import Session

from courseportal.core.errors import NotFound, ValidationFailed
from courseportal.core.security import get_password_hash
from courseportal.models.customer import Customer
from courseportal.models.user import PortalUser
from courseportal.schemas.customer import CustomerUserCreate, CustomerUserResponse, CustomerUserUpdate
from courseportal.services.decoding import decode_customer_memberships, pick_title
from courseportal.services.directory import CourseDirectory
from courseportal.services.magic_links import MagicLinkService
from courseportal.services.notifications import (
    FALLBACK_COURSE_TITLE,
    SmsGateway,
    notify_course_assignments,
)


logger = logging.getLogger(__name__)


def replace_membership(
    memberships: List[Dict[str, Any]],
    customer_id: str,
    customer_name: Optional[str],
    roles: List[str],
    assigned_course_ids: List[str],
) -> List[Dict[str, Any]]:
    updated = [
        entry for entry in memberships
        if not (isinstance(entry, dict) and entry.get("customer_id") == customer_id)
    ]
    updated.append({
        "customer_id": customer_id,
        "customer_name": customer_name,
        "roles": list(dict.fromkeys(roles)),
        "assigned_course_ids": list(dict.fromkeys(assigned_course_ids)),
    })
    return updated


def to_response(user: PortalUser, customer_id: str) -> CustomerUserResponse:
    membership = next(
        (entry for entry in decode_customer_memberships(user.customer_memberships) if entry.customer_id == customer_id),
        None,
    )
    return CustomerUserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        status=user.status,
        roles=membership.roles if membership else [],
        assigned_course_ids=membership.assigned_course_ids if membership else [],
    )


class CustomerUserService:
    def __init__(self, db: Session, gateway: Optional[SmsGateway] = None):
        self.db = db
        self.gateway = gateway or SmsGateway()

    def _customer(self, customer_id: str) -> Customer:
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if customer is None:
            raise NotFound("Customer not found.")
        return customer

    def list_users(self, customer_id: str) -> List[CustomerUserResponse]:
        candidates = self.db.query(PortalUser).filter(
            cast(PortalUser.customer_id_refs, String).like(f'%"{customer_id}"%')
        ).order_by(PortalUser.email).all()
        return [
            to_response(user, customer_id) for user in candidates
            if any(m.customer_id == customer_id for m in decode_customer_memberships(user.customer_memberships))
        ]

    def _apply_membership(
        self,
        user: PortalUser,
        customer: Customer,
        roles: List[str],
        assigned_course_ids: List[str],
    ) -> List[str]:
        """Replace the membership for ``customer``; returns the newly assigned course ids."""
        previous = next(
            (m for m in decode_customer_memberships(user.customer_memberships) if m.customer_id == customer.id),
            None,
        )
        previous_courses = previous.assigned_course_ids if previous else []
        user.customer_memberships = replace_membership(
            list(user.customer_memberships or []),
            customer.id,
            customer.company_name,
            roles,
            assigned_course_ids,
        )
        refs = list(user.customer_id_refs or [])
        if customer.id not in refs:
            refs.append(customer.id)
        user.customer_id_refs = refs
        return [course_id for course_id in dict.fromkeys(assigned_course_ids) if course_id not in previous_courses]

    def _notify(self, user: PortalUser, added_course_ids: List[str]) -> int:
        if not added_course_ids or not user.phone:
            return 0
        titles = {
            course.id: pick_title(course.title, FALLBACK_COURSE_TITLE)
            for course in CourseDirectory(self.db).list_by_ids(added_course_ids)
        }
        links = MagicLinkService(self.db)
        return notify_course_assignments(
            self.gateway,
            user.phone,
            titles,
            added_course_ids,
            lambda course_id: links.login_url(user.id, course_id),
        )

    def create_user(self, customer_id: str, data: CustomerUserCreate) -> Tuple[CustomerUserResponse, bool]:
        """Add a user to a customer; returns the user and whether a new account was made."""
        customer = self._customer(customer_id)
        email = data.email.strip().lower()
        user = self.db.query(PortalUser).filter(PortalUser.email == email).first()
        created = user is None
        if created:
            if not data.password:
                raise ValidationFailed("The user does not exist. A password is required for new users.")
            user = PortalUser(
                email=email,
                hashed_password=get_password_hash(data.password),
                company_memberships=[],
                customer_memberships=[],
                customer_id_refs=[],
            )
            self.db.add(user)

        user.first_name = data.first_name
        user.last_name = data.last_name
        user.phone = data.phone
        user.status = data.status.value
        added = self._apply_membership(
            user, customer, [role.value for role in data.roles], data.assigned_course_ids,
        )
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.id} added to customer {customer_id} (new account: {created})")

        self._notify(user, added)
        return to_response(user, customer_id), created

    def update_user(self, customer_id: str, user_id: str, data: CustomerUserUpdate) -> CustomerUserResponse:
        customer = self._customer(customer_id)
        user = self.db.query(PortalUser).filter(PortalUser.id == user_id).first()
        if user is None:
            raise NotFound("User not found.")

        for field in ("first_name", "last_name", "phone"):
            value = getattr(data, field)
            if value is not None:
                setattr(user, field, value)
        if data.status is not None:
            user.status = data.status.value
        added = self._apply_membership(
            user, customer, [role.value for role in data.roles], data.assigned_course_ids,
        )
        self.db.commit()
        self.db.refresh(user)

        self._notify(user, added)
        return to_response(user, customer_id)

    def remove_user(self, customer_id: str, user_id: str) -> bool:
        """Drop the membership; returns True when the user had none left and was deleted."""
        user = self.db.query(PortalUser).filter(PortalUser.id == user_id).first()
        if user is None:
            raise NotFound("User not found.")

        remaining = [
            entry for entry in user.customer_memberships or []
            if not (isinstance(entry, dict) and entry.get("customer_id") == customer_id)
        ]
        # Company staff keep their account even without customer memberships.
        if not remaining and not user.company_memberships:
            self.db.delete(user)
            self.db.commit()
            logger.info(f"User {user_id} deleted after leaving customer {customer_id}")
            return True

        user.customer_memberships = remaining
        user.customer_id_refs = [ref for ref in user.customer_id_refs or [] if ref != customer_id]
        self.db.commit()
        return False
