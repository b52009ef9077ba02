"""
Per-request caller context.

``PortalContext`` is the one authoritative view of who is asking and
which tenants they belong to. It is built once per request from the
authenticated user and handed to services read-only.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from courseportal.core.config import settings
from courseportal.core.errors import Forbidden
from courseportal.models.user import CompanyRole, CustomerRole, PortalUser
from courseportal.schemas.user import CompanyMembership, CustomerMembership
from courseportal.services.decoding import (
    decode_company_memberships,
    decode_customer_memberships,
)


@dataclass(frozen=True)
class PortalContext:
    user_id: str
    email: str
    company_memberships: Tuple[CompanyMembership, ...] = ()
    customer_memberships: Tuple[CustomerMembership, ...] = ()
    is_system_owner: bool = False

    @classmethod
    def from_user(cls, user: PortalUser) -> "PortalContext":
        company_memberships = tuple(decode_company_memberships(user.company_memberships))
        owner_id = settings.SYSTEM_OWNER_COMPANY_ID
        return cls(
            user_id=user.id,
            email=user.email,
            company_memberships=company_memberships,
            customer_memberships=tuple(decode_customer_memberships(user.customer_memberships)),
            is_system_owner=bool(owner_id) and any(
                membership.company_id == owner_id for membership in company_memberships
            ),
        )

    def company_membership(self, company_id: str) -> Optional[CompanyMembership]:
        for membership in self.company_memberships:
            if membership.company_id == company_id:
                return membership
        return None

    def customer_membership(self, customer_id: str) -> Optional[CustomerMembership]:
        for membership in self.customer_memberships:
            if membership.customer_id == customer_id:
                return membership
        return None

    def has_company_role(self, company_id: str, *roles: CompanyRole) -> bool:
        membership = self.company_membership(company_id)
        if membership is None:
            return False
        if not roles:
            return True
        return any(role.value in membership.roles for role in roles)

    def is_customer_admin(self, customer_id: str) -> bool:
        membership = self.customer_membership(customer_id)
        return membership is not None and CustomerRole.ADMIN.value in membership.roles

    def membership_for_course(self, course_id: str) -> Optional[CustomerMembership]:
        """First customer membership that has ``course_id`` assigned."""
        for membership in self.customer_memberships:
            if course_id in membership.assigned_course_ids:
                return membership
        return None

    def require_company_role(self, company_id: str, *roles: CompanyRole) -> None:
        if self.is_system_owner or self.has_company_role(company_id, *roles):
            return
        raise Forbidden("You do not have access to this company.")

    def require_customer_admin(self, customer_id: str, company_id: Optional[str] = None) -> None:
        """Customer admins and admins/editors of the owning company may manage a customer."""
        if self.is_system_owner or self.is_customer_admin(customer_id):
            return
        if company_id and self.has_company_role(company_id, CompanyRole.ADMIN, CompanyRole.EDITOR):
            return
        raise Forbidden("Customer admin access is required.")

    def require_system_owner(self) -> None:
        if not self.is_system_owner:
            raise Forbidden("System owner access is required.")
