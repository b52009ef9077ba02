"""
Customers router for the course portal.

Customers (tenants), their subunits, course assignments and users.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from courseportal.core.database import get_db
from courseportal.models.customer import Customer
from courseportal.models.user import CompanyRole
from courseportal.routers.auth import get_portal_context
from courseportal.schemas.customer import (
    CustomerCourses,
    CustomerCreate,
    CustomerResponse,
    CustomerUpdate,
    CustomerUserCreate,
    CustomerUserResponse,
    CustomerUserUpdate,
)
from courseportal.services.context import PortalContext
from courseportal.services.directory import CustomerDirectory
from courseportal.services.users import CustomerUserService
from courseportal.services.watch import ChangeFeed, get_feed


router = APIRouter()

MANAGE_ROLES = (CompanyRole.ADMIN, CompanyRole.EDITOR)


def _managed_customer(db: Session, customer_id: str, context: PortalContext) -> Customer:
    customer = CustomerDirectory(db).get(customer_id)
    context.require_customer_admin(customer.id, customer.created_by_company_id)
    return customer


@router.get("/", response_model=List[CustomerResponse])
async def list_customers(
    company_id: str = Query(..., min_length=1),
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> List[Customer]:
    """
    List the customers created by a company.
    """
    context.require_company_role(company_id)
    return CustomerDirectory(db).list_for_company(company_id)


@router.post("/", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> Customer:
    """
    Create a customer, or a subunit when ``parent_customer_id`` is set.
    """
    if customer_data.parent_customer_id:
        parent = CustomerDirectory(db).get(customer_data.parent_customer_id)
        context.require_customer_admin(parent.id, parent.created_by_company_id)
    else:
        context.require_company_role(customer_data.created_by_company_id, *MANAGE_ROLES)
    return CustomerDirectory(db, feed).create(customer_data)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> Customer:
    """
    Get a customer by id.
    """
    customer = CustomerDirectory(db).get(customer_id)
    if context.customer_membership(customer_id) is None:
        context.require_company_role(customer.created_by_company_id)
    return customer


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    customer_data: CustomerUpdate,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> Customer:
    """
    Update a customer.
    """
    _managed_customer(db, customer_id, context)
    return CustomerDirectory(db, feed).update(customer_id, customer_data)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> Response:
    """
    Delete a customer. Subunits and memberships are left in place.
    """
    customer = CustomerDirectory(db).get(customer_id)
    context.require_company_role(customer.created_by_company_id, CompanyRole.ADMIN)
    CustomerDirectory(db, feed).delete(customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{customer_id}/subunits", response_model=List[CustomerResponse])
async def list_subunits(
    customer_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> List[Customer]:
    """
    List the subunits of a customer.
    """
    _managed_customer(db, customer_id, context)
    return CustomerDirectory(db).list_subunits(customer_id)


@router.put("/{customer_id}/courses", response_model=CustomerResponse)
async def set_customer_courses(
    customer_id: str,
    payload: CustomerCourses,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed)
) -> Customer:
    """
    Replace the set of courses a customer has access to.
    """
    customer = CustomerDirectory(db).get(customer_id)
    context.require_company_role(customer.created_by_company_id, *MANAGE_ROLES)
    return CustomerDirectory(db, feed).set_courses(customer_id, payload.course_ids)


@router.get("/{customer_id}/users", response_model=List[CustomerUserResponse])
async def list_customer_users(
    customer_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> List[CustomerUserResponse]:
    """
    List users with a membership in the customer.
    """
    _managed_customer(db, customer_id, context)
    return CustomerUserService(db).list_users(customer_id)


@router.post("/{customer_id}/users", response_model=CustomerUserResponse)
async def add_customer_user(
    customer_id: str,
    user_data: CustomerUserCreate,
    response: Response,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> CustomerUserResponse:
    """
    Add a user to the customer, creating the account when the email is new.
    """
    _managed_customer(db, customer_id, context)
    user, created = CustomerUserService(db).create_user(customer_id, user_data)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return user


@router.put("/{customer_id}/users/{user_id}", response_model=CustomerUserResponse)
async def update_customer_user(
    customer_id: str,
    user_id: str,
    user_data: CustomerUserUpdate,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> CustomerUserResponse:
    """
    Update a user's profile and replace their membership in the customer.
    """
    _managed_customer(db, customer_id, context)
    return CustomerUserService(db).update_user(customer_id, user_id, user_data)


@router.delete("/{customer_id}/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_customer_user(
    customer_id: str,
    user_id: str,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> Response:
    """
    Remove a user from the customer; the account goes when no memberships remain.
    """
    _managed_customer(db, customer_id, context)
    CustomerUserService(db).remove_user(customer_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
