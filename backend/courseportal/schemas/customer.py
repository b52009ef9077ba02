"""
Customer and customer-user schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from courseportal.models.customer import CustomerStatus
from courseportal.models.user import CustomerRole, UserStatus


class CustomerBase(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    address: str = ""
    zipno: str = ""
    place: str = ""
    vat_number: str = ""
    contact_person: str = ""
    contact_phone: str = ""
    contact_email: str = ""
    status: CustomerStatus = CustomerStatus.ACTIVE
    allow_subunits: bool = False
    parent_customer_id: Optional[str] = None
    parent_customer_name: Optional[str] = None


class CustomerCreate(CustomerBase):
    created_by_company_id: str
    course_ids: List[str] = Field(default_factory=list)


class CustomerUpdate(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address: Optional[str] = None
    zipno: Optional[str] = None
    place: Optional[str] = None
    vat_number: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    status: Optional[CustomerStatus] = None
    allow_subunits: Optional[bool] = None
    parent_customer_id: Optional[str] = None
    parent_customer_name: Optional[str] = None


class CustomerResponse(CustomerBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_by_company_id: str
    course_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CustomerCourses(BaseModel):
    course_ids: List[str] = Field(default_factory=list)


class CustomerUserCreate(BaseModel):
    email: str = Field(..., min_length=3)
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    password: Optional[str] = None
    status: UserStatus = UserStatus.ACTIVE
    roles: List[CustomerRole] = Field(default_factory=lambda: [CustomerRole.USER])
    assigned_course_ids: List[str] = Field(default_factory=list)


class CustomerUserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[UserStatus] = None
    roles: List[CustomerRole] = Field(default_factory=lambda: [CustomerRole.USER])
    assigned_course_ids: List[str] = Field(default_factory=list)


class CustomerUserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: str
    status: str
    roles: List[str]
    assigned_course_ids: List[str]
