"""
User, membership and authentication schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CompanyMembership(BaseModel):
    company_id: str
    roles: List[str] = Field(default_factory=list)
    display_name: Optional[str] = None


class CustomerMembership(BaseModel):
    customer_id: str
    customer_name: Optional[str] = None
    roles: List[str] = Field(default_factory=list)
    assigned_course_ids: List[str] = Field(default_factory=list)


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: str
    status: str
    company_memberships: List[CompanyMembership]
    customer_memberships: List[CustomerMembership]
    is_system_owner: bool = False
    created_at: Optional[datetime] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class SignInToken(BaseModel):
    token: str


class MagicLinkResolve(BaseModel):
    code: Optional[str] = None


class MagicLinkResult(BaseModel):
    token: str
    redirect: str


class ProfileComplete(BaseModel):
    first_name: str = ""
    last_name: str = ""


class InviteCreate(BaseModel):
    course_id: str = ""
    customer_id: str = ""


class InviteCreated(BaseModel):
    code: str


class InviteSignup(BaseModel):
    code: str = ""
    email: str = ""
    password: str = ""
    phone: str = ""


class InviteRedeem(BaseModel):
    code: str = ""


class InviteRedeemed(BaseModel):
    ok: bool = True
    customer_id: str
    course_id: str
