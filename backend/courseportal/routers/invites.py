"""
Course invite router.

Customer admins create invite codes; new learners sign up with them and
existing learners redeem them.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from courseportal.core.database import get_db
from courseportal.routers.auth import get_portal_context
from courseportal.schemas.user import (
    InviteCreate,
    InviteCreated,
    InviteSignup,
    InviteRedeem,
    InviteRedeemed,
    SignInToken,
)
from courseportal.services.context import PortalContext
from courseportal.services.invites import InviteService


router = APIRouter()


@router.post("/", response_model=InviteCreated, status_code=status.HTTP_201_CREATED)
async def create_invite(
    payload: InviteCreate,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Create an invite code for one of a customer's courses.
    """
    invite = InviteService(db).create(context, payload.course_id, payload.customer_id)
    return {"code": invite.code}


@router.post("/signup", response_model=SignInToken, status_code=status.HTTP_201_CREATED)
async def signup_with_invite(
    payload: InviteSignup,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Create a learner account from an invite code.
    """
    token = InviteService(db).signup(payload.code, payload.email, payload.password, payload.phone)
    return {"token": token}


@router.post("/redeem", response_model=InviteRedeemed)
async def redeem_invite(
    payload: InviteRedeem,
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Add the invite's course to the current user's customer membership.
    """
    invite = InviteService(db).redeem(context, payload.code)
    return {"ok": True, "customer_id": invite.customer_id, "course_id": invite.course_id}
