"""
Authentication router for the course portal.

Handles password login, the current-user projection, magic-link
resolution and first-login profile completion.
"""

from datetime import timedelta
from typing import Dict, Any
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from courseportal.core.database import get_db
from courseportal.core.security import verify_password, create_access_token, verify_token
from courseportal.core.config import settings
from courseportal.models.user import PortalUser
from courseportal.schemas.user import (
    Token,
    UserResponse,
    MagicLinkResolve,
    MagicLinkResult,
    ProfileComplete,
)
from courseportal.services.context import PortalContext
from courseportal.services.magic_links import MagicLinkService


logger = logging.getLogger(__name__)

router = APIRouter()

# OAuth2 scheme for token authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

MIN_NAME_LENGTH = 2


def resolve_user(token: str, db: Session) -> PortalUser:
    """
    Resolve the user behind a bearer token.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = verify_token(token)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    user = db.query(PortalUser).filter(PortalUser.id == user_id).first()
    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    return user


# Dependencies
def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> PortalUser:
    """
    Get current authenticated user from JWT token.
    """
    return resolve_user(token, db)


def get_portal_context(
    current_user: PortalUser = Depends(get_current_user)
) -> PortalContext:
    """
    Caller identity and memberships for the current request.
    """
    return PortalContext.from_user(current_user)


def user_response(user: PortalUser) -> UserResponse:
    context = PortalContext.from_user(user)
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        status=user.status,
        company_memberships=list(context.company_memberships),
        customer_memberships=list(context.customer_memberships),
        is_system_owner=context.is_system_owner,
        created_at=user.created_at,
    )


# Endpoints
@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    OAuth2 compatible login endpoint.
    """
    email = form_data.username.strip().lower()
    user = db.query(PortalUser).filter(PortalUser.email == email).first()

    if not user or not user.hashed_password or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated"
        )

    access_token = create_access_token(
        subject=user.id,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        additional_claims={"email": user.email},
    )
    logger.info(f"User {user.id} logged in")

    return {
        "access_token": access_token,
        "token_type": "bearer"
    }


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: PortalUser = Depends(get_current_user)
) -> UserResponse:
    """
    Get the current user with decoded memberships.
    """
    return user_response(current_user)


@router.post("/magic-link/resolve", response_model=MagicLinkResult)
async def resolve_magic_link(
    payload: MagicLinkResolve,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Exchange a single-use magic login code for a sign-in token.
    """
    token, redirect = MagicLinkService(db).resolve(payload.code)
    return {"token": token, "redirect": redirect}


@router.post("/profile/complete", response_model=UserResponse)
async def complete_profile(
    payload: ProfileComplete,
    current_user: PortalUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> UserResponse:
    """
    Set first and last name on first login.
    """
    first_name = payload.first_name.strip()
    last_name = payload.last_name.strip()
    if len(first_name) < MIN_NAME_LENGTH or len(last_name) < MIN_NAME_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="First and last name must be at least 2 characters"
        )

    current_user.first_name = first_name
    current_user.last_name = last_name
    db.commit()
    db.refresh(current_user)

    return user_response(current_user)
