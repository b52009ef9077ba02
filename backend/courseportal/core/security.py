"""
Security utilities for the course portal.

Acts as the identity provider: password hashing, bearer token issuing
and verification, and the one-time codes used by invites and magic links.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import secrets

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        bool: True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: The plain text password to hash

    Returns:
        str: The hashed password
    """
    return pwd_context.hash(password)


def create_access_token(
    subject: str | Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[Dict[str, Any]] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: The subject of the token (the user id)
        expires_delta: Optional custom expiration time
        additional_claims: Optional additional claims to include in the token

    Returns:
        str: The encoded JWT token
    """
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode: Dict[str, Any] = {"exp": expire}

    if isinstance(subject, str):
        to_encode["sub"] = subject
    elif isinstance(subject, dict):
        to_encode.update(subject)

    if additional_claims:
        to_encode.update(additional_claims)

    to_encode["iat"] = now

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def create_custom_token(user_id: str, claims: Optional[Dict[str, Any]] = None) -> str:
    """
    Create a short-lived sign-in token for a user who has not logged in with a password.

    Used by invite signup and magic-link resolution.
    """
    return create_access_token(
        subject=user_id,
        expires_delta=timedelta(minutes=settings.CUSTOM_TOKEN_EXPIRE_MINUTES),
        additional_claims={**(claims or {}), "type": "custom"},
    )


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a JWT token.

    Args:
        token: The JWT token to verify

    Returns:
        Optional[Dict[str, Any]]: The decoded token payload if valid, None otherwise
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None


def generate_invite_code(length: int = 6) -> str:
    """Generate a human-friendly invite code without ambiguous characters."""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def generate_magic_code() -> str:
    """Generate a lowercase single-use magic login code."""
    return secrets.token_hex(16)
