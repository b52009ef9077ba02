"""
Core module for the course portal backend.

This module contains core functionality including:
- Configuration management
- Database connections
- Security utilities (JWT, password hashing, one-time codes)
- Domain errors
"""

from .config import settings
from .database import get_db, engine, SessionLocal
from .errors import PortalError
from .security import (
    create_access_token,
    create_custom_token,
    verify_password,
    get_password_hash,
    verify_token
)

__all__ = [
    "settings",
    "get_db",
    "engine",
    "SessionLocal",
    "PortalError",
    "create_access_token",
    "create_custom_token",
    "verify_password",
    "get_password_hash",
    "verify_token"
]
