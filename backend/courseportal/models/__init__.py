"""
Database models for the course portal.

This module contains all SQLAlchemy models for the application:
- Course and module content
- Customers (tenants)
- Portal users and their memberships
- Progress and completion records
- Diploma templates
- Invite codes and magic login links
"""

from courseportal.core.database import Base

# Import all models to ensure they're registered with SQLAlchemy
from .course import Course, CourseModule, CourseStatus, ExpirationType, ModuleType
from .customer import Customer, CustomerStatus
from .user import PortalUser, UserStatus, CompanyRole, CustomerRole
from .progress import CourseProgress, CourseCompletion
from .diploma import DiplomaTemplate
from .invite import CourseInvite, MagicLink

__all__ = [
    "Base",
    "Course",
    "CourseModule",
    "CourseStatus",
    "ExpirationType",
    "ModuleType",
    "Customer",
    "CustomerStatus",
    "PortalUser",
    "UserStatus",
    "CompanyRole",
    "CustomerRole",
    "CourseProgress",
    "CourseCompletion",
    "DiplomaTemplate",
    "CourseInvite",
    "MagicLink",
]
