"""
API routers for the course portal.

This module contains all API endpoint routers:
- auth: Password login, magic links, current user and profile completion
- invites: Course invite codes and invite signup
- courses: Course and module management, localized course content
- customers: Customers, subunits and their users
- progress: Module completion, quizzes and course completion
- diploma: Diploma PDFs and templates
- dashboard: System-owner metrics
- live: WebSocket read models
"""

from fastapi import APIRouter

# Import individual routers
from .auth import router as auth_router
from .invites import router as invites_router
from .courses import router as courses_router
from .customers import router as customers_router
from .progress import router as progress_router
from .diploma import router as diploma_router
from .dashboard import router as dashboard_router
from .live import router as live_router

# Create main API router
api_router = APIRouter()

# Include all routers with their prefixes
api_router.include_router(
    auth_router,
    prefix="/auth",
    tags=["authentication"]
)

api_router.include_router(
    invites_router,
    prefix="/invites",
    tags=["invites"]
)

api_router.include_router(
    courses_router,
    prefix="/courses",
    tags=["courses"]
)

api_router.include_router(
    customers_router,
    prefix="/customers",
    tags=["customers"]
)

api_router.include_router(
    progress_router,
    prefix="/progress",
    tags=["progress"]
)

api_router.include_router(
    diploma_router,
    prefix="/diploma",
    tags=["diploma"]
)

api_router.include_router(
    dashboard_router,
    prefix="/dashboard",
    tags=["dashboard"]
)

api_router.include_router(
    live_router,
    prefix="/live",
    tags=["live"]
)

# Export all routers
__all__ = [
    "api_router",
    "auth_router",
    "invites_router",
    "courses_router",
    "customers_router",
    "progress_router",
    "diploma_router",
    "dashboard_router",
    "live_router"
]
