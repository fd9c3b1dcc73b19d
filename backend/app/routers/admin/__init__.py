"""
Admin routers for CourseTrack LMS.

This module contains all admin-specific API endpoints:
- progress: repair of any learner's progress records
"""

from fastapi import APIRouter, Depends

from app.core.exceptions import Unauthorized
from app.models.user import User
from app.routers.auth import get_current_user

# Import admin sub-routers
from .progress import router as progress_router


# Dependency to verify admin access
async def get_current_admin_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Verify that the current user has admin privileges.
    """
    if not current_user.is_admin:
        raise Unauthorized()
    return current_user


# Create admin router
admin_router = APIRouter()

# Include all admin sub-routers
admin_router.include_router(
    progress_router,
    prefix="/progress",
    tags=["admin-progress"],
    dependencies=[Depends(get_current_admin_user)]
)


# Export all routers
__all__ = ["admin_router", "get_current_admin_user"]
