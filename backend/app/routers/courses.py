"""
Courses router for CourseTrack LMS.

Learner-facing course endpoints. Catalog authoring lives elsewhere; this
router only opens a course for the calling learner.
"""

from typing import Dict, Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.user import User
from app.routers.auth import get_current_user
from app.schemas.progress import EnrollmentResponse, EnrollmentStatusResponse
from app.services import enrollment


router = APIRouter()


@router.get("/{course_id}/enrollment-status", response_model=EnrollmentStatusResponse)
async def get_enrollment_status(
    course_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Whether the current user is enrolled, with a short progress snapshot.
    """
    return enrollment.enrollment_status(db, current_user.id, course_id)


@router.post("/{course_id}/enroll", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll_in_course(
    course_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Enroll the current user in a published course.
    """
    progress = enrollment.enroll(db, current_user.id, course_id)
    return {
        "message": "Successfully enrolled in course",
        "progress": progress
    }
