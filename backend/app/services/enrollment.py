"""
Enrollment manager: creates the one progress record per (learner, course).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AlreadyEnrolled, CourseNotPublished, NotFoundError
from app.models.course import Course
from app.models.progress import UserProgress, ProgressStatus
from app.models.user import User
from app.services import catalog, progress_store
from app.services.aggregator import recompute_progress


logger = logging.getLogger(__name__)


def seed_progress_tree(course: Course, progress: UserProgress) -> None:
    """Mirror the catalog tree into ``progress``, every chapter not completed."""
    for section in course.sections:
        section_progress = progress.ensure_section(section.id)
        for unit in section.units:
            unit_progress = section_progress.ensure_unit(unit.id)
            for chapter in unit.chapters:
                unit_progress.ensure_chapter(chapter.id)


@dataclass
class EnrollmentStatus:
    """Stored snapshot of a learner's standing in a course."""
    course_id: int
    enrolled: bool
    overall_progress: Optional[int] = None
    completed: Optional[bool] = None
    last_accessed_at: Optional[datetime] = None


def _create_enrollment(db: Session, learner_id: int, course_id: int) -> UserProgress:
    course = catalog.get_course(db, course_id)
    if not course.is_published:
        raise CourseNotPublished()

    learner = db.get(User, learner_id)
    if learner is None:
        raise NotFoundError("User not found")

    if progress_store.load_progress(db, learner_id, course.id) is not None:
        raise AlreadyEnrolled()

    progress = UserProgress(
        user_id=learner_id,
        course_id=course.id,
        status=ProgressStatus.NOT_STARTED.value,
        overall_progress=0,
        completed=False
    )
    if settings.SEED_PROGRESS_ON_ENROLL:
        seed_progress_tree(course, progress)

    recompute_progress(course, progress, accessed_at=progress_store.utcnow())
    db.add(progress)

    learner.add_enrolled_course(course.id)
    course.enrolled_count += 1

    logger.info(f"User {learner_id} enrolled in course {course.id}")
    return progress


def enroll(db: Session, learner_id: int, course_id: int) -> UserProgress:
    """
    Enroll a learner in a published course.

    Raises:
        CourseNotFound: if the course does not exist
        CourseNotPublished: if the course is not open for enrollment
        NotFoundError: if the learner does not exist
        AlreadyEnrolled: if the learner already has a record for the course
    """
    return progress_store.commit_with_retry(db, _create_enrollment, learner_id, course_id)


def enrollment_status(db: Session, learner_id: int, course_id: int) -> EnrollmentStatus:
    # Stored values, no recompute
    progress = db.query(UserProgress).filter(
        UserProgress.user_id == learner_id,
        UserProgress.course_id == course_id
    ).first()
    if progress is None:
        return EnrollmentStatus(course_id=course_id, enrolled=False)
    return EnrollmentStatus(
        course_id=course_id,
        enrolled=True,
        overall_progress=progress.overall_progress,
        completed=progress.completed,
        last_accessed_at=progress.last_accessed_at
    )
