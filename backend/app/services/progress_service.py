"""
Progress read path.

Records are never returned as stored: each read re-runs the aggregator
against the current catalog, so chapters added or removed after enrollment
show up in the percentages immediately. Changed derived fields are written
back; reads do not count as learner activity and leave last_accessed_at alone.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import ProgressNotFound
from app.models.course import Course
from app.models.progress import UserProgress
from app.services import catalog, progress_store
from app.services.aggregator import recompute_progress


logger = logging.getLogger(__name__)


@dataclass
class CurrentChapterAck:
    course_id: int
    current_chapter_id: int
    last_accessed_at: Optional[datetime]


def _refresh(db: Session, learner_id: int, course_id: int) -> UserProgress:
    course = catalog.get_course(db, course_id)
    progress = progress_store.get_progress_or_raise(db, learner_id, course_id, error=ProgressNotFound)
    recompute_progress(course, progress)
    return progress


def get_progress(db: Session, learner_id: int, course_id: int) -> UserProgress:
    """
    Get a learner's live progress for one course.

    Raises:
        CourseNotFound: if the course no longer exists
        ProgressNotFound: if the learner is not enrolled
    """
    return progress_store.commit_with_retry(db, _refresh, learner_id, course_id)


def _refresh_all(db: Session, learner_id: int) -> List[UserProgress]:
    records = progress_store.list_progress(db, learner_id)
    courses: Dict[int, Course] = {}
    for progress in records:
        if progress.course_id not in courses:
            courses[progress.course_id] = catalog.get_course(db, progress.course_id)
        recompute_progress(courses[progress.course_id], progress)
    return records


def get_all_progress(db: Session, learner_id: int) -> List[UserProgress]:
    """Live progress for every course the learner is enrolled in."""
    return progress_store.commit_with_retry(db, _refresh_all, learner_id)


def _set_current_chapter(
    db: Session,
    learner_id: int,
    course_id: int,
    chapter_id: int,
    accessed_at: datetime
) -> CurrentChapterAck:
    course = catalog.get_course(db, course_id)
    catalog.locate_chapter(course, chapter_id)
    progress = progress_store.get_progress_or_raise(db, learner_id, course_id)

    progress.current_chapter_id = chapter_id
    recompute_progress(course, progress, accessed_at=accessed_at)
    return CurrentChapterAck(
        course_id=course_id,
        current_chapter_id=chapter_id,
        last_accessed_at=accessed_at
    )


def update_current_chapter(
    db: Session,
    learner_id: int,
    course_id: int,
    chapter_id: int
) -> CurrentChapterAck:
    """
    Remember the chapter the learner is on.

    Raises:
        CourseNotFound, ChapterNotFound: if the chapter is not in the course
        NotEnrolled: if the learner has no record for the course
    """
    ack = progress_store.commit_with_retry(
        db, _set_current_chapter, learner_id, course_id, chapter_id, progress_store.utcnow()
    )
    logger.debug(f"User {learner_id} is on chapter {chapter_id} of course {course_id}")
    return ack
