"""
Progress store: loading progress records and committing changes to them.

Writes to one record are serialized optimistically. ``UserProgress.version``
makes a flush fail with ``StaleDataError`` when another writer committed the
same record first, and the per-node unique constraints make concurrent
creation of the same node fail with ``IntegrityError``. Either way the whole
operation is re-run against freshly loaded state.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.exceptions import NotEnrolled, PersistenceConflict, ProgressError
from app.models.progress import (
    UserProgress, SectionProgress, UnitProgress, ChapterProgress
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _progress_tree_options():
    return selectinload(UserProgress.sections_progress) \
        .selectinload(SectionProgress.units_progress) \
        .selectinload(UnitProgress.chapters_progress) \
        .selectinload(ChapterProgress.questions_progress)


def load_progress(db: Session, user_id: int, course_id: int) -> Optional[UserProgress]:
    """Load a learner's record for a course with its whole progress tree."""
    return db.query(UserProgress).options(_progress_tree_options()).filter(
        UserProgress.user_id == user_id,
        UserProgress.course_id == course_id
    ).first()


def get_progress_or_raise(
    db: Session,
    user_id: int,
    course_id: int,
    error: Type[ProgressError] = NotEnrolled
) -> UserProgress:
    progress = load_progress(db, user_id, course_id)
    if progress is None:
        raise error()
    return progress


def list_progress(db: Session, user_id: int) -> List[UserProgress]:
    """All of a learner's records, oldest enrollment first."""
    return db.query(UserProgress).options(_progress_tree_options()).filter(
        UserProgress.user_id == user_id
    ).order_by(UserProgress.id).all()


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when ``exc`` comes from a unique constraint (PostgreSQL 23505 or SQLite UNIQUE)."""
    if getattr(exc.orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(exc.orig).lower()


def commit_with_retry(db: Session, operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run ``operation(db, *args, **kwargs)`` and commit, retrying on write conflicts.

    Each retry starts from a rolled back session, so the operation reloads
    every record it touches instead of reusing in-memory state from the
    failed attempt. Business errors and integrity errors other than unique
    conflicts roll back and propagate immediately.

    Raises:
        PersistenceConflict: if every attempt lost to a concurrent writer
    """
    attempts = settings.PROGRESS_WRITE_RETRIES
    last_error: Optional[Exception] = None

    for attempt in range(1, attempts + 1):
        try:
            result = operation(db, *args, **kwargs)
            db.commit()
            return result
        except (StaleDataError, IntegrityError) as exc:
            db.rollback()
            if isinstance(exc, IntegrityError) and not is_unique_violation(exc):
                logger.error(f"Integrity error in {operation.__name__}: {exc.orig}")
                raise
            last_error = exc
            logger.warning(
                f"Progress write conflict in {operation.__name__} "
                f"(attempt {attempt}/{attempts}): {exc.__class__.__name__}"
            )
        except Exception:
            db.rollback()
            raise

    raise PersistenceConflict() from last_error
