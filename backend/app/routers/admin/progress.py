"""
Admin progress router for CourseTrack LMS.

Repair operations on any learner's progress records.
"""

from typing import Optional, Dict, Any
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.models.user import User
from app.schemas.progress import RecalculateReport, PruneReport
from app.services import maintenance


logger = logging.getLogger(__name__)

router = APIRouter()


def _get_learner(db: Session, user_id: int) -> User:
    learner = db.get(User, user_id)
    if learner is None:
        raise NotFoundError(f"User {user_id} not found")
    return learner


@router.post("/{user_id}/recalculate", response_model=RecalculateReport)
async def recalculate_learner_progress(
    user_id: int,
    course_id: Optional[int] = Query(None, description="Limit to one course"),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Recompute a learner's progress, e.g. after a scoring fix.
    """
    learner = _get_learner(db, user_id)
    logger.info(f"Admin recalculation requested for user {learner.id}")
    report = maintenance.recalculate(db, learner.id, course_id)
    return {"user_id": learner.id, "courses": report}


@router.post("/{user_id}/{course_id}/prune", response_model=PruneReport)
async def prune_learner_progress(
    user_id: int,
    course_id: int,
    db: Session = Depends(get_db)
):
    learner = _get_learner(db, user_id)
    return maintenance.prune_stale_entries(db, learner.id, course_id)
