"""
Progress router for CourseTrack LMS.

Handles answer and quiz submission, chapter completion, progress views and
the learner's own repair endpoints. Submissions are accepted both by ids in
the request body and by the full course/section/unit/chapter path.
"""

from typing import List, Optional, Dict, Any
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.user import User
from app.routers.auth import get_current_user
from app.schemas.progress import (
    ProgressRecordResponse,
    AnswerSubmission,
    AnswerBody,
    QuizSubmission,
    QuizAnswers,
    ChapterCompletionRequest,
    CurrentChapterUpdate,
    AnswerResult,
    QuizResult,
    ChapterCompletionResult,
    CurrentChapterAck,
    RecalculateReport,
    PruneReport
)
from app.services import maintenance, progress_service, submission


router = APIRouter()

CHAPTER_PATH = "/courses/{course_id}/sections/{section_id}/units/{unit_id}/chapters/{chapter_id}"


@router.get("/", response_model=List[ProgressRecordResponse])
async def get_all_progress(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the current user's progress in every enrolled course.
    """
    return progress_service.get_all_progress(db, current_user.id)


@router.post("/answer", response_model=AnswerResult)
async def submit_answer(
    payload: AnswerSubmission,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> AnswerResult:
    """
    Submit one answer, addressing the chapter by id.
    """
    outcome = submission.submit_single_answer(
        db, current_user.id, payload.course_id,
        payload.chapter_id, payload.question_id, payload.answer
    )
    return AnswerResult.model_validate(outcome)


@router.post("/quiz", response_model=QuizResult)
async def submit_quiz(
    payload: QuizSubmission,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> QuizResult:
    """
    Submit a whole quiz, addressing the chapter by id.
    """
    outcome = submission.submit_quiz_batch(
        db, current_user.id, payload.course_id, payload.chapter_id, payload.answers
    )
    return QuizResult.model_validate(outcome)


@router.post("/complete-chapter", response_model=ChapterCompletionResult)
async def complete_chapter(
    payload: ChapterCompletionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> ChapterCompletionResult:
    """
    Mark a non-quiz chapter as completed, addressing it by id.
    """
    outcome = submission.mark_chapter_complete(
        db, current_user.id, payload.course_id, payload.chapter_id
    )
    return ChapterCompletionResult.model_validate(outcome)


@router.post(CHAPTER_PATH + "/questions/{question_id}/answer", response_model=AnswerResult)
async def submit_answer_at_path(
    course_id: int,
    section_id: int,
    unit_id: int,
    chapter_id: int,
    question_id: int,
    payload: AnswerBody,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> AnswerResult:
    """
    Submit one answer to a question at its full catalog path.
    """
    outcome = submission.submit_single_answer(
        db, current_user.id, course_id, chapter_id, question_id, payload.answer,
        section_id=section_id, unit_id=unit_id
    )
    return AnswerResult.model_validate(outcome)


@router.post(CHAPTER_PATH + "/quiz", response_model=QuizResult)
async def submit_quiz_at_path(
    course_id: int,
    section_id: int,
    unit_id: int,
    chapter_id: int,
    payload: QuizAnswers,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> QuizResult:
    outcome = submission.submit_quiz_batch(
        db, current_user.id, course_id, chapter_id, payload.answers,
        section_id=section_id, unit_id=unit_id
    )
    return QuizResult.model_validate(outcome)


@router.post(CHAPTER_PATH + "/complete", response_model=ChapterCompletionResult)
async def complete_chapter_at_path(
    course_id: int,
    section_id: int,
    unit_id: int,
    chapter_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> ChapterCompletionResult:
    outcome = submission.mark_chapter_complete(
        db, current_user.id, course_id, chapter_id,
        section_id=section_id, unit_id=unit_id
    )
    return ChapterCompletionResult.model_validate(outcome)


@router.post("/recalculate", response_model=RecalculateReport)
async def recalculate_progress(
    course_id: Optional[int] = Query(None, description="Limit to one course"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Recompute the current user's progress for one or all courses.
    """
    report = maintenance.recalculate(db, current_user.id, course_id)
    return {"user_id": current_user.id, "courses": report}


@router.get("/{course_id}", response_model=ProgressRecordResponse)
async def get_course_progress(
    course_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the current user's live progress in a course.
    """
    return progress_service.get_progress(db, current_user.id, course_id)


@router.put("/{course_id}/current-chapter", response_model=CurrentChapterAck)
async def update_current_chapter(
    course_id: int,
    payload: CurrentChapterUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return progress_service.update_current_chapter(db, current_user.id, course_id, payload.chapter_id)


@router.post("/{course_id}/prune", response_model=PruneReport)
async def prune_progress(
    course_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Drop progress entries for content that was removed from the course.
    """
    return maintenance.prune_stale_entries(db, current_user.id, course_id)
