"""
Submission handler: single answers, quiz batches and explicit chapter completion.

All three operations share one contract. The chapter (and question) is
located in the catalog first, then the learner's record is loaded, the
section/unit/chapter progress chain is created on demand, the chapter node is
updated, and the aggregator recomputes everything derived before the record
is committed. A chapter that is complete stays complete.

Chapters can be addressed two ways. Path-addressed calls pass ``section_id``
and ``unit_id`` and the chapter must sit exactly there; id-only calls pass
just the chapter id (and optionally no course id) and the chapter is found by
scanning the course tree.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import QuestionNotFound, ValidationError
from app.models.course import Course, normalize_answer
from app.models.progress import (
    UserProgress, SectionProgress, UnitProgress, ChapterProgress
)
from app.services import catalog, progress_store
from app.services.aggregator import recompute_progress, round_percentage


logger = logging.getLogger(__name__)


@dataclass
class AnswerOutcome:
    is_correct: bool
    chapter_progress: ChapterProgress
    unit_progress: UnitProgress
    section_progress: SectionProgress
    progress: UserProgress

    @property
    def overall_progress(self) -> int:
        return self.progress.overall_progress


@dataclass
class QuestionResult:
    question_id: int
    user_answer: str
    is_correct: bool
    correct_answer: str


@dataclass
class QuizOutcome:
    score: int
    passed: bool
    total_questions: int
    correct_answers: int
    chapter_progress: ChapterProgress
    progress: UserProgress
    results: List[QuestionResult] = field(default_factory=list)

    @property
    def overall_progress(self) -> int:
        return self.progress.overall_progress

    @property
    def course_completed(self) -> bool:
        return self.progress.completed


@dataclass
class CompletionOutcome:
    chapter_progress: ChapterProgress
    progress: UserProgress

    @property
    def completed(self) -> bool:
        return self.chapter_progress.completed

    @property
    def overall_progress(self) -> int:
        return self.progress.overall_progress

    @property
    def course_completed(self) -> bool:
        return self.progress.completed


def _validate_answer(answer, allow_blank: bool = False) -> str:
    if answer is None and allow_blank:
        return ""
    if not isinstance(answer, str):
        raise ValidationError("Answer must be a string")
    if len(answer) > settings.MAX_ANSWER_LENGTH:
        raise ValidationError(f"Answer exceeds {settings.MAX_ANSWER_LENGTH} characters")
    if not allow_blank and not answer.strip():
        raise ValidationError("Answer must not be empty")
    return answer


def _load_course(db: Session, course_id: Optional[int], chapter_id: int) -> Course:
    if course_id is None:
        course_id = catalog.find_course_id_for_chapter(db, chapter_id)
    return catalog.get_course(db, course_id)


def _apply_single_answer(
    db: Session,
    learner_id: int,
    course_id: Optional[int],
    chapter_id: int,
    question_id: int,
    answer: str,
    section_id: Optional[int],
    unit_id: Optional[int],
    submitted_at: datetime
) -> AnswerOutcome:
    course = _load_course(db, course_id, chapter_id)
    location = catalog.locate_chapter(course, chapter_id, section_id, unit_id)
    question = catalog.get_question(location.chapter, question_id)
    progress = progress_store.get_progress_or_raise(db, learner_id, course.id)

    section_progress, unit_progress, chapter_progress = progress.ensure_chapter(
        location.section.id, location.unit.id, location.chapter.id
    )

    is_correct = question.check_answer(answer)
    chapter_progress.upsert_answer(question.id, answer, is_correct, submitted_at)
    chapter_progress.last_attempted_at = submitted_at

    live_ids = {q.id for q in location.chapter.questions}
    answered = [
        qp for qp in chapter_progress.questions_progress
        if qp.question_id in live_ids and normalize_answer(qp.user_answer)
    ]
    total = len(live_ids)
    if len(answered) == total:
        correct = sum(1 for qp in answered if qp.is_correct)
        chapter_progress.score = round_percentage(correct, total)
        chapter_progress.completed = True

    recompute_progress(course, progress, accessed_at=submitted_at)

    return AnswerOutcome(
        is_correct=is_correct,
        chapter_progress=chapter_progress,
        unit_progress=unit_progress,
        section_progress=section_progress,
        progress=progress
    )


def submit_single_answer(
    db: Session,
    learner_id: int,
    course_id: Optional[int],
    chapter_id: int,
    question_id: int,
    answer: str,
    section_id: Optional[int] = None,
    unit_id: Optional[int] = None
) -> AnswerOutcome:
    """
    Record one answer to one question.

    The chapter completes once every question in it has an answer; its score
    is the share of correct answers at that point.

    Raises:
        CourseNotFound, ChapterNotFound, QuestionNotFound: catalog lookups
        NotEnrolled: if the learner has no record for the course
        ValidationError: if the answer is blank or too long
    """
    answer = _validate_answer(answer)
    outcome = progress_store.commit_with_retry(
        db, _apply_single_answer,
        learner_id, course_id, chapter_id, question_id, answer,
        section_id, unit_id, progress_store.utcnow()
    )
    logger.info(
        f"User {learner_id} answered question {question_id} in chapter {chapter_id} "
        f"(correct={outcome.is_correct}, overall={outcome.overall_progress}%)"
    )
    return outcome


def _apply_quiz_batch(
    db: Session,
    learner_id: int,
    course_id: Optional[int],
    chapter_id: int,
    answers: Dict[int, str],
    section_id: Optional[int],
    unit_id: Optional[int],
    submitted_at: datetime
) -> QuizOutcome:
    course = _load_course(db, course_id, chapter_id)
    location = catalog.locate_chapter(course, chapter_id, section_id, unit_id)
    questions = location.chapter.questions
    if not questions:
        raise QuestionNotFound(f"Chapter {chapter_id} has no questions")

    live_ids = {q.id for q in questions}
    unknown = sorted(set(answers) - live_ids)
    if unknown:
        raise ValidationError(f"Questions {unknown} are not part of chapter {chapter_id}")

    progress = progress_store.get_progress_or_raise(db, learner_id, course.id)
    _, _, chapter_progress = progress.ensure_chapter(
        location.section.id, location.unit.id, location.chapter.id
    )

    for question_progress in list(chapter_progress.questions_progress):
        if question_progress.question_id not in live_ids:
            chapter_progress.questions_progress.remove(question_progress)

    results = []
    for question in questions:
        given = answers.get(question.id, "")
        is_correct = question.check_answer(given)
        chapter_progress.upsert_answer(question.id, given, is_correct, submitted_at)
        results.append(QuestionResult(
            question_id=question.id,
            user_answer=given,
            is_correct=is_correct,
            correct_answer=question.correct_answer
        ))

    correct = sum(1 for result in results if result.is_correct)
    score = round_percentage(correct, len(questions))
    passed = score >= settings.QUIZ_PASS_THRESHOLD

    chapter_progress.score = score
    chapter_progress.last_attempted_at = submitted_at
    if passed:
        chapter_progress.completed = True

    recompute_progress(course, progress, accessed_at=submitted_at)

    return QuizOutcome(
        score=score,
        passed=passed,
        total_questions=len(questions),
        correct_answers=correct,
        chapter_progress=chapter_progress,
        progress=progress,
        results=results
    )


def submit_quiz_batch(
    db: Session,
    learner_id: int,
    course_id: Optional[int],
    chapter_id: int,
    answers: Dict[int, str],
    section_id: Optional[int] = None,
    unit_id: Optional[int] = None
) -> QuizOutcome:
    """
    Grade a whole quiz chapter at once.

    Every question in the chapter is graded; a question missing from
    ``answers`` counts as wrong. The chapter completes when the score reaches
    ``QUIZ_PASS_THRESHOLD``; a failed attempt only updates the score and the
    attempt time.

    Raises:
        CourseNotFound, ChapterNotFound: catalog lookups
        QuestionNotFound: if the chapter has no questions
        NotEnrolled: if the learner has no record for the course
        ValidationError: if an answer is malformed or targets a foreign question
    """
    if not isinstance(answers, dict):
        raise ValidationError("Answers must map question ids to answers")
    cleaned = {}
    for question_id, answer in answers.items():
        if not isinstance(question_id, int):
            raise ValidationError(f"Invalid question id: {question_id!r}")
        cleaned[question_id] = _validate_answer(answer, allow_blank=True)

    outcome = progress_store.commit_with_retry(
        db, _apply_quiz_batch,
        learner_id, course_id, chapter_id, cleaned,
        section_id, unit_id, progress_store.utcnow()
    )
    logger.info(
        f"User {learner_id} submitted quiz chapter {chapter_id}: "
        f"score={outcome.score} passed={outcome.passed} overall={outcome.overall_progress}%"
    )
    return outcome


def _apply_chapter_completion(
    db: Session,
    learner_id: int,
    course_id: Optional[int],
    chapter_id: int,
    section_id: Optional[int],
    unit_id: Optional[int],
    completed_at: datetime
) -> CompletionOutcome:
    course = _load_course(db, course_id, chapter_id)
    location = catalog.locate_chapter(course, chapter_id, section_id, unit_id)
    if location.chapter.is_quiz:
        raise ValidationError("Quiz chapters are completed by passing the quiz")

    progress = progress_store.get_progress_or_raise(db, learner_id, course.id)
    _, _, chapter_progress = progress.ensure_chapter(
        location.section.id, location.unit.id, location.chapter.id
    )
    chapter_progress.completed = True
    chapter_progress.score = 100
    chapter_progress.last_attempted_at = completed_at

    recompute_progress(course, progress, accessed_at=completed_at)
    return CompletionOutcome(chapter_progress=chapter_progress, progress=progress)


def mark_chapter_complete(
    db: Session,
    learner_id: int,
    course_id: Optional[int],
    chapter_id: int,
    section_id: Optional[int] = None,
    unit_id: Optional[int] = None
) -> CompletionOutcome:
    """Mark a text, video or audio chapter as completed with full score."""
    outcome = progress_store.commit_with_retry(
        db, _apply_chapter_completion,
        learner_id, course_id, chapter_id, section_id, unit_id,
        progress_store.utcnow()
    )
    logger.info(
        f"User {learner_id} completed chapter {chapter_id} "
        f"(overall={outcome.overall_progress}%, course_completed={outcome.course_completed})"
    )
    return outcome
