"""
Pydantic schemas for enrollment, submissions and progress views.
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# Progress tree

class QuestionProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: int
    user_answer: str
    is_correct: bool
    attempted_at: Optional[datetime] = None


class ChapterProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    chapter_id: int
    completed: bool
    score: int
    last_attempted_at: Optional[datetime] = None
    questions_progress: List[QuestionProgressResponse] = []


class UnitProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    unit_id: int
    completed: bool
    chapters_progress: List[ChapterProgressResponse] = []


class SectionProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    section_id: int
    completed: bool
    units_progress: List[UnitProgressResponse] = []


class ProgressRecordResponse(BaseModel):
    """A learner's full progress record for one course."""
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    course_id: int
    status: str
    overall_progress: int = Field(ge=0, le=100)
    completed: bool
    current_chapter_id: Optional[int] = None
    started_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    sections_progress: List[SectionProgressResponse] = []


class UnitStatus(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    unit_id: int
    completed: bool


class SectionStatus(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    section_id: int
    completed: bool


# Requests

class AnswerSubmission(BaseModel):
    """Single answer addressed by ids; course_id is looked up when omitted."""
    course_id: Optional[int] = None
    chapter_id: int
    question_id: int
    answer: str


class AnswerBody(BaseModel):
    answer: str


class QuizSubmission(BaseModel):
    course_id: Optional[int] = None
    chapter_id: int
    answers: Dict[int, str] = Field(default_factory=dict, description="question id -> answer")


class QuizAnswers(BaseModel):
    answers: Dict[int, str] = Field(default_factory=dict, description="question id -> answer")


class ChapterCompletionRequest(BaseModel):
    course_id: Optional[int] = None
    chapter_id: int


class CurrentChapterUpdate(BaseModel):
    chapter_id: int


# Results

class AnswerResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_correct: bool
    chapter_progress: ChapterProgressResponse
    unit_progress: UnitStatus
    section_progress: SectionStatus
    overall_progress: int


class QuestionResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: int
    user_answer: str
    is_correct: bool
    correct_answer: str


class QuizResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    score: int
    passed: bool
    total_questions: int
    correct_answers: int
    results: List[QuestionResultResponse]
    chapter_progress: ChapterProgressResponse
    overall_progress: int
    course_completed: bool


class ChapterCompletionResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    completed: bool
    chapter_progress: ChapterProgressResponse
    overall_progress: int
    course_completed: bool


class CurrentChapterAck(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: int
    current_chapter_id: int
    last_accessed_at: Optional[datetime] = None


class RecalculationEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: int
    course_title: str
    old_progress: int
    new_progress: int
    total_chapters: int
    completed_chapters: int


class RecalculateReport(BaseModel):
    user_id: int
    courses: List[RecalculationEntryResponse]


class PruneReport(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: int
    sections_removed: int
    units_removed: int
    chapters_removed: int
    questions_removed: int
    overall_progress: int


class EnrollmentResponse(BaseModel):
    message: str
    progress: ProgressRecordResponse


class EnrollmentStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: int
    enrolled: bool
    overall_progress: Optional[int] = None
    completed: Optional[bool] = None
    last_accessed_at: Optional[datetime] = None
