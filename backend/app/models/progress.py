"""
Progress tracking models for CourseTrack LMS.

Defines UserProgress and its nested SectionProgress, UnitProgress,
ChapterProgress and QuestionProgress nodes. Only nodes a learner has touched
(or that were seeded at enrollment) exist; a missing node means "not started".

Catalog ids are stored as plain integers rather than foreign keys so that
entries outlive catalog deletions and can be detected as stale.
"""

from datetime import datetime
from typing import Optional, List, Iterator, Tuple
from enum import Enum
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text, ForeignKey,
    UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class ProgressStatus(str, Enum):
    """Status of user progress in a course."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class UserProgress(Base):
    """
    One learner's completion state for one course.

    ``overall_progress``, ``completed`` and ``status`` are derived by the
    aggregator and never authoritative. ``version`` guards the record against
    concurrent writers: every mutation touches this row, so a writer working
    from stale state fails at flush time instead of overwriting.
    """
    __tablename__ = "user_progress"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # User and course relationship
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), nullable=False)

    # Derived progress
    status: Mapped[str] = mapped_column(
        String(20),
        default=ProgressStatus.NOT_STARTED.value,
        nullable=False
    )
    overall_progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Last viewed chapter
    current_chapter_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Timestamps
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    last_accessed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    user = relationship("User", back_populates="progress_records")
    course = relationship("Course", back_populates="progress_records")
    sections_progress = relationship(
        "SectionProgress",
        back_populates="user_progress",
        order_by="SectionProgress.id",
        cascade="all, delete-orphan"
    )

    # Table constraints
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_user_course_progress"),
        CheckConstraint("overall_progress >= 0 AND overall_progress <= 100", name="check_overall_progress"),
        Index("idx_user_progress_status", "user_id", "status"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<UserProgress(user_id={self.user_id}, course_id={self.course_id}, progress={self.overall_progress}%)>"

    def touch(self, when: datetime) -> None:
        self.last_accessed_at = when

    def find_section(self, section_id: int) -> Optional["SectionProgress"]:
        return next((sp for sp in self.sections_progress if sp.section_id == section_id), None)

    def ensure_section(self, section_id: int) -> "SectionProgress":
        section_progress = self.find_section(section_id)
        if section_progress is None:
            section_progress = SectionProgress(section_id=section_id, completed=False)
            self.sections_progress.append(section_progress)
        return section_progress

    def ensure_chapter(
        self,
        section_id: int,
        unit_id: int,
        chapter_id: int
    ) -> Tuple["SectionProgress", "UnitProgress", "ChapterProgress"]:
        """Find the chapter's progress chain, creating any missing link."""
        section_progress = self.ensure_section(section_id)
        unit_progress = section_progress.ensure_unit(unit_id)
        chapter_progress = unit_progress.ensure_chapter(chapter_id)
        return section_progress, unit_progress, chapter_progress

    def iter_chapters(self) -> Iterator[Tuple["SectionProgress", "UnitProgress", "ChapterProgress"]]:
        for section_progress in self.sections_progress:
            for unit_progress in section_progress.units_progress:
                for chapter_progress in unit_progress.chapters_progress:
                    yield section_progress, unit_progress, chapter_progress


class SectionProgress(Base):
    __tablename__ = "section_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_progress_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_progress.id"), nullable=False)
    section_id: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user_progress = relationship("UserProgress", back_populates="sections_progress")
    units_progress = relationship(
        "UnitProgress",
        back_populates="section_progress",
        order_by="UnitProgress.id",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("user_progress_id", "section_id", name="uq_section_progress_node"),
    )

    def __repr__(self) -> str:
        return f"<SectionProgress(section_id={self.section_id}, completed={self.completed})>"

    def find_unit(self, unit_id: int) -> Optional["UnitProgress"]:
        return next((up for up in self.units_progress if up.unit_id == unit_id), None)

    def ensure_unit(self, unit_id: int) -> "UnitProgress":
        unit_progress = self.find_unit(unit_id)
        if unit_progress is None:
            unit_progress = UnitProgress(unit_id=unit_id, completed=False)
            self.units_progress.append(unit_progress)
        return unit_progress


class UnitProgress(Base):
    __tablename__ = "unit_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    section_progress_id: Mapped[int] = mapped_column(Integer, ForeignKey("section_progress.id"), nullable=False)
    unit_id: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    section_progress = relationship("SectionProgress", back_populates="units_progress")
    chapters_progress = relationship(
        "ChapterProgress",
        back_populates="unit_progress",
        order_by="ChapterProgress.id",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("section_progress_id", "unit_id", name="uq_unit_progress_node"),
    )

    def __repr__(self) -> str:
        return f"<UnitProgress(unit_id={self.unit_id}, completed={self.completed})>"

    def find_chapter(self, chapter_id: int) -> Optional["ChapterProgress"]:
        return next((cp for cp in self.chapters_progress if cp.chapter_id == chapter_id), None)

    def ensure_chapter(self, chapter_id: int) -> "ChapterProgress":
        chapter_progress = self.find_chapter(chapter_id)
        if chapter_progress is None:
            chapter_progress = ChapterProgress(chapter_id=chapter_id, completed=False, score=0)
            self.chapters_progress.append(chapter_progress)
        return chapter_progress


class ChapterProgress(Base):
    """
    Completion state of one chapter. ``completed`` is either set explicitly
    (text/video/audio, or a passed quiz) or derived from having answered every
    question.
    """
    __tablename__ = "chapter_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    unit_progress_id: Mapped[int] = mapped_column(Integer, ForeignKey("unit_progress.id"), nullable=False)
    chapter_id: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_attempted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    unit_progress = relationship("UnitProgress", back_populates="chapters_progress")
    questions_progress = relationship(
        "QuestionProgress",
        back_populates="chapter_progress",
        order_by="QuestionProgress.id",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("unit_progress_id", "chapter_id", name="uq_chapter_progress_node"),
        CheckConstraint("score >= 0 AND score <= 100", name="check_chapter_score"),
    )

    def __repr__(self) -> str:
        return f"<ChapterProgress(chapter_id={self.chapter_id}, completed={self.completed}, score={self.score})>"

    def find_answer(self, question_id: int) -> Optional["QuestionProgress"]:
        return next((qp for qp in self.questions_progress if qp.question_id == question_id), None)

    def upsert_answer(
        self,
        question_id: int,
        user_answer: str,
        is_correct: bool,
        attempted_at: datetime
    ) -> "QuestionProgress":
        """Record an answer; resubmitting overwrites the previous one."""
        question_progress = self.find_answer(question_id)
        if question_progress is None:
            question_progress = QuestionProgress(question_id=question_id)
            self.questions_progress.append(question_progress)
        question_progress.user_answer = user_answer
        question_progress.is_correct = is_correct
        question_progress.attempted_at = attempted_at
        return question_progress


class QuestionProgress(Base):
    __tablename__ = "question_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    chapter_progress_id: Mapped[int] = mapped_column(Integer, ForeignKey("chapter_progress.id"), nullable=False)
    question_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_answer: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    attempted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    chapter_progress = relationship("ChapterProgress", back_populates="questions_progress")

    __table_args__ = (
        UniqueConstraint("chapter_progress_id", "question_id", name="uq_question_progress_node"),
    )

    def __repr__(self) -> str:
        return f"<QuestionProgress(question_id={self.question_id}, is_correct={self.is_correct})>"
