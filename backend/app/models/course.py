"""
Course catalog models for CourseTrack LMS.

Defines Course, Section, Unit, Chapter and Question models for the
authored content tree. The progress core only reads these.
"""

from datetime import datetime
from typing import Optional, List
from enum import Enum
from sqlalchemy import (
    Integer, String, DateTime, Text, ForeignKey, Index, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class ContentStatus(str, Enum):
    """Status of content items."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ChapterType(str, Enum):
    """Kinds of chapter content."""
    TEXT = "text"
    VIDEO = "video"
    AUDIO = "audio"
    QUIZ = "quiz"


class QuestionType(str, Enum):
    """Kinds of quiz questions."""
    MULTIPLE_CHOICE = "multiple-choice"
    FILL_BLANK = "fill-blank"
    FREE_TEXT = "free-text"


def normalize_answer(value: Optional[str]) -> str:
    """Answers compare trimmed and case-insensitively."""
    return (value or "").strip().lower()


class Course(Base):
    """
    Course model, the root of the catalog tree.
    """
    __tablename__ = "courses"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Basic information
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Publishing and visibility
    status: Mapped[str] = mapped_column(
        String(20),
        default=ContentStatus.DRAFT.value,
        nullable=False
    )

    # Statistics
    enrolled_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Author information
    author_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relationships
    sections = relationship(
        "Section",
        back_populates="course",
        order_by="Section.order_index",
        cascade="all, delete-orphan"
    )
    progress_records = relationship("UserProgress", back_populates="course", cascade="all, delete-orphan")

    # Table constraints
    __table_args__ = (
        CheckConstraint("enrolled_count >= 0", name="check_course_enrolled_positive"),
        Index("idx_course_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, title='{self.title}')>"

    @property
    def is_published(self) -> bool:
        return self.status == ContentStatus.PUBLISHED.value


class Section(Base):
    """
    Section model, an ordered group of units within a course.
    """
    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    course = relationship("Course", back_populates="sections")
    units = relationship(
        "Unit",
        back_populates="section",
        order_by="Unit.order_index",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_section_course_order", "course_id", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<Section(id={self.id}, title='{self.title}', course_id={self.course_id})>"


class Unit(Base):
    """
    Unit model, an ordered group of chapters within a section.
    """
    __tablename__ = "units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    section_id: Mapped[int] = mapped_column(Integer, ForeignKey("sections.id"), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    section = relationship("Section", back_populates="units")
    chapters = relationship(
        "Chapter",
        back_populates="unit",
        order_by="Chapter.order_index",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_unit_section_order", "section_id", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<Unit(id={self.id}, title='{self.title}', section_id={self.section_id})>"


class Chapter(Base):
    """
    Chapter model. Text, video and audio chapters are completed by viewing;
    quiz chapters are completed by answering their questions.
    """
    __tablename__ = "chapters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(
        String(20),
        default=ChapterType.TEXT.value,
        nullable=False
    )
    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Content
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    media_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)  # video or audio source

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    unit = relationship("Unit", back_populates="chapters")
    questions = relationship(
        "Question",
        back_populates="chapter",
        order_by="Question.order_index",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "content_type IN ('text', 'video', 'audio', 'quiz')",
            name="check_chapter_content_type"
        ),
        Index("idx_chapter_unit_order", "unit_id", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<Chapter(id={self.id}, title='{self.title}', type='{self.content_type}')>"

    @property
    def is_quiz(self) -> bool:
        return self.content_type == ChapterType.QUIZ.value

    def get_question(self, question_id: int) -> Optional["Question"]:
        return next((q for q in self.questions if q.id == question_id), None)


class Question(Base):
    """
    Question attached to a quiz chapter.
    """
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    chapter_id: Mapped[int] = mapped_column(Integer, ForeignKey("chapters.id"), nullable=False)
    question_type: Mapped[str] = mapped_column(
        String(20),
        default=QuestionType.MULTIPLE_CHOICE.value,
        nullable=False
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)  # multiple-choice only
    correct_answer: Mapped[str] = mapped_column(String(500), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    chapter = relationship("Chapter", back_populates="questions")

    __table_args__ = (
        CheckConstraint(
            "question_type IN ('multiple-choice', 'fill-blank', 'free-text')",
            name="check_question_type"
        ),
        Index("idx_question_chapter_order", "chapter_id", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, chapter_id={self.chapter_id}, type='{self.question_type}')>"

    def check_answer(self, answer: Optional[str]) -> bool:
        """An empty answer is never correct."""
        given = normalize_answer(answer)
        return bool(given) and given == normalize_answer(self.correct_answer)
