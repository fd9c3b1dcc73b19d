"""
Database models for CourseTrack LMS.

This module contains all SQLAlchemy models for the application:
- User model for identity and enrollment lists
- Course models for the catalog tree
- Progress models for tracking learner completion
"""

from app.core.database import Base

# Import all models to ensure they're registered with SQLAlchemy
from .user import User
from .course import Course, Section, Unit, Chapter, Question
from .progress import (
    UserProgress, SectionProgress, UnitProgress, ChapterProgress, QuestionProgress
)

# Export all models
__all__ = [
    "Base",
    "User",
    "Course",
    "Section",
    "Unit",
    "Chapter",
    "Question",
    "UserProgress",
    "SectionProgress",
    "UnitProgress",
    "ChapterProgress",
    "QuestionProgress"
]
