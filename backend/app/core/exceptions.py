"""
Error taxonomy for CourseTrack LMS.

Services raise these; the API layer turns them into JSON error responses
with the status code and machine-readable code carried by each class.
"""

from typing import Optional


class ProgressError(Exception):
    """Base error for catalog and progress operations."""

    status_code: int = 400
    code: str = "progress_error"
    default_message: str = "Progress operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ProgressError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class CourseNotFound(NotFoundError):
    code = "course_not_found"
    default_message = "Course not found"


class ChapterNotFound(NotFoundError):
    code = "chapter_not_found"
    default_message = "Chapter not found"


class QuestionNotFound(NotFoundError):
    code = "question_not_found"
    default_message = "Question not found"


class ProgressNotFound(NotFoundError):
    code = "progress_not_found"
    default_message = "Progress not found. User is not enrolled in this course."


class NotEnrolled(ProgressError):
    status_code = 403
    code = "not_enrolled"
    default_message = "Not enrolled in this course"


class AlreadyEnrolled(ProgressError):
    status_code = 400
    code = "already_enrolled"
    default_message = "Already enrolled in this course"


class CourseNotPublished(ProgressError):
    status_code = 403
    code = "course_not_published"
    default_message = "Course is not available for enrollment"


class Unauthorized(ProgressError):
    status_code = 403
    code = "unauthorized"
    default_message = "Admin access required"


class ValidationError(ProgressError):
    status_code = 422
    code = "validation_error"
    default_message = "Invalid request"


class PersistenceConflict(ProgressError):
    """Raised when a progress write keeps losing to concurrent writers."""

    status_code = 409
    code = "persistence_conflict"
    default_message = "Progress was modified concurrently, please retry"
