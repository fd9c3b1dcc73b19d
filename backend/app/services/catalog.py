"""
Read-only access to the course catalog.

The catalog is the ground truth for "what exists": every progress operation
locates its chapter and questions here before touching a progress record.
"""

from typing import Iterator, NamedTuple, Optional
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import CourseNotFound, ChapterNotFound, QuestionNotFound
from app.models.course import Course, Section, Unit, Chapter, Question


class ChapterLocation(NamedTuple):
    """A chapter together with the section and unit that contain it."""
    section: Section
    unit: Unit
    chapter: Chapter


def get_course(db: Session, course_id: int) -> Course:
    """
    Load a course with its whole tree (sections, units, chapters, questions).

    Raises:
        CourseNotFound: if no course has this id
    """
    course = db.query(Course).options(
        selectinload(Course.sections)
        .selectinload(Section.units)
        .selectinload(Unit.chapters)
        .selectinload(Chapter.questions)
    ).filter(Course.id == course_id).first()

    if not course:
        raise CourseNotFound(f"Course {course_id} not found")
    return course


def find_course_id_for_chapter(db: Session, chapter_id: int) -> int:
    """
    Resolve the course that owns a chapter, for id-only addressing.

    Raises:
        ChapterNotFound: if the chapter is not part of any course
    """
    course_id = db.query(Section.course_id).join(
        Unit, Unit.section_id == Section.id
    ).join(
        Chapter, Chapter.unit_id == Unit.id
    ).filter(Chapter.id == chapter_id).scalar()

    if course_id is None:
        raise ChapterNotFound(f"Chapter {chapter_id} not found")
    return course_id


def iter_chapters(course: Course) -> Iterator[ChapterLocation]:
    """Walk the course tree in catalog order."""
    for section in course.sections:
        for unit in section.units:
            for chapter in unit.chapters:
                yield ChapterLocation(section, unit, chapter)


def locate_chapter(
    course: Course,
    chapter_id: int,
    section_id: Optional[int] = None,
    unit_id: Optional[int] = None
) -> ChapterLocation:
    """
    Find a chapter anywhere in the course tree.

    When ``section_id``/``unit_id`` are given (path-addressed requests) the
    chapter must sit under exactly that section and unit.

    Raises:
        ChapterNotFound: if the chapter is absent or the path does not match
    """
    for location in iter_chapters(course):
        if location.chapter.id != chapter_id:
            continue
        if section_id is not None and location.section.id != section_id:
            break
        if unit_id is not None and location.unit.id != unit_id:
            break
        return location

    raise ChapterNotFound(f"Chapter {chapter_id} not found in course {course.id}")


def get_question(chapter: Chapter, question_id: int) -> Question:
    question = chapter.get_question(question_id)
    if question is None:
        raise QuestionNotFound(f"Question {question_id} not found in chapter {chapter.id}")
    return question
