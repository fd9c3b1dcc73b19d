"""
Builders for catalog trees and users.

A layout is a list of sections, each a list of units, each a list of
chapters. A chapter is either a content type string ("text", "video",
"audio") or a list of correct answers, which makes it a quiz chapter with
one question per answer.
"""
from app.models.course import (
    Course, Section, Unit, Chapter, Question, ContentStatus, ChapterType, QuestionType
)
from app.models.user import User


def _make_chapter(spec, order_index):
    if isinstance(spec, str):
        return Chapter(
            title=f"{spec.title()} chapter {order_index}",
            content_type=spec,
            order_index=order_index
        )
    chapter = Chapter(
        title=f"Quiz {order_index}",
        content_type=ChapterType.QUIZ.value,
        order_index=order_index
    )
    for q_index, correct_answer in enumerate(spec, start=1):
        chapter.questions.append(Question(
            question_type=QuestionType.FILL_BLANK.value,
            question_text=f"Question {q_index}",
            correct_answer=correct_answer,
            order_index=q_index
        ))
    return chapter


def build_course(db, layout, title="Course", status=ContentStatus.PUBLISHED.value):
    course = Course(title=title, description="", status=status)
    for s_index, units in enumerate(layout, start=1):
        section = Section(title=f"Section {s_index}", order_index=s_index)
        for u_index, chapters in enumerate(units, start=1):
            unit = Unit(title=f"Unit {s_index}.{u_index}", order_index=u_index)
            for c_index, spec in enumerate(chapters, start=1):
                unit.chapters.append(_make_chapter(spec, c_index))
            section.units.append(unit)
        course.sections.append(section)
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def build_user(db, username, is_admin=False, hashed_password="unused"):
    user = User(
        email=f"{username}@example.com",
        username=username,
        hashed_password=hashed_password,
        is_admin=is_admin
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def chapter_locations(course):
    """(section, unit, chapter) triples in catalog order."""
    from app.services.catalog import iter_chapters
    return list(iter_chapters(course))
