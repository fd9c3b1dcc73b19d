"""
Repair utilities for progress records.

``recalculate`` re-derives records that may have been written by an older
aggregation formula. ``prune_stale_entries`` removes progress nodes that point
at catalog content deleted after enrollment.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.progress import UserProgress
from app.services import catalog, progress_store
from app.services.aggregator import build_catalog_index, recompute_progress


logger = logging.getLogger(__name__)


@dataclass
class RecalculationEntry:
    course_id: int
    course_title: str
    old_progress: int
    new_progress: int
    total_chapters: int
    completed_chapters: int


@dataclass
class PruneReport:
    course_id: int
    sections_removed: int = 0
    units_removed: int = 0
    chapters_removed: int = 0
    questions_removed: int = 0
    overall_progress: int = 0

    @property
    def total_removed(self) -> int:
        return self.sections_removed + self.units_removed + self.chapters_removed + self.questions_removed


def _recalculate(db: Session, learner_id: int, course_id: Optional[int]) -> List[RecalculationEntry]:
    if course_id is not None:
        records = [progress_store.get_progress_or_raise(db, learner_id, course_id)]
    else:
        records = progress_store.list_progress(db, learner_id)

    report = []
    for progress in records:
        course = catalog.get_course(db, progress.course_id)
        old_progress = progress.overall_progress
        summary = recompute_progress(course, progress)
        report.append(RecalculationEntry(
            course_id=course.id,
            course_title=course.title,
            old_progress=old_progress,
            new_progress=summary.overall_progress,
            total_chapters=summary.total_chapters,
            completed_chapters=summary.completed_chapters
        ))
    return report


def recalculate(db: Session, learner_id: int, course_id: Optional[int] = None) -> List[RecalculationEntry]:
    """
    Force a full recomputation of one or all of a learner's records.

    Raises:
        NotEnrolled: if ``course_id`` is given and the learner has no record for it
    """
    report = progress_store.commit_with_retry(db, _recalculate, learner_id, course_id)
    changed = [entry.course_id for entry in report if entry.old_progress != entry.new_progress]
    logger.info(f"Recalculated {len(report)} record(s) for user {learner_id}; changed: {changed}")
    return report


def _prune(db: Session, learner_id: int, course_id: int) -> PruneReport:
    course = catalog.get_course(db, course_id)
    progress: UserProgress = progress_store.get_progress_or_raise(db, learner_id, course_id)
    index = build_catalog_index(course)
    questions_by_chapter = {
        location.chapter.id: {q.id for q in location.chapter.questions}
        for location in catalog.iter_chapters(course)
    }
    report = PruneReport(course_id=course_id)

    for section_progress in list(progress.sections_progress):
        units_index = index.get(section_progress.section_id)
        if units_index is None:
            progress.sections_progress.remove(section_progress)
            report.sections_removed += 1
            continue

        for unit_progress in list(section_progress.units_progress):
            chapter_ids = units_index.get(unit_progress.unit_id)
            if chapter_ids is None:
                section_progress.units_progress.remove(unit_progress)
                report.units_removed += 1
                continue

            for chapter_progress in list(unit_progress.chapters_progress):
                if chapter_progress.chapter_id not in chapter_ids:
                    unit_progress.chapters_progress.remove(chapter_progress)
                    report.chapters_removed += 1
                    continue

                live_questions = questions_by_chapter.get(chapter_progress.chapter_id, set())
                for question_progress in list(chapter_progress.questions_progress):
                    if question_progress.question_id not in live_questions:
                        chapter_progress.questions_progress.remove(question_progress)
                        report.questions_removed += 1

            # Containers emptied by pruning go too
            if not unit_progress.chapters_progress:
                section_progress.units_progress.remove(unit_progress)
                report.units_removed += 1

        if not section_progress.units_progress:
            progress.sections_progress.remove(section_progress)
            report.sections_removed += 1

    summary = recompute_progress(course, progress, accessed_at=progress_store.utcnow())
    report.overall_progress = summary.overall_progress
    return report


def prune_stale_entries(db: Session, learner_id: int, course_id: int) -> PruneReport:
    """
    Delete progress entries whose section, unit, chapter or question is gone
    from the catalog, then recompute the record.

    Raises:
        CourseNotFound: if the course does not exist
        NotEnrolled: if the learner has no record for the course
    """
    report = progress_store.commit_with_retry(db, _prune, learner_id, course_id)
    logger.info(
        f"Pruned {report.total_removed} stale progress entries for user {learner_id} "
        f"in course {course_id}"
    )
    return report
