"""
Completion aggregator.

Recomputes every derived field of a progress record (unit and section
completion, overall percentage, course completion, status) from the catalog
tree and the chapters the learner has completed. It is pure: no database or
clock access, and nothing but the record passed in is modified.

The catalog, not the progress tree, supplies the denominator. A progress
tree only holds the nodes a learner touched, so counting it would shrink
"total" to whatever the learner has seen.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Set, Tuple

from app.models.course import Course
from app.models.progress import UserProgress, ProgressStatus


CatalogIndex = Dict[int, Dict[int, List[int]]]


@dataclass
class CompletionSummary:
    total_chapters: int
    completed_chapters: int
    overall_progress: int


def round_percentage(part: int, whole: int) -> int:
    """part/whole as an integer percentage, rounded half up and clamped to [0, 100]."""
    if whole <= 0:
        return 0
    value = (Decimal(part) * 100 / Decimal(whole)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return max(0, min(100, int(value)))


def build_catalog_index(course: Course) -> CatalogIndex:
    """section id -> unit id -> chapter ids, in catalog order."""
    return {
        section.id: {
            unit.id: [chapter.id for chapter in unit.chapters]
            for unit in section.units
        }
        for section in course.sections
    }


def _completed_paths(progress: UserProgress) -> Set[Tuple[int, int, int]]:
    return {
        (section_progress.section_id, unit_progress.unit_id, chapter_progress.chapter_id)
        for section_progress, unit_progress, chapter_progress in progress.iter_chapters()
        if chapter_progress.completed
    }


def _update_units_and_sections(index: CatalogIndex, progress: UserProgress) -> None:
    for section_progress in progress.sections_progress:
        units_index = index.get(section_progress.section_id)
        if units_index is None:
            # Stale: the section was removed from the catalog.
            continue

        live_units = []
        for unit_progress in section_progress.units_progress:
            chapter_ids = units_index.get(unit_progress.unit_id)
            if chapter_ids is None:
                continue
            live_units.append(unit_progress)

            recorded = [
                cp for cp in unit_progress.chapters_progress
                if cp.chapter_id in chapter_ids
            ]
            done = {cp.chapter_id for cp in recorded if cp.completed}
            unit_progress.completed = bool(recorded) and all(
                chapter_id in done for chapter_id in chapter_ids
            )

        required_units = [unit_id for unit_id, chapter_ids in units_index.items() if chapter_ids]
        done_units = {up.unit_id for up in live_units if up.completed}
        section_progress.completed = (
            bool(live_units)
            and bool(required_units)
            and all(unit_id in done_units for unit_id in required_units)
        )


def _has_activity(index: CatalogIndex, progress: UserProgress) -> bool:
    for section_progress, unit_progress, chapter_progress in progress.iter_chapters():
        chapter_ids = index.get(section_progress.section_id, {}).get(unit_progress.unit_id, [])
        if chapter_progress.chapter_id in chapter_ids and (
            chapter_progress.completed or chapter_progress.last_attempted_at is not None
        ):
            return True
    return False


def recompute_progress(
    course: Course,
    progress: UserProgress,
    accessed_at: Optional[datetime] = None
) -> CompletionSummary:
    """
    Recompute all derived completion state of ``progress`` against ``course``.

    Always a full recomputation; derived values are never patched
    incrementally. Entries whose ids no longer exist in the catalog are
    ignored and left as they are.

    Args:
        course: catalog tree, loaded with sections, units and chapters
        progress: the learner's record for that course
        accessed_at: when given (every mutation), becomes last_accessed_at

    Returns:
        CompletionSummary: chapter totals and the new overall percentage
    """
    if accessed_at is not None:
        progress.touch(accessed_at)

    index = build_catalog_index(course)
    _update_units_and_sections(index, progress)

    completed_paths = _completed_paths(progress)
    total_chapters = 0
    completed_chapters = 0
    for section_id, units_index in index.items():
        for unit_id, chapter_ids in units_index.items():
            for chapter_id in chapter_ids:
                total_chapters += 1
                if (section_id, unit_id, chapter_id) in completed_paths:
                    completed_chapters += 1

    overall = round_percentage(completed_chapters, total_chapters)
    progress.overall_progress = overall
    progress.completed = overall == 100

    if progress.completed:
        progress.status = ProgressStatus.COMPLETED.value
        if progress.completed_at is None:
            progress.completed_at = accessed_at or progress.last_accessed_at
    else:
        progress.completed_at = None
        if completed_chapters > 0 or _has_activity(index, progress):
            progress.status = ProgressStatus.IN_PROGRESS.value
        else:
            progress.status = ProgressStatus.NOT_STARTED.value

    return CompletionSummary(
        total_chapters=total_chapters,
        completed_chapters=completed_chapters,
        overall_progress=overall
    )
