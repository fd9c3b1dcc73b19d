"""
Submission handler tests: single answers, quiz batches and chapter completion.
"""
import pytest

from app.core.exceptions import (
    ChapterNotFound, CourseNotFound, NotEnrolled, QuestionNotFound, ValidationError
)
from app.models.progress import ProgressStatus
from app.services import enrollment, progress_store, submission
from tests.factories import chapter_locations


def quiz_location(course):
    return next(loc for loc in chapter_locations(course) if loc.chapter.is_quiz)


def text_location(course):
    return next(loc for loc in chapter_locations(course) if not loc.chapter.is_quiz)


@pytest.mark.unit
class TestSingleAnswer:

    def test_answer_matching_ignores_case_and_whitespace(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)
        question = loc.chapter.questions[0]

        outcome = submission.submit_single_answer(
            db_session, learner.id, scenario_course.id, loc.chapter.id, question.id, " Paris "
        )

        assert outcome.is_correct is True
        answer = outcome.chapter_progress.find_answer(question.id)
        assert answer.user_answer == " Paris "
        assert answer.is_correct is True

    def test_chapter_completes_when_every_question_is_answered(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)
        first, second = loc.chapter.questions

        outcome = submission.submit_single_answer(
            db_session, learner.id, scenario_course.id, loc.chapter.id, first.id, "paris"
        )
        assert outcome.chapter_progress.completed is False
        assert outcome.chapter_progress.score == 0
        assert outcome.overall_progress == 0

        outcome = submission.submit_single_answer(
            db_session, learner.id, scenario_course.id, loc.chapter.id, second.id, "5"
        )
        assert outcome.is_correct is False
        assert outcome.chapter_progress.completed is True
        assert outcome.chapter_progress.score == 50
        assert outcome.unit_progress.completed is False
        assert outcome.section_progress.completed is False
        assert outcome.overall_progress == 50

    def test_resubmission_overwrites_answer(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)
        question = loc.chapter.questions[0]

        submission.submit_single_answer(
            db_session, learner.id, scenario_course.id, loc.chapter.id, question.id, "london"
        )
        outcome = submission.submit_single_answer(
            db_session, learner.id, scenario_course.id, loc.chapter.id, question.id, "paris"
        )

        assert len(outcome.chapter_progress.questions_progress) == 1
        assert outcome.chapter_progress.find_answer(question.id).is_correct is True

    def test_creates_progress_chain_on_sparse_record(self, db_session, learner, grid_course, no_seed):
        first = chapter_locations(grid_course)[0]
        enrollment.enroll(db_session, learner.id, grid_course.id)

        outcome = submission.mark_chapter_complete(
            db_session, learner.id, grid_course.id, first.chapter.id
        )

        assert len(outcome.progress.sections_progress) == 1
        assert outcome.chapter_progress.chapter_id == first.chapter.id
        assert outcome.overall_progress == 8

    def test_blank_answer_is_rejected(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)

        with pytest.raises(ValidationError):
            submission.submit_single_answer(
                db_session, learner.id, scenario_course.id, loc.chapter.id,
                loc.chapter.questions[0].id, "   "
            )

    def test_oversized_answer_is_rejected(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)

        with pytest.raises(ValidationError):
            submission.submit_single_answer(
                db_session, learner.id, scenario_course.id, loc.chapter.id,
                loc.chapter.questions[0].id, "x" * 5000
            )

    def test_unknown_question(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)

        with pytest.raises(QuestionNotFound):
            submission.submit_single_answer(
                db_session, learner.id, scenario_course.id, loc.chapter.id, 9999, "paris"
            )

    def test_requires_enrollment(self, db_session, learner, scenario_course):
        loc = quiz_location(scenario_course)

        with pytest.raises(NotEnrolled):
            submission.submit_single_answer(
                db_session, learner.id, scenario_course.id, loc.chapter.id,
                loc.chapter.questions[0].id, "paris"
            )

    def test_unknown_course(self, db_session, learner, scenario_course):
        loc = quiz_location(scenario_course)

        with pytest.raises(CourseNotFound):
            submission.submit_single_answer(
                db_session, learner.id, 4242, loc.chapter.id, loc.chapter.questions[0].id, "paris"
            )


@pytest.mark.unit
class TestChapterAddressing:

    def test_chapter_from_another_course_is_not_found(self, db_session, learner, scenario_course, grid_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        foreign = chapter_locations(grid_course)[0]

        with pytest.raises(ChapterNotFound):
            submission.mark_chapter_complete(db_session, learner.id, scenario_course.id, foreign.chapter.id)

    def test_path_must_match_catalog(self, db_session, learner, grid_course):
        enrollment.enroll(db_session, learner.id, grid_course.id)
        first, *_, last = chapter_locations(grid_course)

        with pytest.raises(ChapterNotFound):
            submission.mark_chapter_complete(
                db_session, learner.id, grid_course.id, first.chapter.id,
                section_id=last.section.id, unit_id=first.unit.id
            )
        with pytest.raises(ChapterNotFound):
            submission.mark_chapter_complete(
                db_session, learner.id, grid_course.id, first.chapter.id,
                section_id=first.section.id, unit_id=last.unit.id
            )

    def test_id_only_resolves_course(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = text_location(scenario_course)

        outcome = submission.mark_chapter_complete(db_session, learner.id, None, loc.chapter.id)

        assert outcome.progress.course_id == scenario_course.id
        assert outcome.overall_progress == 50

    def test_unknown_chapter_id_only(self, db_session, learner):
        with pytest.raises(ChapterNotFound):
            submission.mark_chapter_complete(db_session, learner.id, None, 4242)

    def test_path_and_id_only_agree(self, db_session, learner, other_learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        enrollment.enroll(db_session, other_learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)
        answers = {q.id: "paris" for q in loc.chapter.questions}

        by_path = submission.submit_quiz_batch(
            db_session, learner.id, scenario_course.id, loc.chapter.id, answers,
            section_id=loc.section.id, unit_id=loc.unit.id
        )
        by_id = submission.submit_quiz_batch(
            db_session, other_learner.id, None, loc.chapter.id, answers
        )

        assert by_path.score == by_id.score == 50
        assert by_path.overall_progress == by_id.overall_progress


@pytest.mark.unit
class TestQuizBatch:

    def test_grades_every_question(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)
        first, second = loc.chapter.questions

        outcome = submission.submit_quiz_batch(
            db_session, learner.id, scenario_course.id, loc.chapter.id, {first.id: "PARIS"}
        )

        assert outcome.total_questions == 2
        assert outcome.correct_answers == 1
        assert outcome.score == 50
        assert outcome.passed is False
        unanswered = next(r for r in outcome.results if r.question_id == second.id)
        assert unanswered.user_answer == ""
        assert unanswered.is_correct is False
        assert unanswered.correct_answer == "4"
        assert outcome.chapter_progress.find_answer(second.id).user_answer == ""

    def test_resubmission_is_idempotent(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)
        answers = {q.id: "paris" for q in loc.chapter.questions}

        first = submission.submit_quiz_batch(
            db_session, learner.id, scenario_course.id, loc.chapter.id, answers
        )
        first_answers = sorted(
            (qp.question_id, qp.user_answer, qp.is_correct)
            for qp in first.chapter_progress.questions_progress
        )
        second = submission.submit_quiz_batch(
            db_session, learner.id, scenario_course.id, loc.chapter.id, answers
        )
        second_answers = sorted(
            (qp.question_id, qp.user_answer, qp.is_correct)
            for qp in second.chapter_progress.questions_progress
        )

        assert first.score == second.score
        assert first_answers == second_answers
        assert len(second_answers) == 2

    def test_failed_attempt_never_unmarks_passed_chapter(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)
        first, second = loc.chapter.questions

        passed = submission.submit_quiz_batch(
            db_session, learner.id, scenario_course.id, loc.chapter.id,
            {first.id: "paris", second.id: "4"}
        )
        assert passed.passed is True
        assert passed.chapter_progress.completed is True

        failed = submission.submit_quiz_batch(
            db_session, learner.id, scenario_course.id, loc.chapter.id,
            {first.id: "rome", second.id: "5"}
        )
        assert failed.passed is False
        assert failed.score == 0
        assert failed.chapter_progress.completed is True
        assert failed.chapter_progress.score == 0
        assert failed.overall_progress == 50

    def test_answers_for_foreign_questions_are_rejected(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)
        loc = quiz_location(scenario_course)

        with pytest.raises(ValidationError):
            submission.submit_quiz_batch(
                db_session, learner.id, scenario_course.id, loc.chapter.id, {9999: "paris"}
            )

    def test_chapter_without_questions(self, db_session, learner, make_course):
        course = make_course([[[[]]]])
        enrollment.enroll(db_session, learner.id, course.id)
        loc = chapter_locations(course)[0]

        with pytest.raises(QuestionNotFound):
            submission.submit_quiz_batch(db_session, learner.id, course.id, loc.chapter.id, {})

    def test_scenario_text_then_failed_then_passed_quiz(self, db_session, learner, scenario_course):
        progress = enrollment.enroll(db_session, learner.id, scenario_course.id)
        assert progress.overall_progress == 0
        text = text_location(scenario_course)
        quiz = quiz_location(scenario_course)
        first, second = quiz.chapter.questions

        completion = submission.mark_chapter_complete(
            db_session, learner.id, scenario_course.id, text.chapter.id
        )
        assert completion.completed is True
        assert completion.chapter_progress.score == 100
        assert completion.overall_progress == 50

        failed = submission.submit_quiz_batch(
            db_session, learner.id, scenario_course.id, quiz.chapter.id,
            {first.id: "paris", second.id: "5"}
        )
        assert failed.score == 50
        assert failed.passed is False
        assert failed.chapter_progress.completed is False
        assert failed.overall_progress == 50
        assert failed.course_completed is False

        passed = submission.submit_quiz_batch(
            db_session, learner.id, scenario_course.id, quiz.chapter.id,
            {first.id: "paris", second.id: "4"}
        )
        assert passed.score == 100
        assert passed.passed is True
        assert passed.chapter_progress.completed is True
        assert passed.overall_progress == 100
        assert passed.course_completed is True

        record = progress_store.load_progress(db_session, learner.id, scenario_course.id)
        assert record.status == ProgressStatus.COMPLETED.value
        assert record.completed_at is not None
        assert all(sp.completed for sp in record.sections_progress)


@pytest.mark.unit
class TestMarkChapterComplete:

    def test_quiz_chapter_cannot_be_marked(self, db_session, learner, scenario_course):
        enrollment.enroll(db_session, learner.id, scenario_course.id)

        with pytest.raises(ValidationError):
            submission.mark_chapter_complete(
                db_session, learner.id, scenario_course.id, quiz_location(scenario_course).chapter.id
            )

    def test_completing_every_chapter_completes_course(self, db_session, learner, grid_course):
        enrollment.enroll(db_session, learner.id, grid_course.id)

        for loc in chapter_locations(grid_course):
            outcome = submission.mark_chapter_complete(
                db_session, learner.id, grid_course.id, loc.chapter.id
            )

        assert outcome.overall_progress == 100
        assert outcome.course_completed is True
        record = progress_store.load_progress(db_session, learner.id, grid_course.id)
        assert all(up.completed for _, up, _ in record.iter_chapters())

    def test_marking_twice_keeps_one_entry(self, db_session, learner, grid_course, no_seed):
        enrollment.enroll(db_session, learner.id, grid_course.id)
        loc = chapter_locations(grid_course)[0]

        submission.mark_chapter_complete(db_session, learner.id, grid_course.id, loc.chapter.id)
        outcome = submission.mark_chapter_complete(db_session, learner.id, grid_course.id, loc.chapter.id)

        assert len(list(outcome.progress.iter_chapters())) == 1
        assert outcome.overall_progress == 8
