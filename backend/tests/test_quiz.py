import pytest

from courseportal.schemas.course import Alternative, Question
from courseportal.services.progress import ProgressTracker
from courseportal.services.quiz import (
    CELEBRATION_SECONDS,
    Acknowledged,
    Answering,
    CourseComplete,
    QuizError,
    QuizSession,
    Summary,
    is_correct_answer,
    score_percentage,
)
from tests.test_progress import FakeProgressStore


class FakeScheduler:
    def __init__(self):
        self.scheduled = []
        self.cancelled = 0

    def __call__(self, delay, callback):
        self.scheduled.append((delay, callback))

        def cancel():
            self.cancelled += 1

        return cancel


def make_questions(count):
    return [
        Question(
            id=f"q{index}",
            alternatives=[Alternative(id="a"), Alternative(id="b")],
            correct_answer_ids=["a"],
        )
        for index in range(count)
    ]


def make_session(questions, module_ids=("m1", "m2"), completed=(), scheduler=None):
    store = FakeProgressStore(list(completed))
    tracker = ProgressTracker(store, "user", "course")
    session = QuizSession(questions, "m1", list(module_ids), tracker, scheduler or FakeScheduler())
    return session, store


def answer_all(session, answers):
    for question_id, alternative_id in answers:
        session.select_alternative(question_id, alternative_id)
        session.next()


def test_scoring_helpers():
    question = make_questions(1)[0]
    assert is_correct_answer(question, "a")
    assert not is_correct_answer(question, "b")
    assert not is_correct_answer(question, None)
    assert score_percentage(3, 4) == 75
    assert score_percentage(2, 3) == 67
    assert score_percentage(0, 0) == 0


def test_partial_score_does_not_complete_module():
    session, store = make_session(make_questions(4))

    answer_all(session, [("q0", "a"), ("q1", "a"), ("q2", "b"), ("q3", "a")])

    assert isinstance(session.state, Summary)
    assert session.result.score == 75
    assert session.result.incorrect_question_ids == ["q2"]
    assert not session.result.module_completed
    assert store.saves == []


def test_all_correct_completes_module():
    session, store = make_session(make_questions(3))

    answer_all(session, [("q0", "a"), ("q1", "a"), ("q2", "a")])

    assert isinstance(session.state, Summary)
    assert session.result.score == 100
    assert session.result.module_completed
    assert not session.result.course_completed
    assert store.saves == [["m1"]]


def test_next_requires_an_answer():
    session, _ = make_session(make_questions(2))
    with pytest.raises(QuizError):
        session.next()


def test_quiz_without_questions():
    session, _ = make_session([])
    with pytest.raises(QuizError):
        session.next()


def test_prev_stops_at_first_question():
    session, _ = make_session(make_questions(2))
    session.select_alternative("q0", "a")
    session.next()

    assert session.prev() == Answering(0)
    assert session.prev() == Answering(0)
    assert session.answers == {"q0": "a"}


def test_retry_only_after_incorrect_answers():
    session, _ = make_session(make_questions(1))
    session.select_alternative("q0", "b")
    session.next()

    assert session.retry() == Answering(0)
    assert session.answers == {}

    answer_all(session, [("q0", "a")])
    with pytest.raises(QuizError):
        session.retry()


def test_finishing_course_shows_celebration_and_auto_acknowledges():
    scheduler = FakeScheduler()
    session, _ = make_session(make_questions(1), completed=["m2"], scheduler=scheduler)

    answer_all(session, [("q0", "a")])

    assert isinstance(session.state, CourseComplete)
    assert session.result.course_completed
    delay, callback = scheduler.scheduled[0]
    assert delay == CELEBRATION_SECONDS

    callback()
    assert isinstance(session.state, Acknowledged)


def test_manual_acknowledge_cancels_timer():
    scheduler = FakeScheduler()
    session, _ = make_session(make_questions(1), completed=["m2"], scheduler=scheduler)
    answer_all(session, [("q0", "a")])

    session.acknowledge()

    assert isinstance(session.state, Acknowledged)
    assert scheduler.cancelled == 1

    _, callback = scheduler.scheduled[0]
    callback()
    assert isinstance(session.state, Acknowledged)


def test_acknowledge_requires_course_complete():
    session, _ = make_session(make_questions(1))
    with pytest.raises(QuizError):
        session.acknowledge()


def test_only_primary_correct_alternative_scores():
    question = Question(
        id="q0",
        alternatives=[Alternative(id="a"), Alternative(id="b")],
        correct_answer_ids=["a", "b"],
        correct_answer_id="a",
    )
    session, store = make_session([question])

    answer_all(session, [("q0", "b")])

    assert isinstance(session.state, Summary)
    assert session.result.score == 0
    assert session.result.incorrect_question_ids == ["q0"]
    assert session.result.module_completed is False
    assert store.saves == []
