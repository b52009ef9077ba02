"""
Quiz engine for a single module attempt.

States: ``Answering(index)`` -> ``Summary`` -> optionally
``CourseComplete`` -> ``Acknowledged``. A fully correct attempt marks the
module complete through the progress tracker; when that finishes the
course the session shows ``CourseComplete`` once per attempt and
acknowledges itself after a short delay unless dismissed first.
"""

from dataclasses import dataclass, field
from threading import Lock, Timer
from typing import Callable, Dict, List, Optional, Sequence, Union
import logging

from courseportal.core.errors import PortalError
from courseportal.schemas.course import Question
from courseportal.services.progress import ProgressTracker


logger = logging.getLogger(__name__)

CELEBRATION_SECONDS = 2.0

Cancel = Callable[[], None]
Scheduler = Callable[[float, Callable[[], None]], Cancel]


class QuizError(PortalError):
    """A transition that is not allowed in the current state."""

    status_code = 400


def threading_scheduler(delay: float, callback: Callable[[], None]) -> Cancel:
    timer = Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer.cancel


@dataclass(frozen=True)
class QuizResult:
    score: int
    correct_count: int
    total: int
    incorrect_question_ids: List[str] = field(default_factory=list)
    module_completed: bool = False
    course_completed: bool = False


@dataclass(frozen=True)
class Answering:
    index: int = 0


@dataclass(frozen=True)
class Summary:
    result: QuizResult


@dataclass(frozen=True)
class CourseComplete:
    result: QuizResult


@dataclass(frozen=True)
class Acknowledged:
    pass


QuizState = Union[Answering, Summary, CourseComplete, Acknowledged]


def is_correct_answer(question: Question, alternative_id: Optional[str]) -> bool:
    """The answer must be the question's primary correct alternative."""
    if not alternative_id:
        return False
    expected = question.correct_answer_id
    if expected is None and question.correct_answer_ids:
        expected = question.correct_answer_ids[0]
    return alternative_id == expected


def score_percentage(correct_count: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(round(100 * correct_count / total))


class QuizSession:
    def __init__(
        self,
        questions: Sequence[Question],
        module_id: str,
        course_module_ids: Sequence[str],
        tracker: ProgressTracker,
        scheduler: Scheduler = threading_scheduler,
    ):
        self.questions = list(questions)
        self.module_id = module_id
        self.course_module_ids = list(course_module_ids)
        self.tracker = tracker
        self.scheduler = scheduler
        self.answers: Dict[str, str] = {}
        self.state: QuizState = Answering(0)
        self._course_complete_shown = False
        self._dismissed = False
        self._cancel_celebration: Optional[Cancel] = None
        self._lock = Lock()

    @property
    def current_question(self) -> Optional[Question]:
        if not isinstance(self.state, Answering) or not self.questions:
            return None
        return self.questions[self.state.index]

    def _require_answering(self) -> Answering:
        if not isinstance(self.state, Answering):
            raise QuizError("The quiz is not accepting answers.")
        return self.state

    def select_alternative(self, question_id: str, alternative_id: str) -> None:
        self._require_answering()
        self.answers[question_id] = alternative_id

    def next(self) -> QuizState:
        state = self._require_answering()
        question = self.current_question
        if question is None:
            raise QuizError("This module has no questions.")
        if not self.answers.get(question.id):
            raise QuizError("Answer the current question before continuing.")
        if state.index >= len(self.questions) - 1:
            self._enter_summary()
        else:
            self.state = Answering(state.index + 1)
        return self.state

    def prev(self) -> QuizState:
        state = self._require_answering()
        self.state = Answering(max(state.index - 1, 0))
        return self.state

    def retry(self) -> QuizState:
        if not isinstance(self.state, Summary) or not self.state.result.incorrect_question_ids:
            raise QuizError("Retry is only available after incorrect answers.")
        self.answers = {}
        self.state = Answering(0)
        self._course_complete_shown = False
        self._dismissed = False
        return self.state

    def acknowledge(self) -> QuizState:
        """Dismiss the course-complete celebration."""
        with self._lock:
            if not isinstance(self.state, CourseComplete):
                raise QuizError("Nothing to acknowledge.")
            self._dismissed = True
            if self._cancel_celebration is not None:
                self._cancel_celebration()
                self._cancel_celebration = None
            self.state = Acknowledged()
        return self.state

    def _auto_acknowledge(self) -> None:
        with self._lock:
            self._cancel_celebration = None
            if self._dismissed or not isinstance(self.state, CourseComplete):
                return
            self._dismissed = True
            self.state = Acknowledged()

    def _enter_summary(self) -> None:
        incorrect = [
            question.id for question in self.questions
            if not is_correct_answer(question, self.answers.get(question.id))
        ]
        total = len(self.questions)
        correct_count = total - len(incorrect)
        result = QuizResult(
            score=score_percentage(correct_count, total),
            correct_count=correct_count,
            total=total,
            incorrect_question_ids=incorrect,
        )

        if incorrect:
            self.state = Summary(result)
            return

        # Summary without completion stays in place if the write fails.
        self.state = Summary(result)
        self.tracker.set_module_completion(self.module_id, True)
        course_completed = self.tracker.is_course_complete(self.course_module_ids)
        result = QuizResult(
            score=result.score,
            correct_count=correct_count,
            total=total,
            incorrect_question_ids=[],
            module_completed=True,
            course_completed=course_completed,
        )
        self.state = Summary(result)

        if course_completed and not self._course_complete_shown:
            logger.info(f"Course {self.tracker.course_id} completed by user {self.tracker.user_id}")
            self._course_complete_shown = True
            self._dismissed = False
            self.state = CourseComplete(result)
            self._cancel_celebration = self.scheduler(CELEBRATION_SECONDS, self._auto_acknowledge)

    @property
    def result(self) -> Optional[QuizResult]:
        if isinstance(self.state, (Summary, CourseComplete)):
            return self.state.result
        return None
