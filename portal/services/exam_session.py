"""Exam session state machine.

One ExamSession is one learner's attempt at one module's quiz. It holds
no I/O and no timer of its own: the ExamService feeds it the loaded
quiz, drives ``tick()`` from a countdown, and persists what ``finish()``
returns. That keeps every transition synchronous and run-to-completion.

    loading ──► in_progress ──► confirming_submit ──► submitting ──► passed
       │            ▲  │  ▲            │                  ▲          failed
       ▼            │  │  └── cancel ──┘                  │            │
    not_found       │  └──────── timer reaches zero ──────┘            │
                    └──────────────────── retry ───────────────────────┘
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4

from portal.models.progress import ExamAttempt
from portal.models.quiz import Quiz
from portal.services.scoring import (
    earned_points,
    is_passing,
    round_percent,
    score_answers,
)


class ExamState(StrEnum):
    LOADING = "loading"
    NOT_FOUND = "not_found"
    IN_PROGRESS = "in_progress"
    CONFIRMING_SUBMIT = "confirming_submit"
    SUBMITTING = "submitting"
    PASSED = "passed"
    FAILED = "failed"


class SubmitTrigger(StrEnum):
    LEARNER = "learner"
    TIMEOUT = "timeout"


class ExamSessionError(Exception):
    pass


class InvalidTransitionError(ExamSessionError):
    """The requested action is not allowed in the session's current state."""


class IncompleteAnswersError(ExamSessionError, ValueError):
    pass


class QuestionIndexError(ExamSessionError, ValueError):
    pass


class InvalidOptionError(ExamSessionError, ValueError):
    pass


@dataclass(frozen=True, slots=True)
class QuestionReview:
    index: int
    question: str
    your_answer: str | None
    correct_answer: str
    correct: bool
    points: int


@dataclass(frozen=True, slots=True)
class ExamResult:
    quiz_id: str
    course_id: str
    score: int
    passed: bool
    passing_score: int
    earned_points: int
    total_points: int
    submitted_at: int
    trigger: SubmitTrigger
    review: tuple[QuestionReview, ...]

    def to_attempt(self) -> ExamAttempt:
        return ExamAttempt(
            quiz_id=self.quiz_id,
            course_id=self.course_id,
            score=self.score,
            passed=self.passed,
            submitted_at=self.submitted_at,
        )


@dataclass(frozen=True, slots=True)
class Certificate:
    learner_name: str
    quiz_title: str
    score: int
    issued_on: datetime.date


def format_time(seconds: int) -> str:
    """30:00, 9:05, 0:00."""
    mins, secs = divmod(max(seconds, 0), 60)
    return f"{mins}:{secs:02d}"


class ExamSession:
    def __init__(self, *, user_id: str, module_id: str, duration_seconds: int) -> None:
        self.id: UUID = uuid4()
        self.user_id = user_id
        self.module_id = module_id
        self.duration_seconds = duration_seconds
        self.learner_name = "Participant"

        self.state = ExamState.LOADING
        self.quiz: Quiz | None = None
        self.answers: dict[int, str] = {}
        self.current_index = 0
        self.time_remaining = duration_seconds
        self.trigger: SubmitTrigger | None = None
        self.result: ExamResult | None = None
        # Bumped on retry; countdown callbacks carry the generation they
        # were created for and are ignored once it moves on.
        self.generation = 0

    # -- loading ------------------------------------------------------------

    def loaded(self, quiz: Quiz | None) -> None:
        self._require(ExamState.LOADING)
        if quiz is None or not quiz.questions:
            self.state = ExamState.NOT_FOUND
            return
        self.quiz = quiz
        self.state = ExamState.IN_PROGRESS

    # -- answering and navigation -------------------------------------------

    def select_answer(self, index: int, option: str) -> None:
        quiz = self._require_in_progress()
        self._check_index(index)
        if option not in quiz.questions[index].options:
            raise InvalidOptionError(f"{option!r} is not an option of question {index}")
        self.answers[index] = option

    def previous(self) -> int:
        self._require_in_progress()
        self.current_index = max(0, self.current_index - 1)
        return self.current_index

    def next(self) -> int:
        quiz = self._require_in_progress()
        self.current_index = min(quiz.last_index, self.current_index + 1)
        return self.current_index

    def jump_to(self, index: int) -> int:
        self._require_in_progress()
        self._check_index(index)
        self.current_index = index
        return self.current_index

    @property
    def is_complete(self) -> bool:
        return self.quiz is not None and len(self.answers) == len(self.quiz.questions)

    @property
    def answered_percent(self) -> int:
        if self.quiz is None:
            return 0
        return round_percent(len(self.answers), len(self.quiz.questions))

    # -- submission ---------------------------------------------------------

    def request_submit(self) -> None:
        quiz = self._require_in_progress()
        if self.current_index != quiz.last_index:
            raise InvalidTransitionError("submission is offered on the final question")
        if not self.is_complete:
            missing = [i for i in range(len(quiz.questions)) if i not in self.answers]
            raise IncompleteAnswersError(f"unanswered questions: {missing}")
        self.state = ExamState.CONFIRMING_SUBMIT

    def cancel_submit(self) -> None:
        self._require(ExamState.CONFIRMING_SUBMIT)
        self.state = ExamState.IN_PROGRESS

    def confirm_submit(self) -> None:
        self._require(ExamState.CONFIRMING_SUBMIT)
        self.state = ExamState.SUBMITTING
        self.trigger = SubmitTrigger.LEARNER

    def tick(self) -> bool:
        """Advance the clock one second. True when this tick forced submission."""
        if self.state is not ExamState.IN_PROGRESS:
            return False
        self.time_remaining = max(0, self.time_remaining - 1)
        if self.time_remaining == 0:
            # Completeness gate deliberately skipped.
            self.state = ExamState.SUBMITTING
            self.trigger = SubmitTrigger.TIMEOUT
            return True
        return False

    def finish(self, now: int) -> ExamResult:
        self._require(ExamState.SUBMITTING)
        quiz = self.quiz
        assert quiz is not None

        score = score_answers(quiz, self.answers)
        passed = is_passing(score, quiz.passing_score)
        review = tuple(
            QuestionReview(
                index=i,
                question=q.question,
                your_answer=self.answers.get(i),
                correct_answer=q.correct_answer,
                correct=self.answers.get(i) == q.correct_answer,
                points=q.points,
            )
            for i, q in enumerate(quiz.questions)
        )
        self.result = ExamResult(
            quiz_id=quiz.id,
            course_id=quiz.course_id,
            score=score,
            passed=passed,
            passing_score=quiz.passing_score,
            earned_points=earned_points(quiz, self.answers),
            total_points=quiz.total_points,
            submitted_at=now,
            trigger=self.trigger or SubmitTrigger.LEARNER,
            review=review,
        )
        self.state = ExamState.PASSED if passed else ExamState.FAILED
        return self.result

    # -- after results ------------------------------------------------------

    def retry(self) -> None:
        self._require(ExamState.FAILED)
        self.answers = {}
        self.current_index = 0
        self.time_remaining = self.duration_seconds
        self.trigger = None
        self.result = None
        self.generation += 1
        self.state = ExamState.IN_PROGRESS

    def certificate(self, today: datetime.date) -> Certificate:
        self._require(ExamState.PASSED)
        assert self.quiz is not None and self.result is not None
        return Certificate(
            learner_name=self.learner_name,
            quiz_title=f"{self.quiz.title} Quiz",
            score=self.result.score,
            issued_on=today,
        )

    # -- helpers ------------------------------------------------------------

    def _require(self, *states: ExamState) -> None:
        if self.state not in states:
            allowed = "|".join(s.value for s in states)
            raise InvalidTransitionError(
                f"exam session is {self.state.value}, expected {allowed}"
            )

    def _require_in_progress(self) -> Quiz:
        self._require(ExamState.IN_PROGRESS)
        assert self.quiz is not None
        return self.quiz

    def _check_index(self, index: int) -> None:
        assert self.quiz is not None
        if not 0 <= index <= self.quiz.last_index:
            raise QuestionIndexError(
                f"question index {index} outside 0..{self.quiz.last_index}"
            )
