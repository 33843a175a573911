"""Timed quiz endpoints.

The live ExamSession lives in the process-wide ``exam_service``; the
client polls GET .../session for the countdown and drives every
transition with the POST/PUT routes below.
"""

from __future__ import annotations

import datetime
import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from portal.api.dependencies import require_user
from portal.api.modules import store_unavailable
from portal.core.config import SETTINGS
from portal.models.principal import Principal
from portal.repos.provider import Repos, get_repos
from portal.services.errors import StoreUnavailableError
from portal.services.exam_service import ExamService, NoActiveSessionError
from portal.services.exam_session import (
    ExamResult,
    ExamSession,
    ExamState,
    InvalidTransitionError,
    format_time,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/exams", tags=["exams"])

exam_service = ExamService(duration_seconds=SETTINGS.exam_duration_seconds)


class QuestionOut(BaseModel):
    index: int
    question: str
    options: list[str]
    points: int


class ReviewOut(BaseModel):
    index: int
    question: str
    your_answer: str | None
    correct_answer: str
    correct: bool


class ResultOut(BaseModel):
    score: int
    passed: bool
    passing_score: int
    earned_points: int
    total_points: int
    trigger: str
    review: list[ReviewOut]


class SessionOut(BaseModel):
    session_id: str
    module_id: str
    state: str
    quiz_title: str
    total_questions: int
    current_index: int
    question: QuestionOut | None
    answers: dict[int, str]
    answered_percent: int
    is_complete: bool
    time_remaining: int
    time_display: str
    result: ResultOut | None


class AnswerIn(BaseModel):
    option: str


class NavigateIn(BaseModel):
    action: Literal["previous", "next", "jump"]
    index: int | None = None


class CertificateOut(BaseModel):
    learner_name: str
    quiz_title: str
    score: int
    issued_on: datetime.date


def _result_out(result: ExamResult) -> ResultOut:
    return ResultOut(
        score=result.score,
        passed=result.passed,
        passing_score=result.passing_score,
        earned_points=result.earned_points,
        total_points=result.total_points,
        trigger=result.trigger.value,
        review=[
            ReviewOut(
                index=r.index,
                question=r.question,
                your_answer=r.your_answer,
                correct_answer=r.correct_answer,
                correct=r.correct,
            )
            for r in result.review
        ],
    )


def _session_out(session: ExamSession) -> SessionOut:
    quiz = session.quiz
    question = None
    if quiz is not None and session.state is ExamState.IN_PROGRESS:
        q = quiz.questions[session.current_index]
        question = QuestionOut(
            index=session.current_index,
            question=q.question,
            options=list(q.options),
            points=q.points,
        )
    return SessionOut(
        session_id=str(session.id),
        module_id=session.module_id,
        state=session.state.value,
        quiz_title=quiz.title if quiz else "",
        total_questions=len(quiz.questions) if quiz else 0,
        current_index=session.current_index,
        question=question,
        answers=dict(session.answers),
        answered_percent=session.answered_percent,
        is_complete=session.is_complete,
        time_remaining=session.time_remaining,
        time_display=format_time(session.time_remaining),
        result=_result_out(session.result) if session.result else None,
    )


def _no_session(module_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"message": f"No exam session for module {module_id}"},
    )


def _conflict(e: InvalidTransitionError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"message": str(e)},
    )


def _unprocessable(e: ValueError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": str(e)},
    )


@router.post("/{module_id}/session", response_model=SessionOut)
async def start_session(
    module_id: str,
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> SessionOut:
    """Start the quiz for a module, or resume the one already running."""
    try:
        session = await exam_service.start(principal, module_id, repos)
    except StoreUnavailableError as e:
        raise store_unavailable(e) from None
    except NoActiveSessionError:
        raise _no_session(module_id) from None

    if session.state is ExamState.NOT_FOUND:
        exam_service.discard(principal, module_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Quiz not found", "redirect": "/"},
        )
    return _session_out(session)


@router.get("/{module_id}/session", response_model=SessionOut)
async def get_session(
    module_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> SessionOut:
    try:
        return _session_out(exam_service.get(principal, module_id))
    except NoActiveSessionError:
        raise _no_session(module_id) from None


@router.delete("/{module_id}/session", status_code=status.HTTP_204_NO_CONTENT)
async def discard_session(
    module_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> Response:
    exam_service.discard(principal, module_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{module_id}/session/answers/{index}", response_model=SessionOut)
async def select_answer(
    module_id: str,
    index: int,
    body: AnswerIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> SessionOut:
    try:
        session = exam_service.answer(principal, module_id, index, body.option)
    except NoActiveSessionError:
        raise _no_session(module_id) from None
    except InvalidTransitionError as e:
        raise _conflict(e) from None
    except ValueError as e:
        raise _unprocessable(e) from None
    return _session_out(session)


@router.post("/{module_id}/session/navigate", response_model=SessionOut)
async def navigate(
    module_id: str,
    body: NavigateIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> SessionOut:
    try:
        session = exam_service.navigate(principal, module_id, body.action, body.index)
    except NoActiveSessionError:
        raise _no_session(module_id) from None
    except InvalidTransitionError as e:
        raise _conflict(e) from None
    except ValueError as e:
        raise _unprocessable(e) from None
    return _session_out(session)


@router.post("/{module_id}/session/submit", response_model=SessionOut)
async def request_submit(
    module_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> SessionOut:
    """Ask for submission; answers 422 while any question is unanswered."""
    try:
        session = exam_service.request_submit(principal, module_id)
    except NoActiveSessionError:
        raise _no_session(module_id) from None
    except InvalidTransitionError as e:
        raise _conflict(e) from None
    except ValueError as e:
        raise _unprocessable(e) from None
    return _session_out(session)


@router.post("/{module_id}/session/submit/cancel", response_model=SessionOut)
async def cancel_submit(
    module_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> SessionOut:
    try:
        session = exam_service.cancel_submit(principal, module_id)
    except NoActiveSessionError:
        raise _no_session(module_id) from None
    except InvalidTransitionError as e:
        raise _conflict(e) from None
    return _session_out(session)


@router.post("/{module_id}/session/submit/confirm", response_model=SessionOut)
async def confirm_submit(
    module_id: str,
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> SessionOut:
    try:
        await exam_service.confirm_submit(principal, module_id, repos)
        session = exam_service.get(principal, module_id)
    except NoActiveSessionError:
        raise _no_session(module_id) from None
    except InvalidTransitionError as e:
        raise _conflict(e) from None
    return _session_out(session)


@router.post("/{module_id}/session/retry", response_model=SessionOut)
async def retry(
    module_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> SessionOut:
    try:
        session = exam_service.retry(principal, module_id)
    except NoActiveSessionError:
        raise _no_session(module_id) from None
    except InvalidTransitionError as e:
        raise _conflict(e) from None
    return _session_out(session)


@router.get("/{module_id}/session/certificate", response_model=CertificateOut)
async def certificate(
    module_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> CertificateOut:
    try:
        cert = exam_service.certificate(principal, module_id)
    except NoActiveSessionError:
        raise _no_session(module_id) from None
    except InvalidTransitionError as e:
        raise _conflict(e) from None
    return CertificateOut(
        learner_name=cert.learner_name,
        quiz_title=cert.quiz_title,
        score=cert.score,
        issued_on=cert.issued_on,
    )
