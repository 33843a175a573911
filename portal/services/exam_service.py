"""Exam session registry and persistence.

ExamService keeps at most one live ExamSession per (user, module) in
this process, owns each session's countdown, and writes the finished
attempt to the user's history. Sessions are not shared across
processes; a restart loses in-flight attempts.

Persisting an attempt is best effort: when the write fails the learner
still gets the computed result, and the failure is logged and counted.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from uuid import UUID

from portal.core.metrics import (
    ACTIVE_EXAM_SESSIONS,
    EXAM_SUBMISSIONS,
    STORE_WRITE_FAILURES,
)
from portal.models.principal import Principal
from portal.models.user import User
from portal.repos.provider import Repos, repo_scope
from portal.services.countdown import AsyncioCountdown, Countdown, TickCallback
from portal.services.errors import StoreUnavailableError
from portal.services.exam_session import (
    Certificate,
    ExamResult,
    ExamSession,
    ExamState,
)

logger = logging.getLogger(__name__)

SessionKey = tuple[str, str]  # (user_id, module_id)
CountdownFactory = Callable[[TickCallback], Countdown]
ScopeFactory = Callable[[], AbstractAsyncContextManager[Repos]]


class NoActiveSessionError(LookupError):
    pass


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def _today() -> datetime.date:
    return datetime.datetime.now(datetime.UTC).date()


def _parse_user_id(user_id: str) -> UUID | None:
    try:
        return UUID(user_id)
    except ValueError:
        return None


class ExamService:
    def __init__(
        self,
        *,
        duration_seconds: int,
        scope: ScopeFactory = repo_scope,
        countdown_factory: CountdownFactory = AsyncioCountdown,
        clock: Callable[[], int] = _now,
    ) -> None:
        self._duration = duration_seconds
        self._scope = scope
        self._countdown_factory = countdown_factory
        self._clock = clock
        self._sessions: dict[SessionKey, ExamSession] = {}
        self._timers: dict[UUID, Countdown] = {}

    # -- lifecycle ----------------------------------------------------------

    async def start(
        self, principal: Principal, module_id: str, repos: Repos
    ) -> ExamSession:
        """Resume the live session for this module, or load a fresh one."""
        key = (principal.user_id, module_id)
        existing = self._sessions.get(key)
        if existing is not None and existing.state not in (
            ExamState.LOADING,
            ExamState.NOT_FOUND,
        ):
            return existing

        session = ExamSession(
            user_id=principal.user_id,
            module_id=module_id,
            duration_seconds=self._duration,
        )
        self._replace(key, session)

        try:
            quiz = await repos.quizzes.get_for_course(module_id)
            user = await self._load_user(repos, principal.user_id)
        except Exception as e:
            logger.exception("Failed to load quiz for module=%s", module_id)
            if self._sessions.get(key) is session:
                self._drop(key)
            raise StoreUnavailableError("Failed to load quiz") from e

        # A newer start() for the same key may have replaced us while we
        # awaited; its state wins and this load is discarded.
        current = self._sessions.get(key)
        if current is not session:
            logger.info("Discarding superseded exam load  module=%s", module_id)
            if current is None:
                raise NoActiveSessionError(module_id)
            return current

        if user is not None:
            session.learner_name = user.display_name
        session.loaded(quiz)
        if session.state is ExamState.NOT_FOUND:
            logger.warning("No quiz for module=%s", module_id)
            return session

        logger.info(
            "Exam session started  module=%s quiz=%s session=%s",
            module_id,
            session.quiz.id if session.quiz else None,
            session.id,
            extra={"user_id": principal.user_id, "module_id": module_id},
        )
        self._start_timer(key, session)
        return session

    def get(self, principal: Principal, module_id: str) -> ExamSession:
        session = self._sessions.get((principal.user_id, module_id))
        if session is None:
            raise NoActiveSessionError(module_id)
        return session

    def discard(self, principal: Principal, module_id: str) -> None:
        key = (principal.user_id, module_id)
        if key in self._sessions:
            self._drop(key)

    def shutdown(self) -> None:
        for key in list(self._sessions):
            self._drop(key)

    # -- learner actions ----------------------------------------------------

    def answer(
        self, principal: Principal, module_id: str, index: int, option: str
    ) -> ExamSession:
        session = self.get(principal, module_id)
        session.select_answer(index, option)
        return session

    def navigate(
        self,
        principal: Principal,
        module_id: str,
        action: str,
        index: int | None = None,
    ) -> ExamSession:
        session = self.get(principal, module_id)
        if action == "previous":
            session.previous()
        elif action == "next":
            session.next()
        elif action == "jump":
            if index is None:
                raise ValueError("jump requires an index")
            session.jump_to(index)
        else:
            raise ValueError(f"unknown navigation action {action!r}")
        return session

    def request_submit(self, principal: Principal, module_id: str) -> ExamSession:
        session = self.get(principal, module_id)
        session.request_submit()
        # The clock does not run while the learner is confirming.
        self._stop_timer(session)
        return session

    def cancel_submit(self, principal: Principal, module_id: str) -> ExamSession:
        session = self.get(principal, module_id)
        session.cancel_submit()
        self._start_timer((principal.user_id, module_id), session)
        return session

    async def confirm_submit(
        self, principal: Principal, module_id: str, repos: Repos
    ) -> ExamResult:
        session = self.get(principal, module_id)
        session.confirm_submit()
        self._stop_timer(session)
        return await self._finalize(session, repos)

    def retry(self, principal: Principal, module_id: str) -> ExamSession:
        session = self.get(principal, module_id)
        session.retry()
        logger.info("Exam retry  module=%s session=%s", module_id, session.id)
        self._start_timer((principal.user_id, module_id), session)
        return session

    def certificate(self, principal: Principal, module_id: str) -> Certificate:
        return self.get(principal, module_id).certificate(_today())

    # -- internals ----------------------------------------------------------

    async def _finalize(self, session: ExamSession, repos: Repos) -> ExamResult:
        result = session.finish(self._clock())
        EXAM_SUBMISSIONS.labels(
            result="passed" if result.passed else "failed",
            trigger=result.trigger.value,
        ).inc()
        logger.info(
            "Exam submitted  module=%s score=%d passed=%s trigger=%s",
            session.module_id,
            result.score,
            result.passed,
            result.trigger.value,
            extra={"user_id": session.user_id, "module_id": session.module_id},
        )

        try:
            user_id = UUID(session.user_id)
            await repos.users.append_attempt(user_id, result.to_attempt())
        except Exception:
            STORE_WRITE_FAILURES.labels(operation="exam_attempt").inc()
            logger.exception(
                "Failed to save exam attempt  module=%s session=%s",
                session.module_id,
                session.id,
            )
        return result

    def _tick_callback(self, key: SessionKey, session: ExamSession) -> TickCallback:
        generation = session.generation

        async def _on_tick() -> bool:
            if self._sessions.get(key) is not session or (
                session.generation != generation
            ):
                logger.debug("Dropping tick for stale exam session %s", session.id)
                return False
            if not session.tick():
                return session.state is ExamState.IN_PROGRESS

            logger.info("Exam time expired  session=%s", session.id)
            self._timers.pop(session.id, None)
            async with self._scope() as repos:
                await self._finalize(session, repos)
            return False

        return _on_tick

    def _start_timer(self, key: SessionKey, session: ExamSession) -> None:
        self._stop_timer(session)
        countdown = self._countdown_factory(self._tick_callback(key, session))
        self._timers[session.id] = countdown
        countdown.start()

    def _stop_timer(self, session: ExamSession) -> None:
        countdown = self._timers.pop(session.id, None)
        if countdown is not None:
            countdown.stop()

    def _replace(self, key: SessionKey, session: ExamSession) -> None:
        old = self._sessions.get(key)
        if old is not None:
            self._stop_timer(old)
        self._sessions[key] = session
        ACTIVE_EXAM_SESSIONS.set(len(self._sessions))

    def _drop(self, key: SessionKey) -> None:
        session = self._sessions.pop(key)
        self._stop_timer(session)
        ACTIVE_EXAM_SESSIONS.set(len(self._sessions))

    @staticmethod
    async def _load_user(repos: Repos, user_id: str) -> User | None:
        uid = _parse_user_id(user_id)
        if uid is None:
            return None
        return await repos.users.get_by_id(uid)
