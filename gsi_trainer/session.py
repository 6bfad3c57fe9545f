"""Quiz session state machine and its controller.

``transition(session, event)`` is a pure function over immutable
``Session`` values. ``QuizController`` owns the current session, the LLM
handle and the countdown task, and is what the web layer talks to.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from gsi_trainer.config import Settings
from gsi_trainer.errors import (
    AnswerLocked,
    ConfirmationRequired,
    GenerationFailure,
    InvalidSetup,
    InvalidTransition,
    TimerNotArmed,
)
from gsi_trainer.models import MOCK_BLOCK, OPTION_KEYS, Question, ScoreReport, get_block
from gsi_trainer.question_source import generate_exam
from gsi_trainer.scoring import score
from gsi_trainer.timer import Countdown, CountdownTask

if TYPE_CHECKING:
    from gsi_trainer.providers.base import LLMProvider

_log = logging.getLogger("gsi_trainer.session")


class Phase(str, Enum):
    CONFIGURING = "configuring"
    GENERATING = "generating"
    ANSWERING = "answering"
    SHOWING_FEEDBACK = "showing_feedback"
    FINISHED = "finished"


ACTIVE_PHASES = (Phase.ANSWERING, Phase.SHOWING_FEEDBACK)
# Phases where restarting throws away work the user hasn't seen scored.
UNSAVED_PHASES = (Phase.GENERATING, Phase.ANSWERING, Phase.SHOWING_FEEDBACK)


# ── Events ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Start:
    block: str
    count: int


@dataclass(frozen=True)
class GenerationSucceeded:
    epoch: int
    questions: tuple[Question, ...]


@dataclass(frozen=True)
class GenerationFailed:
    epoch: int
    message: str


@dataclass(frozen=True)
class ArmTimer:
    pass


@dataclass(frozen=True)
class Answer:
    option: str | None  # None is the skip marker


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class Restart:
    confirmed: bool = False


Event = Start | GenerationSucceeded | GenerationFailed | ArmTimer | Answer | Continue | Tick | Restart


# ── Session ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Session:
    epoch: int = 0
    phase: Phase = Phase.CONFIGURING
    block: str | None = None
    requested_count: int = 0
    timed: bool = False
    questions: tuple[Question, ...] = ()
    current_index: int = 0
    answers: dict[int, str | None] = field(default_factory=dict)
    countdown: Countdown | None = None
    error: str | None = None

    @property
    def current_question(self) -> Question | None:
        if self.phase in ACTIVE_PHASES:
            return self.questions[self.current_index]
        return None

    @property
    def armed(self) -> bool:
        return self.countdown is not None and self.countdown.armed

    @property
    def awaiting_arm(self) -> bool:
        """Timed exam generated but the clock not started yet."""
        return self.timed and self.phase in ACTIVE_PHASES and not self.armed

    @property
    def time_remaining(self) -> int | None:
        return self.countdown.remaining if self.countdown is not None else None

    @property
    def is_last(self) -> bool:
        return self.current_index >= len(self.questions) - 1


def _advance(session: Session) -> Session:
    if session.is_last:
        return replace(session, phase=Phase.FINISHED)
    return replace(session, phase=Phase.ANSWERING, current_index=session.current_index + 1)


def _reject(session: Session, event: Event) -> InvalidTransition:
    return InvalidTransition(
        f"{type(event).__name__} not allowed while {session.phase.value}"
    )


def transition(
    session: Session,
    event: Event,
    settings: Settings | None = None,
) -> Session:
    """Return the session that results from applying *event*.

    Raises ``InvalidTransition`` (or a subclass) when the event is not
    allowed; generation results from a superseded epoch are ignored.
    """
    s = settings or Settings()

    if isinstance(event, Restart):
        if session.phase in UNSAVED_PHASES and not event.confirmed:
            raise ConfirmationRequired("restart discards the current exam; confirm first")
        return Session(epoch=session.epoch + 1)

    if isinstance(event, Tick):
        if session.countdown is None or not session.armed or session.phase not in ACTIVE_PHASES:
            return session
        countdown = session.countdown.tick()
        if countdown.expired:
            return replace(session, countdown=countdown, phase=Phase.FINISHED)
        return replace(session, countdown=countdown)

    if isinstance(event, (GenerationSucceeded, GenerationFailed)):
        if session.phase is not Phase.GENERATING or event.epoch != session.epoch:
            return session
        if isinstance(event, GenerationFailed):
            return Session(epoch=session.epoch, error=event.message)
        if not event.questions:
            return Session(epoch=session.epoch, error="the question source returned no questions")
        return replace(
            session,
            phase=Phase.ANSWERING,
            questions=tuple(event.questions),
            current_index=0,
            answers={},
            countdown=Countdown.create(s.mock_duration_seconds) if session.timed else None,
        )

    if isinstance(event, Start):
        if session.phase is not Phase.CONFIGURING:
            raise _reject(session, event)
        block = get_block(event.block)
        if block is None:
            raise InvalidSetup(f"unknown block: {event.block!r}")
        timed = block.id == MOCK_BLOCK
        count = s.mock_question_count if timed else event.count
        if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= s.max_question_count:
            raise InvalidSetup(f"question count must be between 1 and {s.max_question_count}")
        return Session(
            epoch=session.epoch + 1,
            phase=Phase.GENERATING,
            block=block.id,
            requested_count=count,
            timed=timed,
        )

    if isinstance(event, ArmTimer):
        if session.phase not in ACTIVE_PHASES or not session.timed:
            raise _reject(session, event)
        if session.armed:
            raise InvalidTransition("countdown already started")
        return replace(session, countdown=session.countdown.arm())

    if isinstance(event, Answer):
        if session.phase is not Phase.ANSWERING:
            raise _reject(session, event)
        if session.awaiting_arm:
            raise TimerNotArmed("start the countdown before answering")
        if session.current_index in session.answers:
            raise AnswerLocked(f"question {session.current_index + 1} already answered")
        if event.option is not None and event.option not in OPTION_KEYS:
            raise InvalidTransition(f"unknown option: {event.option!r}")
        answered = replace(session, answers={**session.answers, session.current_index: event.option})
        if session.current_question.is_correct(event.option):
            return _advance(answered)
        return replace(answered, phase=Phase.SHOWING_FEEDBACK)

    if isinstance(event, Continue):
        if session.phase is not Phase.SHOWING_FEEDBACK:
            raise _reject(session, event)
        return _advance(session)

    raise TypeError(f"unknown event: {event!r}")


# ── Controller ────────────────────────────────────────────────────────────

class QuizController:
    """Owns the live session, the injected LLM handle and the countdown task."""

    def __init__(self, llm: LLMProvider, settings: Settings, tick_interval: float = 1.0):
        self.llm = llm
        self.settings = settings
        self.tick_interval = tick_interval
        self._session = Session()
        self._timer: CountdownTask | None = None

    @property
    def session(self) -> Session:
        return self._session

    def dispatch(self, event: Event) -> Session:
        before = self._session
        after = transition(before, event, self.settings)
        self._session = after
        if after.phase is not before.phase:
            _log.info("Phase %s -> %s (%s)", before.phase.value, after.phase.value, type(event).__name__)
        elif after is before and isinstance(event, (GenerationSucceeded, GenerationFailed)):
            _log.info("Ignoring stale generation result (epoch %d, current %d)",
                      event.epoch, before.epoch)
        self._sync_timer()
        return after

    def _sync_timer(self) -> None:
        s = self._session
        if s.armed and s.phase in ACTIVE_PHASES:
            if self._timer is None:
                self._timer = CountdownTask(self._on_tick, interval=self.tick_interval)
                self._timer.start()
        elif self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_tick(self) -> bool:
        self._session = transition(self._session, Tick(), self.settings)
        s = self._session
        if s.phase in ACTIVE_PHASES:
            return True
        if s.countdown is not None and s.countdown.expired:
            _log.info("Time is up: exam finished at question %d/%d",
                      s.current_index + 1, len(s.questions))
        self._timer = None
        return False

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and self._timer.running

    async def start(self, block: str, count: int) -> Session:
        """Start a session and wait for its single generation request."""
        session = self.dispatch(Start(block, count))
        epoch = session.epoch
        try:
            questions = await generate_exam(
                self.llm,
                session.block,
                session.requested_count,
                temperature=self.settings.llm_temperature,
                strict_count=self.settings.strict_count,
            )
        except GenerationFailure as e:
            return self.dispatch(GenerationFailed(epoch, str(e)))
        return self.dispatch(GenerationSucceeded(epoch, tuple(questions)))

    def arm(self) -> Session:
        return self.dispatch(ArmTimer())

    def answer(self, option: str | None) -> Session:
        return self.dispatch(Answer(option))

    def skip(self) -> Session:
        return self.dispatch(Answer(None))

    def next(self) -> Session:
        return self.dispatch(Continue())

    def restart(self, confirmed: bool = False) -> Session:
        return self.dispatch(Restart(confirmed))

    def take_error(self) -> str | None:
        """Return the pending generation error once, then clear it."""
        error = self._session.error
        if error is not None:
            self._session = replace(self._session, error=None)
        return error

    def report(self) -> ScoreReport:
        return score(self._session.questions, self._session.answers)

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
