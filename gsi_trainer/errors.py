"""Exception hierarchy for question generation and session control."""
from __future__ import annotations


class QuizError(Exception):
    """Base exception for the trainer."""


class GenerationFailure(QuizError):
    """The question source could not produce a usable exam.

    Covers network errors, non-2xx responses and bodies that cannot be
    decoded. Never retried automatically.
    """


class SchemaViolation(GenerationFailure):
    """Decoded response does not match the declared question shape."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class CountMismatch(SchemaViolation):
    """Returned question count differs from the requested one (strict policy only)."""

    def __init__(self, requested: int, received: int):
        super().__init__(f"requested {requested} questions, received {received}")
        self.requested = requested
        self.received = received


class InvalidSetup(QuizError):
    """Unknown block or question count out of range."""


class InvalidTransition(QuizError):
    """Event not allowed in the current session phase."""


class AnswerLocked(InvalidTransition):
    pass


class TimerNotArmed(InvalidTransition):
    pass


class ConfirmationRequired(InvalidTransition):
    """Restart would discard an in-progress session."""
