"""Single-slot memory of the last failed question.

The slot lives only as long as the process: nothing is persisted, so a
retry can only resubmit a question that failed earlier in the same run.

Classes
-------
- FailureCache         — remember / recall the last failed question
- NoPriorFailureError  — a retry was requested with nothing remembered
"""
from __future__ import annotations


class NoPriorFailureError(LookupError):
    """Raised when a retry is requested but no question has failed."""

    def __init__(self) -> None:
        super().__init__("No failed question to retry")


class FailureCache:
    """Remember the most recent failed question text."""

    def __init__(self) -> None:
        self._last_failure: str | None = None

    def record_failure(self, question: str) -> None:
        """Remember ``question``, replacing any earlier failure."""
        self._last_failure = question

    def consume_last_failure(self) -> str | None:
        """Return the remembered question without forgetting it."""
        return self._last_failure

    def require_last_failure(self) -> str:
        """Return the remembered question or raise ``NoPriorFailureError``."""
        if self._last_failure is None:
            raise NoPriorFailureError()
        return self._last_failure

    def __repr__(self) -> str:
        return f"FailureCache(has_failure={self._last_failure is not None})"
