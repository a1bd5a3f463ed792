"""Exception hierarchy for the interview client."""

from typing import Optional


class InterviewClientError(Exception):
    """Base class for all interview client errors."""


class MicrophoneUnavailableError(InterviewClientError):
    """Microphone permission was refused or no input device exists."""


class AudioEncodingError(InterviewClientError):
    """Buffered audio could not be turned into an artifact."""


class ApiError(InterviewClientError):
    """Transport failure or non-success status from the interview service."""

    def __init__(self, message: str, status: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.detail = detail

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is not None:
            base = f"{base} (HTTP {self.status})"
        if self.detail:
            base = f"{base}: {self.detail}"
        return base


class MalformedResponseError(ApiError):
    """Response body was not JSON or did not match the expected shape."""


class PhaseRegressionError(InterviewClientError):
    """The service reported a phase ordered before the current one."""

    def __init__(self, current, reported):
        super().__init__(f"Phase regressed from '{current.value}' to '{reported.value}'")
        self.current = current
        self.reported = reported


class DispatchRejectedError(InterviewClientError):
    """A turn could not be dispatched because a precondition failed."""


class EmptyInputError(DispatchRejectedError):
    """Neither text nor audio was provided for a turn."""


class NoActiveSessionError(DispatchRejectedError):
    """The operation requires an active interview session."""
