"""Data models for the interview client."""

from .audio import AudioArtifact, AudioStats, RecorderState
from .interview import (
    InterviewPhase,
    Role,
    Message,
    Transcript,
    SessionState,
    TextInput,
    AudioInput,
    UserInput,
    resolve_input,
)
from .api import (
    StartInterviewResponse,
    ChatResponse,
    FeedbackCriterion,
    InterviewReport,
    ReportResponse,
)
from .events import SessionEvent, RecorderEvent

__all__ = [
    "AudioArtifact",
    "AudioStats",
    "RecorderState",
    "InterviewPhase",
    "Role",
    "Message",
    "Transcript",
    "SessionState",
    "TextInput",
    "AudioInput",
    "UserInput",
    "resolve_input",
    # Wire models
    "StartInterviewResponse",
    "ChatResponse",
    "FeedbackCriterion",
    "InterviewReport",
    "ReportResponse",
    # Events
    "SessionEvent",
    "RecorderEvent",
]
