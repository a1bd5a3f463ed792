"""Interview session data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from ..errors import EmptyInputError
from .audio import AudioArtifact


class InterviewPhase(Enum):
    """Fixed interview script, declared in order."""
    OPENING = "opening"
    BEHAVIORAL_1 = "behavioral_1"
    BEHAVIORAL_2 = "behavioral_2"
    LEGAL_LOGIC = "legal_logic"
    MOTIVATION = "motivation"
    CLOSING = "closing"
    COMPLETED = "completed"

    @property
    def order(self) -> int:
        return _PHASE_ORDER.index(self)

    def __lt__(self, other: "InterviewPhase") -> bool:
        if not isinstance(other, InterviewPhase):
            return NotImplemented
        return self.order < other.order

    def __le__(self, other: "InterviewPhase") -> bool:
        if not isinstance(other, InterviewPhase):
            return NotImplemented
        return self.order <= other.order


_PHASE_ORDER = list(InterviewPhase)


class Role(Enum):
    INTERVIEWER = "interviewer"
    CANDIDATE = "candidate"


@dataclass
class Message:
    """A single transcript entry."""
    role: Role
    content: str
    phase: InterviewPhase
    confirmed: bool = True


class Transcript:
    """Ordered interview transcript.

    Confirmed entries are never modified or removed. Optimistic candidate
    entries can be rolled back until the reply that confirms them arrives.
    """

    def __init__(self):
        self._entries: List[Message] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    def __getitem__(self, index):
        return self._entries[index]

    @property
    def entries(self) -> List[Message]:
        return list(self._entries)

    def append_reply(self, content: str, phase: InterviewPhase) -> Message:
        message = Message(role=Role.INTERVIEWER, content=content, phase=phase)
        self._entries.append(message)
        return message

    def append_optimistic(self, content: str, phase: InterviewPhase) -> Message:
        message = Message(role=Role.CANDIDATE, content=content, phase=phase, confirmed=False)
        self._entries.append(message)
        return message

    def confirm(self, message: Message) -> None:
        message.confirmed = True

    def rollback(self, message: Message) -> None:
        """Remove an unconfirmed entry by identity."""
        if message.confirmed:
            raise ValueError("Confirmed transcript entries cannot be rolled back")
        for index, entry in enumerate(self._entries):
            if entry is message:
                del self._entries[index]
                return
        raise ValueError("Entry is not part of this transcript")

    def clear(self) -> None:
        self._entries.clear()


@dataclass
class SessionState:
    """State of the one active interview session."""
    session_id: Optional[str] = None
    candidate_name: Optional[str] = None
    transcript: Transcript = field(default_factory=Transcript)
    is_complete: bool = False

    @property
    def is_active(self) -> bool:
        return self.session_id is not None

    def reset(self) -> None:
        self.session_id = None
        self.candidate_name = None
        self.transcript.clear()
        self.is_complete = False


@dataclass(frozen=True)
class TextInput:
    text: str


@dataclass(frozen=True)
class AudioInput:
    artifact: AudioArtifact
    text: Optional[str] = None


UserInput = Union[TextInput, AudioInput]


def resolve_input(text: Optional[str], artifact: Optional[AudioArtifact] = None) -> UserInput:
    """Pick exactly one payload for a turn.

    Non-empty text always wins; the artifact is then dropped. Audio is sent
    only when there is no text.
    """
    stripped = (text or "").strip()
    if stripped:
        return TextInput(text=stripped)
    if artifact is not None:
        return AudioInput(artifact=artifact)
    raise EmptyInputError("Nothing to send: type an answer or record one")
