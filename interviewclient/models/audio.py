"""Audio-related data models."""

from dataclasses import dataclass
from enum import Enum


class RecorderState(Enum):
    """Lifecycle of a single microphone recording."""
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting-permission"
    RECORDING = "recording"
    STOPPED_READY = "stopped-ready"


_EXTENSIONS = {
    "audio/ogg": "ogg",
    "audio/webm": "webm",
    "audio/wav": "wav",
    "audio/flac": "flac",
}


@dataclass(frozen=True)
class AudioArtifact:
    """A finalized recording ready for upload."""
    data: bytes
    mime_type: str
    duration_seconds: int

    @property
    def container(self) -> str:
        """Mime type without codec parameters, e.g. 'audio/webm'."""
        return self.mime_type.split(";", 1)[0].strip()

    @property
    def filename(self) -> str:
        return f"recording.{_EXTENSIONS.get(self.container, 'bin')}"

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass
class AudioStats:
    """Audio recording statistics."""
    state: RecorderState
    elapsed_seconds: int
    total_chunks: int
    buffered_bytes: int
    peak_level: float
    sample_rate: int
    mime_type: str = ""

    @property
    def is_recording(self) -> bool:
        return self.state is RecorderState.RECORDING
