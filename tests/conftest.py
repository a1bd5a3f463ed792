"""Pytest configuration and fixtures for interview client tests."""

import pytest
import asyncio
import logging
from typing import List
from unittest.mock import AsyncMock, Mock, patch
import numpy as np
from pubsub import pub

from interviewclient.audio.encoding import WAV_MIME, pcm_to_wav
from interviewclient.errors import AudioEncodingError
from interviewclient.models.api import ChatResponse, ReportResponse, StartInterviewResponse
from interviewclient.models.audio import AudioArtifact
from interviewclient.models.interview import InterviewPhase


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without I/O")
    config.addinivalue_line("markers", "integration: tests that run a local HTTP service")


@pytest.fixture(autouse=True)
def clean_pubsub():
    """Drop listeners registered by a test so they do not leak into the next one."""
    yield
    pub.unsubAll()


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Half scale so the peak level is predictable
    audio_data = (wave_data * 16384).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.is_active.return_value = True
        mock_stream.start_stream.return_value = None
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


class FakeEncoder:
    """Encoder stand-in with a configurable set of supported formats."""

    def __init__(self, supported=(WAV_MIME,), fail: bool = False, delay: float = 0.0):
        self.supported = frozenset(supported)
        self.fail = fail
        self.delay = delay
        self.calls: List[dict] = []

    def supported_mime_types(self):
        return self.supported

    async def encode(self, pcm, mime_type, sample_rate, channels, sample_width=2):
        self.calls.append({
            "pcm": pcm,
            "mime_type": mime_type,
            "sample_rate": sample_rate,
            "channels": channels,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise AudioEncodingError("encoder failed")
        if mime_type == WAV_MIME:
            return pcm_to_wav(pcm, sample_rate, channels, sample_width)
        return b"ENCODED:" + pcm


@pytest.fixture
def fake_encoder():
    return FakeEncoder()


@pytest.fixture
def encoder_factory():
    """Build encoders with a custom supported set or failure mode."""
    return FakeEncoder


@pytest.fixture
def sample_artifact():
    return AudioArtifact(data=b"OggS-fake-payload", mime_type="audio/ogg", duration_seconds=4)


# Scripted interviewer replies, one per phase after the opening
SCRIPTED_PHASES = [
    InterviewPhase.BEHAVIORAL_1,
    InterviewPhase.BEHAVIORAL_2,
    InterviewPhase.LEGAL_LOGIC,
    InterviewPhase.MOTIVATION,
    InterviewPhase.CLOSING,
    InterviewPhase.COMPLETED,
]


def make_chat_response(phase: InterviewPhase, message: str = "Next question", **kwargs) -> ChatResponse:
    return ChatResponse(
        message=message,
        phase=phase,
        is_follow_up=kwargs.get("is_follow_up", False),
        is_complete=kwargs.get("is_complete", phase is InterviewPhase.COMPLETED),
    )


@pytest.fixture
def report_response():
    return ReportResponse.model_validate({
        "report": {
            "overall_score": 7.5,
            "summary": "Solid answers with clear structure.",
            "criteria": [
                {"name": "Communication", "score": 8, "feedback": "Clear and concise."},
                {"name": "Reasoning", "score": 7, "feedback": "Good, could go deeper."},
            ],
            "strengths": ["Structured answers"],
            "improvements": ["More concrete examples"],
            "recommendation": "Proceed to next round",
        }
    })


@pytest.fixture
def mock_api(report_response):
    """AsyncMock interview API that starts at the opening phase."""
    api = AsyncMock()
    api.start_interview.return_value = StartInterviewResponse(
        session_id="s-123", message="Welcome! Tell me about yourself.", phase=InterviewPhase.OPENING
    )
    api.start_interview_with_cv.return_value = StartInterviewResponse(
        session_id="s-cv", message="Thanks for the CV. Tell me about yourself.", phase=InterviewPhase.OPENING
    )
    api.send_message.return_value = make_chat_response(InterviewPhase.BEHAVIORAL_1, "Describe a conflict.")
    api.send_audio_message.return_value = make_chat_response(InterviewPhase.BEHAVIORAL_1, "Describe a conflict.")
    api.get_report.return_value = report_response
    api.delete_session.return_value = None
    return api


@pytest.fixture
def chat_response():
    """Factory for chat responses."""
    return make_chat_response


@pytest.fixture
def scripted_phases():
    return list(SCRIPTED_PHASES)
