"""Per-interview lifecycle: start, converse, complete, tear down."""

import logging
import mimetypes
from pathlib import Path
from typing import List, Optional, Union

from ..api.client import InterviewApiClient
from ..audio.recorder import AudioRecorder
from ..errors import MicrophoneUnavailableError, NoActiveSessionError
from ..models.api import ChatResponse, InterviewReport, StartInterviewResponse
from ..models.events import SessionEvent
from ..models.interview import InterviewPhase, Message, SessionState, resolve_input
from ..publisher import EventPublisher
from .dispatcher import MessageDispatcher
from .phase_controller import PhaseController

logger = logging.getLogger(__name__)


class SessionController:
    """Owns the session id, transcript and phase for one interview at a time.

    All state lives in ``self.state`` and ``self.phases`` and is only changed
    through the methods below.
    """

    def __init__(self, api: InterviewApiClient, recorder: Optional[AudioRecorder] = None,
                 publisher: Optional[EventPublisher] = None):
        """Initialize the controller.

        Args:
            api: Client for the interview service
            recorder: Microphone recorder; voice answers are unavailable without one
            publisher: Optional publisher for session events
        """
        self.api = api
        self.recorder = recorder
        self.publisher = publisher
        self.state = SessionState()
        self.phases = PhaseController()
        self.dispatcher = MessageDispatcher(api, self.state, self.phases, publisher)

    @property
    def session_id(self) -> Optional[str]:
        return self.state.session_id

    @property
    def transcript(self) -> List[Message]:
        return self.state.transcript.entries

    @property
    def phase(self) -> InterviewPhase:
        return self.phases.phase

    @property
    def is_complete(self) -> bool:
        return self.state.is_complete

    @property
    def is_busy(self) -> bool:
        return self.dispatcher.is_busy

    async def start_session(self, candidate_name: Optional[str] = None, cv_text: Optional[str] = None,
                            cv_file: Optional[Union[str, Path]] = None) -> StartInterviewResponse:
        """Start a new interview, superseding any active one.

        A CV file is uploaded with the multipart start call; otherwise CV text,
        if any, goes in the JSON start call. On failure no session exists.
        """
        if self.state.is_active:
            logger.info(f"New interview supersedes session {self.state.session_id}")
            await self.end_session()

        if cv_file is not None:
            path = Path(cv_file)
            content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            logger.info(f"Starting interview with CV upload: {path.name} ({content_type})")
            response = await self.api.start_interview_with_cv(
                path.read_bytes(), path.name, candidate_name=candidate_name, content_type=content_type
            )
        else:
            logger.info("Starting interview")
            response = await self.api.start_interview(candidate_name, cv_text)

        self.phases.reset(response.phase)
        self.state.session_id = response.session_id
        self.state.candidate_name = candidate_name
        self.state.is_complete = response.phase is InterviewPhase.COMPLETED
        self.state.transcript.append_reply(response.message, response.phase)

        logger.info(f"Interview started: session={response.session_id}, phase={response.phase.value}")
        self._publish("started", phase=response.phase.value)
        return response

    async def send(self, text: str = "") -> ChatResponse:
        """Send the candidate's answer for this turn.

        Typed text always wins: any recording is abandoned and only the text
        is sent. With no text, a running recording is stopped and the
        finished recording is sent. The recording is consumed before the
        request, whatever the outcome.
        """
        self.dispatcher.check_ready()

        artifact = None
        if text and text.strip():
            if self.recorder is not None:
                self.recorder.cancel()
        elif self.recorder is not None:
            await self.recorder.stop()
            artifact = self.recorder.take_artifact()

        user_input = resolve_input(text, artifact)
        return await self.dispatcher.dispatch(user_input)

    async def start_recording(self) -> None:
        if self.recorder is None:
            raise MicrophoneUnavailableError("No audio recorder configured")
        self.dispatcher.check_ready()
        await self.recorder.start()

    async def stop_recording(self):
        if self.recorder is None:
            return None
        return await self.recorder.stop()

    def cancel_recording(self) -> None:
        if self.recorder is not None:
            self.recorder.cancel()

    async def request_report(self) -> InterviewReport:
        """Fetch the evaluation report; the transcript and phase are not touched."""
        if not self.state.is_active:
            raise NoActiveSessionError("No interview session to report on")
        logger.info(f"Requesting report for session {self.state.session_id}")
        response = await self.api.get_report(self.state.session_id)
        return response.report

    async def end_session(self) -> None:
        """Delete the remote session if possible and clear all local state.

        Remote delete failures are logged and never block the reset.
        """
        session_id = self.state.session_id
        if self.recorder is not None:
            self.recorder.cancel()

        if session_id is not None:
            try:
                await self.api.delete_session(session_id)
                logger.info(f"Deleted session {session_id}")
            except Exception as e:
                logger.warning(f"Failed to delete session {session_id}: {e!r}", exc_info=True)

        self.state.reset()
        self.phases.reset()
        self._publish("cleared", previous_session_id=session_id)

    async def restart(self) -> None:
        await self.end_session()

    async def close(self) -> None:
        """Tear down: release the microphone and close the HTTP session."""
        if self.recorder is not None:
            self.recorder.close()
        await self.api.close()

    def _publish(self, event_type: str, **metadata) -> None:
        if self.publisher:
            self.publisher.publish_transcript_event(SessionEvent(
                event_type=event_type,
                session_id=self.state.session_id,
                metadata=metadata,
            ))
