"""Sends one candidate turn to the interview service and reconciles the transcript."""

import asyncio
import logging
from typing import Optional

from ..api.client import InterviewApiClient
from ..errors import DispatchRejectedError, InterviewClientError, NoActiveSessionError
from ..models.api import ChatResponse
from ..models.events import SessionEvent
from ..models.interview import AudioInput, InterviewPhase, SessionState, TextInput, UserInput
from ..publisher import EventPublisher
from .phase_controller import PhaseController

logger = logging.getLogger(__name__)

VOICE_MESSAGE_PLACEHOLDER = "🎤 Voice message"


class MessageDispatcher:
    """Single-flight dispatcher for candidate turns.

    The candidate entry is appended before the request resolves. On success
    the interviewer reply is appended and the phase advanced; on any failure
    the optimistic entry is removed and nothing else changes.
    """

    def __init__(self, api: InterviewApiClient, state: SessionState, phases: PhaseController,
                 publisher: Optional[EventPublisher] = None):
        self.api = api
        self.state = state
        self.phases = phases
        self.publisher = publisher
        self._in_flight = False

    @property
    def is_busy(self) -> bool:
        return self._in_flight

    def check_ready(self) -> None:
        """Raise if a turn cannot be sent right now."""
        if not self.state.is_active:
            raise NoActiveSessionError("No interview session is active")
        if self._in_flight:
            raise DispatchRejectedError("Still waiting for the previous answer to be processed")
        if self.state.is_complete or self.phases.is_complete():
            raise DispatchRejectedError("The interview is complete; no further answers are accepted")

    async def dispatch(self, user_input: UserInput) -> ChatResponse:
        """Send exactly one turn.

        Raises:
            DispatchRejectedError: a precondition failed; nothing was sent
            ApiError: the request failed; the transcript was rolled back
            PhaseRegressionError: the reply went backwards; rolled back too
        """
        self.check_ready()

        session_id = self.state.session_id
        transcript = self.state.transcript
        phase_at_send = self.phases.phase

        if isinstance(user_input, TextInput):
            content = user_input.text
        elif isinstance(user_input, AudioInput):
            content = user_input.text or VOICE_MESSAGE_PLACEHOLDER
        else:
            raise TypeError(f"Unsupported input type: {type(user_input).__name__}")

        self._in_flight = True
        pending = transcript.append_optimistic(content, phase_at_send)
        self._publish("appended", role="candidate", confirmed=False)
        try:
            if isinstance(user_input, AudioInput):
                logger.info(f"Sending audio answer ({user_input.artifact.mime_type}, "
                            f"{user_input.artifact.duration_seconds}s) for session {session_id}")
                response = await self.api.send_audio_message(session_id, user_input.artifact, user_input.text)
            else:
                logger.info(f"Sending text answer for session {session_id}")
                response = await self.api.send_message(session_id, user_input.text)

            self._check_session_unchanged(session_id)
            self.phases.advance(response.phase)
        except BaseException as e:
            if isinstance(e, (InterviewClientError, asyncio.CancelledError)):
                logger.warning(f"Dispatch failed, rolling back candidate entry: {e!r}")
            else:
                logger.error(f"Unexpected dispatch failure, rolling back candidate entry: {e!r}",
                             exc_info=True)
            if self.state.session_id == session_id:
                transcript.rollback(pending)
                self._publish("rolled_back", role="candidate")
            raise
        finally:
            self._in_flight = False

        transcript.confirm(pending)
        transcript.append_reply(response.message, response.phase)
        self._apply_completion(response)
        self._publish("appended", role="interviewer", phase=response.phase.value,
                      is_follow_up=response.is_follow_up)
        return response

    def _check_session_unchanged(self, session_id: str) -> None:
        if self.state.session_id != session_id:
            raise DispatchRejectedError("The session ended while the answer was in flight")

    def _apply_completion(self, response: ChatResponse) -> None:
        phase_done = response.phase is InterviewPhase.COMPLETED
        if response.is_complete != phase_done:
            logger.warning(f"Service reported is_complete={response.is_complete} with phase "
                           f"'{response.phase.value}'; using is_complete")
        self.state.is_complete = response.is_complete
        self._publish_phase("completed" if response.is_complete or phase_done else "phase")

    def _publish(self, event_type: str, **metadata) -> None:
        if self.publisher:
            self.publisher.publish_transcript_event(SessionEvent(
                event_type=event_type,
                session_id=self.state.session_id,
                metadata=metadata,
            ))

    def _publish_phase(self, event_type: str) -> None:
        if self.publisher:
            self.publisher.publish_phase_event(SessionEvent(
                event_type=event_type,
                session_id=self.state.session_id,
                metadata={
                    "phase": self.phases.phase.value,
                    "progress": self.phases.progress(),
                    "is_complete": self.state.is_complete,
                },
            ))
