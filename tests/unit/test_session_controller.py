"""Unit tests for SessionController."""

import asyncio

import pytest
from pubsub import pub

from interviewclient.audio.recorder import AudioRecorder
from interviewclient.errors import (
    ApiError,
    DispatchRejectedError,
    EmptyInputError,
    MicrophoneUnavailableError,
    NoActiveSessionError,
)
from interviewclient.models.audio import RecorderState
from interviewclient.models.interview import InterviewPhase, Role
from interviewclient.publisher import TRANSCRIPT_TOPIC, EventPublisher
from interviewclient.services.dispatcher import VOICE_MESSAGE_PLACEHOLDER
from interviewclient.services.session_controller import SessionController


@pytest.fixture
def controller(mock_api):
    return SessionController(mock_api)


@pytest.fixture
def recorder(mock_pyaudio, fake_encoder):
    recorder = AudioRecorder(encoder=fake_encoder)
    yield recorder
    recorder.close()


@pytest.mark.unit
class TestSessionController:
    """Test cases for SessionController."""

    @pytest.mark.asyncio
    async def test_start_session(self, controller, mock_api):
        response = await controller.start_session("Ana", cv_text="Ten years of practice")

        mock_api.start_interview.assert_awaited_once_with("Ana", "Ten years of practice")
        assert controller.session_id == response.session_id == "s-123"
        assert controller.phase is InterviewPhase.OPENING
        assert len(controller.transcript) == 1
        assert controller.transcript[0].role is Role.INTERVIEWER
        assert controller.is_complete is False

    @pytest.mark.asyncio
    async def test_start_session_with_cv_file(self, controller, mock_api, tmp_path):
        cv = tmp_path / "cv.pdf"
        cv.write_bytes(b"%PDF-1.4 fake")

        await controller.start_session("Ana", cv_file=cv)

        mock_api.start_interview_with_cv.assert_awaited_once_with(
            b"%PDF-1.4 fake", "cv.pdf", candidate_name="Ana", content_type="application/pdf"
        )
        mock_api.start_interview.assert_not_called()
        assert controller.session_id == "s-cv"

    @pytest.mark.asyncio
    async def test_start_failure_leaves_no_session(self, controller, mock_api):
        mock_api.start_interview.side_effect = ApiError("service down", status=503)

        with pytest.raises(ApiError):
            await controller.start_session()

        assert controller.session_id is None
        assert controller.transcript == []

    @pytest.mark.asyncio
    async def test_one_turn_scenario(self, controller, mock_api):
        """Start, answer once: three entries and the second question."""
        await controller.start_session()

        await controller.send("I have ten years of experience.")

        roles = [m.role for m in controller.transcript]
        assert roles == [Role.INTERVIEWER, Role.CANDIDATE, Role.INTERVIEWER]
        assert controller.phases.progress() == 2
        assert controller.phase is InterviewPhase.BEHAVIORAL_1

    @pytest.mark.asyncio
    async def test_full_interview_to_completion(self, controller, mock_api, chat_response, scripted_phases):
        mock_api.send_message.side_effect = [chat_response(phase) for phase in scripted_phases]
        await controller.start_session()

        for turn in range(len(scripted_phases)):
            await controller.send(f"answer {turn}")

        assert controller.is_complete is True
        assert controller.phases.progress() == 6
        assert len(controller.transcript) == 1 + 2 * len(scripted_phases)
        with pytest.raises(DispatchRejectedError):
            await controller.send("anything else")

    @pytest.mark.asyncio
    async def test_network_failure_keeps_transcript(self, controller, mock_api):
        await controller.start_session()
        mock_api.send_message.side_effect = ApiError("connection reset")

        with pytest.raises(ApiError):
            await controller.send("answer")

        assert len(controller.transcript) == 1
        assert controller.phase is InterviewPhase.OPENING
        assert controller.is_busy is False

    @pytest.mark.asyncio
    async def test_send_without_session(self, controller, mock_api):
        with pytest.raises(NoActiveSessionError):
            await controller.send("hello")
        mock_api.send_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_empty_without_recorder(self, controller):
        await controller.start_session()

        with pytest.raises(EmptyInputError):
            await controller.send("   ")
        assert len(controller.transcript) == 1

    @pytest.mark.asyncio
    async def test_request_report(self, controller, mock_api, report_response):
        await controller.start_session()

        report = await controller.request_report()

        mock_api.get_report.assert_awaited_once_with("s-123")
        assert report is report_response.report
        assert len(controller.transcript) == 1

    @pytest.mark.asyncio
    async def test_request_report_needs_session(self, controller, mock_api):
        with pytest.raises(NoActiveSessionError):
            await controller.request_report()
        mock_api.get_report.assert_not_called()

    @pytest.mark.asyncio
    async def test_end_session_clears_state(self, controller, mock_api):
        await controller.start_session()
        await controller.send("answer")

        await controller.end_session()

        mock_api.delete_session.assert_awaited_once_with("s-123")
        assert controller.session_id is None
        assert controller.transcript == []
        assert controller.phase is InterviewPhase.OPENING
        assert controller.is_complete is False

    @pytest.mark.asyncio
    async def test_end_session_ignores_delete_failure(self, controller, mock_api):
        await controller.start_session()
        mock_api.delete_session.side_effect = ApiError("not found", status=404)

        await controller.end_session()

        assert controller.session_id is None
        assert controller.transcript == []

    @pytest.mark.asyncio
    async def test_end_session_survives_unexpected_delete_error(self, controller, mock_api):
        await controller.start_session()
        await controller.send("answer")
        mock_api.delete_session.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        await controller.end_session()

        assert controller.session_id is None
        assert controller.transcript == []
        assert controller.phase is InterviewPhase.OPENING

    @pytest.mark.asyncio
    async def test_new_session_supersedes_active_one(self, controller, mock_api):
        await controller.start_session()
        await controller.send("answer")

        await controller.start_session()

        mock_api.delete_session.assert_awaited_once_with("s-123")
        assert len(controller.transcript) == 1

    @pytest.mark.asyncio
    async def test_restart_publishes_cleared(self, mock_api):
        publisher = EventPublisher(prefix="controller_test")
        events = []

        def on_transcript(event):
            events.append((event.event_type, event.metadata))

        pub.subscribe(on_transcript, publisher.topic(TRANSCRIPT_TOPIC))
        controller = SessionController(mock_api, publisher=publisher)
        await controller.start_session()

        await controller.restart()

        assert events[0][0] == "started"
        assert events[-1] == ("cleared", {"previous_session_id": "s-123"})

    @pytest.mark.asyncio
    async def test_close(self, controller, mock_api):
        await controller.close()

        mock_api.close.assert_awaited_once()


@pytest.mark.unit
class TestSessionControllerRecording:
    """Voice answers through the recorder."""

    @pytest.mark.asyncio
    async def test_send_recording(self, mock_api, recorder, sample_audio_chunk, mock_pyaudio):
        controller = SessionController(mock_api, recorder=recorder)
        await controller.start_session()
        await controller.start_recording()
        callback = mock_pyaudio['instance'].open.call_args.kwargs['stream_callback']
        callback(sample_audio_chunk, 1024, {}, 0)
        await asyncio.sleep(0)

        await controller.send()

        session_id, artifact, text = mock_api.send_audio_message.await_args.args
        assert session_id == "s-123"
        assert artifact.mime_type == "audio/wav"
        assert text is None
        assert controller.transcript[1].content == VOICE_MESSAGE_PLACEHOLDER
        assert recorder.state is RecorderState.IDLE
        assert recorder.has_open_stream is False

    @pytest.mark.asyncio
    async def test_send_stopped_recording(self, mock_api, recorder):
        controller = SessionController(mock_api, recorder=recorder)
        await controller.start_session()
        await controller.start_recording()
        await controller.stop_recording()

        await controller.send("")

        mock_api.send_audio_message.assert_awaited_once()
        assert recorder.state is RecorderState.IDLE

    @pytest.mark.asyncio
    async def test_text_discards_recording(self, mock_api, recorder):
        controller = SessionController(mock_api, recorder=recorder)
        await controller.start_session()
        await controller.start_recording()

        await controller.send("typed answer")

        mock_api.send_message.assert_awaited_once_with("s-123", "typed answer")
        mock_api.send_audio_message.assert_not_called()
        assert recorder.state is RecorderState.IDLE
        assert recorder.has_open_stream is False

    @pytest.mark.asyncio
    async def test_failed_audio_turn_consumes_recording(self, mock_api, recorder):
        controller = SessionController(mock_api, recorder=recorder)
        await controller.start_session()
        await controller.start_recording()
        mock_api.send_audio_message.side_effect = ApiError("upload failed", status=413)

        with pytest.raises(ApiError):
            await controller.send()

        assert len(controller.transcript) == 1
        assert recorder.state is RecorderState.IDLE
        assert recorder.take_artifact() is None

    @pytest.mark.asyncio
    async def test_cannot_record_without_session(self, mock_api, recorder):
        controller = SessionController(mock_api, recorder=recorder)

        with pytest.raises(NoActiveSessionError):
            await controller.start_recording()
        assert recorder.state is RecorderState.IDLE

    @pytest.mark.asyncio
    async def test_end_session_releases_microphone(self, mock_api, recorder):
        controller = SessionController(mock_api, recorder=recorder)
        await controller.start_session()
        await controller.start_recording()

        await controller.end_session()

        assert recorder.state is RecorderState.IDLE
        assert recorder.has_open_stream is False

    @pytest.mark.asyncio
    async def test_start_recording_without_recorder(self, controller):
        await controller.start_session()

        with pytest.raises(MicrophoneUnavailableError):
            await controller.start_recording()
