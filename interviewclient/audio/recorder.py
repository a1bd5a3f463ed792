"""Microphone recorder that turns a live input stream into one upload artifact."""

import asyncio
import logging
from typing import List, Optional, Sequence

import numpy as np
import pyaudio

from ..config import DEFAULT_MIME_CANDIDATES
from ..errors import AudioEncodingError, MicrophoneUnavailableError
from ..models.audio import AudioArtifact, AudioStats, RecorderState
from ..models.events import RecorderEvent
from ..publisher import EventPublisher
from .encoding import AudioEncoder, negotiate_mime_type

logger = logging.getLogger(__name__)


class AudioRecorder:
    """Records one spoken answer at a time.

    States run ``IDLE -> REQUESTING_PERMISSION -> RECORDING -> STOPPED_READY``
    and back to ``IDLE`` when the artifact is taken or the recording is
    cancelled. A failed permission request goes straight back to ``IDLE``.

    PortAudio delivers chunks on its own thread; they are handed to the event
    loop with ``call_soon_threadsafe`` so all recorder state is only touched
    from the loop.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
        mime_candidates: Optional[Sequence[str]] = None,
        encoder: Optional[AudioEncoder] = None,
        publisher: Optional[EventPublisher] = None,
        tick_interval: float = 1.0,
    ):
        """Initialize the recorder.

        Args:
            sample_rate: Capture sample rate in Hz
            chunk_size: Frames per buffer delivered by the stream callback
            channels: Number of input channels
            format: PyAudio sample format
            mime_candidates: Upload formats in preference order
            encoder: Encoder used to finalize the artifact
            publisher: Optional publisher for state and tick events
            tick_interval: Seconds between elapsed-time ticks
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format
        self.sample_width = pyaudio.get_sample_size(format)
        self.mime_candidates = list(mime_candidates or DEFAULT_MIME_CANDIDATES)
        self.encoder = encoder or AudioEncoder()
        self.publisher = publisher
        self.tick_interval = tick_interval

        self.state = RecorderState.IDLE
        self.mime_type: Optional[str] = None
        self.elapsed_seconds = 0
        self.total_chunks = 0
        self.peak_level = 0.0

        self._chunks: List[bytes] = []
        self._artifact: Optional[AudioArtifact] = None
        self._artifact_future: Optional[asyncio.Future] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self._stream: Optional[pyaudio.Stream] = None
        self._attempt = 0
        self._stopping = False

    @property
    def has_open_stream(self) -> bool:
        return self._stream is not None or self._pyaudio_instance is not None

    @property
    def has_artifact(self) -> bool:
        return self.state is RecorderState.STOPPED_READY and self._artifact is not None

    async def start(self) -> None:
        """Ask for the microphone and begin buffering audio.

        Raises:
            MicrophoneUnavailableError: permission refused or no input device
            AudioEncodingError: no mime candidate is supported
        """
        if self.state in (RecorderState.REQUESTING_PERMISSION, RecorderState.RECORDING):
            logger.warning("Recording already in progress")
            return
        if self.state is RecorderState.STOPPED_READY:
            logger.info("Discarding unsent recording before starting a new one")
            self.cancel()

        self._attempt += 1
        attempt = self._attempt
        self._loop = asyncio.get_running_loop()
        self._reset_buffers()
        self._set_state(RecorderState.REQUESTING_PERMISSION)

        try:
            pa, stream = await asyncio.to_thread(self._open_stream)
        except (OSError, ValueError) as e:
            logger.error(f"Microphone unavailable: {e}")
            if attempt == self._attempt:
                self._set_state(RecorderState.IDLE)
            raise MicrophoneUnavailableError(
                "Could not open the microphone. Check permissions and that an input device is connected."
            ) from e

        if attempt != self._attempt or self.state is not RecorderState.REQUESTING_PERMISSION:
            logger.info("Recording was cancelled while waiting for the microphone")
            self._release(pa, stream)
            return

        self._pyaudio_instance, self._stream = pa, stream
        try:
            self.mime_type = negotiate_mime_type(self.mime_candidates, self.encoder.supported_mime_types())
        except AudioEncodingError:
            self._release_stream()
            self._set_state(RecorderState.IDLE)
            raise

        try:
            self._stream.start_stream()
        except OSError as e:
            self._release_stream()
            self._set_state(RecorderState.IDLE)
            raise MicrophoneUnavailableError(f"Microphone stream failed to start: {e}") from e

        self._artifact_future = self._loop.create_future()
        self._tick_task = self._loop.create_task(self._tick())
        self._set_state(RecorderState.RECORDING)
        logger.info(f"Recording started: {self.sample_rate}Hz, {self.channels}ch, mime={self.mime_type}")

    async def stop(self) -> Optional[AudioArtifact]:
        """Finalize the recording into an artifact.

        Calling stop when not recording does nothing and returns None.
        """
        if self.state is not RecorderState.RECORDING or self._stopping:
            logger.debug(f"stop() ignored in state {self.state.value}")
            return None

        self._stopping = True
        attempt = self._attempt
        self._cancel_tick()
        self._release_stream()
        try:
            # chunks already queued by the stream callback run before we resume
            await asyncio.sleep(0)
            pcm = b"".join(self._chunks)
            self._chunks = []
            data = await self.encoder.encode(
                pcm, self.mime_type, self.sample_rate, self.channels, self.sample_width
            )
        except AudioEncodingError:
            if attempt != self._attempt:
                return None
            self._abandon_stop()
            raise
        except asyncio.CancelledError:
            if attempt == self._attempt:
                logger.info("stop() was cancelled while encoding, recording discarded")
                self._abandon_stop()
            raise

        if attempt != self._attempt or self.state is not RecorderState.RECORDING:
            logger.info("Recording was cancelled while it was being finalized")
            return None

        artifact = AudioArtifact(data=data, mime_type=self.mime_type, duration_seconds=self.elapsed_seconds)
        self._artifact = artifact
        self._stopping = False
        if self._artifact_future is not None and not self._artifact_future.done():
            self._artifact_future.set_result(artifact)
        self._set_state(RecorderState.STOPPED_READY)
        logger.info(f"Recording stopped: {artifact.size_bytes} bytes, {artifact.duration_seconds}s, "
                    f"{self.total_chunks} chunks")
        return artifact

    def cancel(self) -> None:
        """Drop the recording or pending artifact and release the microphone."""
        if self.state is RecorderState.IDLE:
            return

        logger.info(f"Cancelling recording in state {self.state.value}")
        self._attempt += 1
        self._cancel_tick()
        self._release_stream()
        self._discard_future()
        self._reset_buffers()
        self._stopping = False
        self._set_state(RecorderState.IDLE)

    def take_artifact(self) -> Optional[AudioArtifact]:
        """Hand the finalized artifact over; the recorder returns to IDLE."""
        if self.state is not RecorderState.STOPPED_READY:
            return None

        artifact = self._artifact
        self._artifact = None
        self._artifact_future = None
        self.elapsed_seconds = 0
        self._set_state(RecorderState.IDLE)
        return artifact

    async def wait_artifact(self) -> Optional[AudioArtifact]:
        """Wait for the artifact of the current recording.

        Returns None if the recording is cancelled before it is finalized.
        """
        future = self._artifact_future
        if future is None:
            return self._artifact
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            if future.cancelled():
                return None
            raise

    def close(self) -> None:
        """Tear down; no microphone stream stays open afterwards."""
        self.cancel()
        self._release_stream()

    def get_recording_stats(self) -> AudioStats:
        return AudioStats(
            state=self.state,
            elapsed_seconds=self.elapsed_seconds,
            total_chunks=self.total_chunks,
            buffered_bytes=sum(len(chunk) for chunk in self._chunks),
            peak_level=self.peak_level,
            sample_rate=self.sample_rate,
            mime_type=self.mime_type or "",
        )

    def _open_stream(self):
        pa = pyaudio.PyAudio()
        try:
            stream = pa.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=self._on_stream_data,
                start=False,
            )
        except (OSError, ValueError):
            pa.terminate()
            raise
        return pa, stream

    def _on_stream_data(self, in_data, frame_count, time_info, status):
        """PortAudio callback, runs on the PortAudio thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return (None, pyaudio.paComplete)
        try:
            loop.call_soon_threadsafe(self._append_chunk, in_data)
        except RuntimeError:
            # loop shut down between the check and the call
            return (None, pyaudio.paComplete)
        return (None, pyaudio.paContinue)

    def _append_chunk(self, data: bytes) -> None:
        if self.state is not RecorderState.RECORDING or not data:
            return
        self._chunks.append(data)
        self.total_chunks += 1
        self._update_peak(data)

    def _update_peak(self, data: bytes) -> None:
        if self.sample_width != 2:
            return
        usable = len(data) - len(data) % 2
        samples = np.frombuffer(data[:usable], dtype=np.int16)
        if samples.size:
            peak = float(np.abs(samples.astype(np.int32)).max()) / 32768.0
            self.peak_level = max(self.peak_level, peak)

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            self.elapsed_seconds += 1
            if self.publisher:
                self.publisher.publish_recorder_tick(RecorderEvent(
                    state=self.state.value,
                    elapsed_seconds=self.elapsed_seconds,
                    peak_level=self.peak_level,
                ))

    def _cancel_tick(self) -> None:
        if self._tick_task is not None:
            if not self._tick_task.done():
                self._tick_task.cancel()
            self._tick_task = None

    def _discard_future(self) -> None:
        if self._artifact_future is not None and not self._artifact_future.done():
            self._artifact_future.cancel()
        self._artifact_future = None

    def _abandon_stop(self) -> None:
        self._attempt += 1
        self._discard_future()
        self._reset_buffers()
        self._stopping = False
        self._set_state(RecorderState.IDLE)

    def _reset_buffers(self) -> None:
        self._chunks = []
        self._artifact = None
        self.elapsed_seconds = 0
        self.total_chunks = 0
        self.peak_level = 0.0

    def _release_stream(self) -> None:
        pa, stream = self._pyaudio_instance, self._stream
        self._pyaudio_instance = None
        self._stream = None
        self._release(pa, stream)

    @staticmethod
    def _release(pa, stream) -> None:
        try:
            if stream is not None:
                try:
                    if stream.is_active():
                        stream.stop_stream()
                finally:
                    stream.close()
        finally:
            if pa is not None:
                pa.terminate()

    def _set_state(self, state: RecorderState) -> None:
        if state is self.state:
            return
        logger.debug(f"Recorder state: {self.state.value} -> {state.value}")
        self.state = state
        if self.publisher:
            self.publisher.publish_recorder_state(RecorderEvent(
                state=state.value,
                elapsed_seconds=self.elapsed_seconds,
                peak_level=self.peak_level,
            ))

    def __del__(self):
        """Ensure the microphone is released on deletion."""
        if self.has_open_stream:
            self._release_stream()
