"""Mime type negotiation and PCM encoding for recorded answers."""

import asyncio
import io
import logging
import shutil
import wave
from typing import FrozenSet, Iterable, Optional

from ..errors import AudioEncodingError

logger = logging.getLogger(__name__)

WAV_MIME = "audio/wav"

# ffmpeg output arguments per container/codec candidate
FFMPEG_OUTPUT_ARGS = {
    "audio/ogg": ["-f", "ogg", "-c:a", "libopus"],
    "audio/webm;codecs=opus": ["-f", "webm", "-c:a", "libopus"],
    "audio/webm": ["-f", "webm", "-c:a", "libopus"],
    "audio/flac": ["-f", "flac"],
}

# raw PCM formats for the signed pyaudio sample formats (paInt8, paInt16, paInt32)
_PCM_FORMATS = {1: "s8", 2: "s16le", 4: "s32le"}


def negotiate_mime_type(candidates: Iterable[str], supported: Iterable[str]) -> str:
    """Return the first candidate, in preference order, that is supported.

    The result depends only on the two arguments.
    """
    candidates = list(candidates)
    supported_set = frozenset(supported)
    for candidate in candidates:
        if candidate in supported_set:
            return candidate
    raise AudioEncodingError(
        f"None of the mime candidates {candidates} are supported "
        f"(supported: {sorted(supported_set)})"
    )


def pcm_to_wav(pcm: bytes, sample_rate: int, channels: int, sample_width: int = 2) -> bytes:
    """Wrap raw PCM frames in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buffer.getvalue()


class AudioEncoder:
    """Turns raw PCM into one of the supported upload formats.

    WAV is always available. The compressed containers need an ffmpeg binary.
    """

    def __init__(self, ffmpeg_path: Optional[str] = None):
        self.ffmpeg_path = shutil.which(ffmpeg_path or "ffmpeg")
        if self.ffmpeg_path:
            logger.info(f"AudioEncoder using ffmpeg at {self.ffmpeg_path}")
        else:
            logger.info("ffmpeg not found, recordings will be uploaded as WAV")

    def supported_mime_types(self) -> FrozenSet[str]:
        supported = {WAV_MIME}
        if self.ffmpeg_path:
            supported.update(FFMPEG_OUTPUT_ARGS)
        return frozenset(supported)

    async def encode(self, pcm: bytes, mime_type: str, sample_rate: int,
                     channels: int, sample_width: int = 2) -> bytes:
        """Encode PCM frames as ``mime_type``.

        Raises:
            AudioEncodingError: if the mime type is unsupported or ffmpeg fails
        """
        if mime_type == WAV_MIME:
            return pcm_to_wav(pcm, sample_rate, channels, sample_width)

        if mime_type not in FFMPEG_OUTPUT_ARGS or not self.ffmpeg_path:
            raise AudioEncodingError(f"Cannot encode audio as {mime_type}")
        if sample_width not in _PCM_FORMATS:
            raise AudioEncodingError(f"Unsupported sample width: {sample_width}")

        args = [
            self.ffmpeg_path, "-hide_banner", "-loglevel", "error",
            "-f", _PCM_FORMATS[sample_width],
            "-ar", str(sample_rate),
            "-ac", str(channels),
            "-i", "pipe:0",
            *FFMPEG_OUTPUT_ARGS[mime_type],
            "pipe:1",
        ]
        logger.debug(f"Encoding {len(pcm)} PCM bytes as {mime_type}")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                stdout, stderr = await process.communicate(pcm)
            except asyncio.CancelledError:
                _kill(process)
                await process.wait()
                raise
        except OSError as e:
            raise AudioEncodingError(f"Failed to run ffmpeg: {e}") from e

        if process.returncode != 0:
            raise AudioEncodingError(
                f"ffmpeg exited with {process.returncode}: {stderr.decode(errors='replace').strip()}"
            )
        return stdout


def _kill(process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass
