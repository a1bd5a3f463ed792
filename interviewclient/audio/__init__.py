"""Audio capture and encoding module."""

from .recorder import AudioRecorder
from .encoding import AudioEncoder, negotiate_mime_type, pcm_to_wav

__all__ = [
    'AudioRecorder',
    'AudioEncoder',
    'negotiate_mime_type',
    'pcm_to_wav',
]
