"""Interview client: turn-based interview sessions by text or voice."""

__version__ = "0.1.0"
