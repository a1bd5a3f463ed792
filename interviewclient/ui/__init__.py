"""Terminal user interface."""

from .interview_screen import InterviewScreen, format_time

__all__ = ["InterviewScreen", "format_time"]
