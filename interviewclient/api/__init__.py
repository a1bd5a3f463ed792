"""REST client for the remote interview service."""

from .client import InterviewApiClient

__all__ = ["InterviewApiClient"]
