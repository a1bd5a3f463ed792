"""Services layer for interview session logic."""

from .phase_controller import PhaseController
from .dispatcher import MessageDispatcher
from .session_controller import SessionController

__all__ = [
    "PhaseController",
    "MessageDispatcher",
    "SessionController",
]
