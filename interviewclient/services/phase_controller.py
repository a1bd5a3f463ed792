"""Interview phase tracking."""

import logging
from typing import Dict, Optional

from ..errors import PhaseRegressionError
from ..models.interview import InterviewPhase

logger = logging.getLogger(__name__)

TOTAL_STEPS = 6

PHASE_LABELS: Dict[InterviewPhase, str] = {
    InterviewPhase.OPENING: "Opening",
    InterviewPhase.BEHAVIORAL_1: "Behavioral question",
    InterviewPhase.BEHAVIORAL_2: "Behavioral question",
    InterviewPhase.LEGAL_LOGIC: "Legal reasoning",
    InterviewPhase.MOTIVATION: "Motivation",
    InterviewPhase.CLOSING: "Closing",
    InterviewPhase.COMPLETED: "Interview complete",
}

PHASE_PROGRESS: Dict[InterviewPhase, int] = {
    InterviewPhase.OPENING: 1,
    InterviewPhase.BEHAVIORAL_1: 2,
    InterviewPhase.BEHAVIORAL_2: 3,
    InterviewPhase.LEGAL_LOGIC: 4,
    InterviewPhase.MOTIVATION: 5,
    InterviewPhase.CLOSING: 6,
    InterviewPhase.COMPLETED: 6,
}


class PhaseController:
    """Holds the current interview phase as reported by the service."""

    def __init__(self, initial: InterviewPhase = InterviewPhase.OPENING):
        self._phase = initial

    @property
    def phase(self) -> InterviewPhase:
        return self._phase

    def advance(self, new_phase: InterviewPhase) -> InterviewPhase:
        """Accept the phase from a start/chat response.

        Raises:
            PhaseRegressionError: if ``new_phase`` is ordered before the
                current phase. The current phase is left unchanged.
        """
        if new_phase < self._phase:
            logger.error(f"Service reported phase regression: {self._phase.value} -> {new_phase.value}")
            raise PhaseRegressionError(self._phase, new_phase)

        if new_phase is not self._phase:
            logger.info(f"Phase advanced: {self._phase.value} -> {new_phase.value}")
        self._phase = new_phase
        return self._phase

    def progress(self) -> int:
        return PHASE_PROGRESS[self._phase]

    def label(self, phase: Optional[InterviewPhase] = None) -> str:
        return PHASE_LABELS[phase or self._phase]

    def is_complete(self) -> bool:
        return self._phase is InterviewPhase.COMPLETED

    def reset(self, phase: InterviewPhase = InterviewPhase.OPENING) -> None:
        """Start over; only used when a session begins or ends."""
        self._phase = phase
