"""Event publisher for interview and recorder pub/sub topics."""

import logging
from pubsub import pub
from .models.events import SessionEvent, RecorderEvent

logger = logging.getLogger(__name__)

TRANSCRIPT_TOPIC = "interview.transcript"
PHASE_TOPIC = "interview.phase"
RECORDER_STATE_TOPIC = "recorder.state"
RECORDER_TICK_TOPIC = "recorder.tick"


class EventPublisher:
    """Publishes session and recorder events using pubsub.pub."""

    def __init__(self, prefix: str = ""):
        """Initialize event publisher.

        Args:
            prefix: Optional topic prefix, lets two clients share one process
        """
        self.prefix = f"{prefix}." if prefix else ""
        logger.info(f"EventPublisher initialized with prefix: '{prefix}'")

    def topic(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def publish_transcript_event(self, event: SessionEvent) -> None:
        pub.sendMessage(self.topic(TRANSCRIPT_TOPIC), event=event)
        logger.debug(f"Published transcript event: {event.event_type} ({event.session_id})")

    def publish_phase_event(self, event: SessionEvent) -> None:
        pub.sendMessage(self.topic(PHASE_TOPIC), event=event)
        logger.debug(f"Published phase event: {event.metadata.get('phase')}")

    def publish_recorder_state(self, event: RecorderEvent) -> None:
        pub.sendMessage(self.topic(RECORDER_STATE_TOPIC), event=event)
        logger.debug(f"Published recorder state: {event.state}")

    def publish_recorder_tick(self, event: RecorderEvent) -> None:
        pub.sendMessage(self.topic(RECORDER_TICK_TOPIC), event=event)
