"""Event models published on the pub/sub topics."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class SessionEvent:
    """Interview lifecycle or transcript change."""
    event_type: str  # "started", "appended", "rolled_back", "phase", "completed", "cleared"
    session_id: Optional[str]
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RecorderEvent:
    """Recorder state transition or elapsed-time tick."""
    state: str
    elapsed_seconds: int
    peak_level: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)
