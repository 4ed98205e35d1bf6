"""
ENGINE TYPES

Enums shared by the engine, its envelopes and the serving layer.
No execution logic lives here.
"""

from enum import Enum


class EngineState(Enum):
    """
    Externally observable engine state.

    IDLE: No request is currently executing
    PROCESSING: The worker is running exactly one request

    State transitions (worker thread only):
    - IDLE -> PROCESSING (request dequeued)
    - PROCESSING -> IDLE (response enqueued, success or failure)

    There is no terminated state. A stopped engine reports IDLE and
    rejects new submissions.
    """
    IDLE = "idle"
    PROCESSING = "processing"

    def as_str(self) -> str:
        """Return the state as a lowercase string."""
        return self.value


class PollStatus(Enum):
    """Outcome of a non-blocking poll."""
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"
