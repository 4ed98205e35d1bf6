"""
ENGINE ENVELOPES

This module defines the values that travel through the engine queues.

WHAT THIS IS:
- EngineRequest: identity + payload (caller -> worker)
- EngineResponse: outcome + metadata + timing (worker -> caller)
- PollResult: the three-way outcome of a non-blocking poll

OWNERSHIP RULES:
- Once enqueued, an envelope belongs to the receiving side
- EngineResponse NEVER references the original request payload
- Only the derived metadata survives the model run

No wire format is defined here. Serving layers map these fields
into their own messages.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Generic, Optional, TypeVar

from .errors import ModelError
from .types import EngineState, PollStatus

Req = TypeVar("Req")


def format_duration(duration: timedelta) -> str:
    """
    Format a duration for humans.

    Examples:
        0.0123s -> "12.3ms"
        1.5s    -> "1.500s"
        125s    -> "2m 5.000s"
    """
    seconds = duration.total_seconds()
    if seconds < 1.0:
        return f"{seconds * 1000:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.3f}s"
    minutes, rest = divmod(seconds, 60.0)
    return f"{int(minutes)}m {rest:.3f}s"


@dataclass
class EngineRequest(Generic[Req]):
    """
    Request envelope handed to the worker.

    The id is either caller-assigned or taken from the engine counter.
    Uniqueness is only meaningful within one engine instance.
    """

    id: int
    request: Req

    def __post_init__(self):
        """Validate envelope on construction."""
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id < 0:
            raise ValueError("id must be a non-negative integer")


@dataclass
class EngineResponse:
    """
    Response envelope produced by the worker.

    Exactly one of result/error is meaningful:
    - error is None  -> result holds the model response
    - error is set   -> result is None, error holds the ModelError

    TIMING:
    - start_time: UTC wall clock when the worker dequeued the request
    - duration: monotonic time spent in the model run
    """

    id: int
    result: Any
    metadata: Any
    start_time: datetime
    duration: timedelta
    error: Optional[ModelError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def start_timestamp(self) -> float:
        """Start time as seconds since the epoch."""
        return self.start_time.timestamp()

    @property
    def duration_ms(self) -> float:
        return self.duration.total_seconds() * 1000

    @property
    def human_duration(self) -> str:
        return format_duration(self.duration)


@dataclass(frozen=True)
class PollResult:
    """
    Outcome of InferenceEngine.try_poll_response().

    SUCCESS: response holds a completed, successful EngineResponse
    EMPTY: nothing completed yet, state holds the current EngineState
    ERROR: response holds a completed EngineResponse whose run failed

    A response delivered through SUCCESS or ERROR is removed from the
    engine and is never returned again.
    """

    status: PollStatus
    response: Optional[EngineResponse] = None
    state: Optional[EngineState] = None

    @classmethod
    def success(cls, response: EngineResponse) -> "PollResult":
        return cls(status=PollStatus.SUCCESS, response=response)

    @classmethod
    def empty(cls, state: EngineState) -> "PollResult":
        return cls(status=PollStatus.EMPTY, state=state)

    @classmethod
    def failed(cls, response: EngineResponse) -> "PollResult":
        return cls(status=PollStatus.ERROR, response=response)

    @property
    def is_success(self) -> bool:
        return self.status is PollStatus.SUCCESS

    @property
    def is_empty(self) -> bool:
        return self.status is PollStatus.EMPTY

    @property
    def is_error(self) -> bool:
        return self.status is PollStatus.ERROR

    @property
    def error(self) -> Optional[ModelError]:
        """The model error of an ERROR outcome, None otherwise."""
        if self.response is None:
            return None
        return self.response.error
