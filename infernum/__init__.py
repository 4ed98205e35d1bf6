"""
INFERNUM

Background inference engine with a non-blocking submit/poll protocol.

A caller submits requests to a pluggable model that runs on one dedicated
worker thread and later polls for results without blocking. Each result
carries lightweight telemetry (start time, duration, request metadata)
and never retains the original request payload.

EXPORTS:
- InferenceEngine, EngineStats: the engine
- InferenceModel, RequestMetadata: capabilities the engine consumes
- EngineRequest, EngineResponse, PollResult: envelopes
- EngineState, PollStatus: state and poll outcome enums
- Error taxonomy (errors.py)

HTTP serving (infernum.server) and the client CLI (infernum.client)
are optional layers on top of the engine.
"""

from .engine import EngineStats, InferenceEngine
from .errors import (
    ImageReadError,
    InfernumError,
    ModelError,
    ModelFaultError,
    SubmissionError,
    WorkerUnavailableError,
)
from .model import InferenceModel, RequestMetadata
from .schema import EngineRequest, EngineResponse, PollResult, format_duration
from .types import EngineState, PollStatus

__all__ = [
    "InferenceEngine",
    "EngineStats",
    "InferenceModel",
    "RequestMetadata",
    "EngineRequest",
    "EngineResponse",
    "PollResult",
    "format_duration",
    "EngineState",
    "PollStatus",
    "InfernumError",
    "SubmissionError",
    "WorkerUnavailableError",
    "ModelError",
    "ModelFaultError",
    "ImageReadError",
]

__version__ = "0.1.0"
