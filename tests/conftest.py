"""
Pytest configuration and shared fixtures.

Provides small, deterministic models and requests for exercising the
engine without model weights:
- EchoModel: returns the request text, optional fixed delay
- FailingModel: always raises ModelError
- ConditionalModel: fails or crashes depending on the request text
- GatedModel: blocks inside run() until the test releases it
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np
import pytest

from infernum import InferenceEngine, ModelError, PollResult
from infernum.vision import VisionResponse


@dataclass(frozen=True)
class TextMetadata:
    text: str
    payload_bytes: int


@dataclass
class TextRequest:
    """Request with a short text field and an optional heavy payload."""

    text: str
    payload: Optional[np.ndarray] = None

    def metadata(self) -> TextMetadata:
        size = int(self.payload.nbytes) if self.payload is not None else 0
        return TextMetadata(text=str(self.text), payload_bytes=size)


class EchoModel:
    """Identity-like model: returns the request text."""

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds
        self.closed_on: Optional[str] = None
        self.close_calls = 0

    def run(self, request: TextRequest) -> str:
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        return request.text

    def close(self) -> None:
        self.close_calls += 1
        self.closed_on = threading.current_thread().name


class FailingModel:
    def run(self, request: Any) -> Any:
        raise ModelError(f"cannot process {request.text!r}")


class ConditionalModel:
    """Fails on 'fail...', crashes on 'crash...', echoes otherwise."""

    def run(self, request: TextRequest) -> str:
        if request.text.startswith("fail"):
            raise ModelError("requested failure")
        if request.text.startswith("crash"):
            raise RuntimeError("boom")
        return request.text.upper()


class GatedModel:
    """Signals `started` inside run() and waits for `release`."""

    def __init__(self, result: Any = "done"):
        self.result = result
        self.started = threading.Event()
        self.release = threading.Event()

    def run(self, request: Any) -> Any:
        self.started.set()
        if not self.release.wait(timeout=10):
            raise RuntimeError("GatedModel was never released")
        return self.result


def poll_until(engine: InferenceEngine, count: int, timeout: float = 5.0) -> List[PollResult]:
    """Poll until `count` non-empty results arrived or the timeout expires."""
    results: List[PollResult] = []
    deadline = time.monotonic() + timeout
    while len(results) < count and time.monotonic() < deadline:
        result = engine.try_poll_response()
        if result.is_empty:
            time.sleep(0.005)
            continue
        results.append(result)
    return results


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def echo_engine():
    """Engine around an instant EchoModel, stopped after the test."""
    engine = InferenceEngine(EchoModel(), name="test-echo")
    yield engine
    engine.stop(timeout=5)


@pytest.fixture
def gated_model() -> GatedModel:
    model = GatedModel(result=VisionResponse(result="done"))
    yield model
    model.release.set()


@pytest.fixture
def rgb_image() -> np.ndarray:
    """4x2 RGB image with a pure red top row."""
    image = np.zeros((2, 4, 3), dtype=np.uint8)
    image[0, :, 0] = 255
    return image
