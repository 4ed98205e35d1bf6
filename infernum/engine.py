"""
INFERENCE ENGINE

This module runs a pluggable model on one dedicated background thread and
exposes a non-blocking submit/poll protocol.

WHAT THIS IS:
- One model, one worker thread, two FIFO queues, one state cell
- Non-blocking schedule() and try_poll_response()
- Per-request telemetry (start time, duration, derived metadata)

WHAT THIS IS NOT:
- Request prioritization (strict FIFO only)
- Multi-worker execution (exactly one worker per engine)
- Persistence (pending and completed work is lost on stop)
- Cancellation (a started run always completes)

EXECUTION MODEL:
- Caller thread(s): schedule() enqueues, try_poll_response() dequeues
- Worker thread: dequeue -> metadata -> run -> enqueue response
- Serial execution: at most one run() in flight per engine
- Responses are delivered in submission order

SHUTDOWN:
- stop() closes submission and enqueues a sentinel behind queued work
- The in-flight run (and, by default, queued work) completes
- stop() joins the worker; the model is closed on the worker thread
- A weakref finalizer performs the same shutdown if the engine is
  garbage collected or the interpreter exits without stop()

FAULT POLICY:
- ModelError from run(): delivered as an ERROR poll outcome
- Any other Exception from run() or metadata(): logged, converted to
  ModelFaultError, delivered as ERROR; the worker keeps serving
- BaseException (SystemExit, KeyboardInterrupt): terminates the worker;
  schedule() then raises WorkerUnavailableError and polling returns
  EMPTY(IDLE) forever
"""

import itertools
import queue
import threading
import time
import weakref
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from loguru import logger

from .errors import ModelError, ModelFaultError, WorkerUnavailableError
from .model import InferenceModel, is_model, provides_metadata
from .schema import EngineRequest, EngineResponse, PollResult
from .types import EngineState

# Shutdown marker placed on the request queue
_SHUTDOWN = object()


@dataclass(frozen=True)
class EngineStats:
    """Point-in-time engine counters."""

    total_scheduled: int
    total_completed: int
    total_failed: int
    pending: int
    avg_duration_ms: float
    last_duration_ms: Optional[float]
    uptime_seconds: float


class _StateCell:
    """Lock-protected engine state, written by the worker, read by callers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._state = EngineState.IDLE

    def get(self) -> EngineState:
        with self._lock:
            return self._state

    def set(self, state: EngineState) -> None:
        with self._lock:
            self._state = state


class _Counters:
    """Request counters shared between caller and worker."""

    def __init__(self):
        self._lock = threading.Lock()
        self.scheduled = 0
        self.completed = 0
        self.failed = 0
        self.discarded = 0
        self.total_duration = 0.0
        self.last_duration: Optional[float] = None
        self.started_at = time.monotonic()

    def record_scheduled(self) -> None:
        with self._lock:
            self.scheduled += 1

    def record_discarded(self, count: int) -> None:
        with self._lock:
            self.discarded += count

    def record_completed(self, duration: float, failed: bool) -> None:
        with self._lock:
            self.completed += 1
            if failed:
                self.failed += 1
            self.total_duration += duration
            self.last_duration = duration

    def pending(self) -> int:
        with self._lock:
            return self.scheduled - self.completed - self.discarded

    def snapshot(self) -> EngineStats:
        with self._lock:
            avg = (self.total_duration / self.completed * 1000) if self.completed else 0.0
            last = self.last_duration * 1000 if self.last_duration is not None else None
            return EngineStats(
                total_scheduled=self.scheduled,
                total_completed=self.completed,
                total_failed=self.failed,
                pending=self.scheduled - self.completed - self.discarded,
                avg_duration_ms=avg,
                last_duration_ms=last,
                uptime_seconds=time.monotonic() - self.started_at,
            )


class _Worker:
    """
    The engine's single background execution unit.

    Holds every resource the thread touches (model, queues, state,
    counters) and nothing else. In particular it never references the
    InferenceEngine, so the engine can be garbage collected while the
    worker is alive and the finalizer can shut it down.
    """

    def __init__(
        self,
        name: str,
        model: InferenceModel,
        requests: "queue.Queue[Any]",
        responses: "queue.Queue[EngineResponse]",
        state: _StateCell,
        counters: _Counters,
    ):
        self.name = name
        self._model = model
        self._requests = requests
        self._responses = responses
        self._state = state
        self._counters = counters
        self.thread = threading.Thread(
            target=self._loop,
            name=f"{name}-worker",
            daemon=True,
        )

    def start(self) -> None:
        self.thread.start()

    def is_alive(self) -> bool:
        return self.thread.is_alive()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Enqueue the shutdown sentinel and wait for the thread to exit."""
        self._requests.put(_SHUTDOWN)
        if self.thread is threading.current_thread():
            return
        self.thread.join(timeout)
        if self.thread.is_alive():
            logger.warning(
                f"Engine {self.name!r} worker still running after {timeout}s, "
                f"in-flight request has not finished"
            )

    def _loop(self) -> None:
        logger.info(f"Engine {self.name!r} worker started")
        envelope = None
        try:
            while True:
                envelope = self._requests.get()
                if envelope is _SHUTDOWN:
                    envelope = None
                    break
                self._process(envelope)
                # The payload must not outlive its run
                envelope = None
        finally:
            if envelope is not None:
                # Interrupted mid-run, this request will never complete
                logger.error(
                    f"Engine {self.name!r} worker died while processing request {envelope.id}"
                )
                self._counters.record_discarded(1)
                envelope = None
            self._state.set(EngineState.IDLE)
            self._close_model()
            logger.info(f"Engine {self.name!r} worker exited")

    def _process(self, envelope: EngineRequest) -> None:
        request_id = envelope.id
        logger.debug(f"Engine {self.name!r} scheduling request {request_id}")

        self._state.set(EngineState.PROCESSING)
        start_time = datetime.now(timezone.utc)
        started = time.perf_counter()
        metadata = None
        result = None
        error: Optional[ModelError] = None

        try:
            metadata = envelope.request.metadata()
            request, envelope.request = envelope.request, None
            result = self._model.run(request)
            del request
        except ModelError as e:
            logger.debug(f"Engine {self.name!r} request {request_id} failed: {e}")
            error = _detach_tracebacks(e)
        except Exception as e:
            logger.opt(exception=e).error(
                f"Engine {self.name!r} request {request_id} raised an unexpected "
                f"{type(e).__name__}, converting to ModelFaultError"
            )
            error = ModelFaultError(type(e).__name__, str(e))

        elapsed = time.perf_counter() - started
        response = EngineResponse(
            id=request_id,
            result=result,
            metadata=metadata,
            start_time=start_time,
            duration=timedelta(seconds=elapsed),
            error=error,
        )

        self._counters.record_completed(elapsed, failed=error is not None)
        self._responses.put(response)
        self._state.set(EngineState.IDLE)

        logger.debug(
            f"Engine {self.name!r} request {request_id} completed "
            f"in {response.human_duration} (ok={error is None})"
        )

    def _close_model(self) -> None:
        close = getattr(self._model, "close", None)
        if not callable(close):
            return
        try:
            close()
        except Exception as e:
            logger.warning(f"Engine {self.name!r} model close failed: {e}")


def _detach_tracebacks(error: BaseException) -> BaseException:
    """
    Clear the traceback of error and of every exception chained to it.

    Tracebacks hold the model frames, and those frames hold the request
    payload. The error is handed to the caller, so nothing in its
    __cause__/__context__ chain may keep a frame alive.
    """
    seen = set()
    chain: List[Optional[BaseException]] = [error]
    while chain:
        current = chain.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        current.__traceback__ = None
        chain.append(current.__cause__)
        chain.append(current.__context__)
    return error


def _finalize(worker: _Worker) -> None:
    if worker.is_alive():
        logger.debug(f"Engine {worker.name!r} collected, stopping worker")
        worker.shutdown()


class InferenceEngine:
    """
    Background inference engine owning one model and one worker thread.

    LIFECYCLE:
    1. Construct with a model (worker starts immediately, state IDLE)
    2. schedule() requests, try_poll_response() for results
    3. stop() (or leave a `with` block) to drain and join the worker

    THREAD SAFETY:
    - schedule() and try_poll_response() may be called from any thread
    - The model is only ever touched by the worker thread

    Example:
        with InferenceEngine(MyModel()) as engine:
            engine.schedule(MyRequest(prompt="hello", image=img))
            result = engine.try_poll_response()
            if result.is_success:
                print(result.response.result, result.response.human_duration)
    """

    def __init__(self, model: InferenceModel, name: str = "infernum"):
        """
        Create the engine and start its worker.

        Args:
            model: Object implementing InferenceModel (ownership is taken)
            name: Engine name used in logs and the worker thread name

        Raises:
            TypeError: If model does not provide run()
        """
        if not is_model(model):
            raise TypeError(
                f"model must implement InferenceModel (a run() method), "
                f"got {type(model).__name__}"
            )

        self.name = name
        self._requests: "queue.Queue[Any]" = queue.Queue()
        self._responses: "queue.Queue[EngineResponse]" = queue.Queue()
        self._state = _StateCell()
        self._counters = _Counters()
        self._ids = itertools.count()
        self._submit_lock = threading.Lock()
        self._closed = False

        self._worker = _Worker(
            name=name,
            model=model,
            requests=self._requests,
            responses=self._responses,
            state=self._state,
            counters=self._counters,
        )
        self._worker.start()
        self._finalizer = weakref.finalize(self, _finalize, self._worker)

        logger.info(f"Engine {name!r} created with model {type(model).__name__}")

    @property
    def state(self) -> EngineState:
        """Current engine state (advisory, may be momentarily stale)."""
        return self._state.get()

    @property
    def pending(self) -> int:
        """Accepted requests whose response has not been produced yet."""
        return self._counters.pending()

    @property
    def is_running(self) -> bool:
        return not self._closed and self._worker.is_alive()

    def stats(self) -> EngineStats:
        return self._counters.snapshot()

    def schedule(self, request: Any, request_id: Optional[int] = None) -> int:
        """
        Submit a request without blocking.

        Args:
            request: Model request implementing RequestMetadata
            request_id: Optional caller-assigned id; engine-assigned if None

        Returns:
            The id attached to the request envelope

        Raises:
            TypeError: If request does not provide metadata()
            WorkerUnavailableError: If the engine is stopped or its worker died
        """
        if not provides_metadata(request):
            raise TypeError(
                f"request must implement RequestMetadata (a metadata() method), "
                f"got {type(request).__name__}"
            )

        with self._submit_lock:
            if self._closed:
                raise WorkerUnavailableError(self.name, "engine has been stopped")
            if not self._worker.is_alive():
                logger.error(f"Engine {self.name!r} worker is no longer running")
                raise WorkerUnavailableError(self.name, "worker thread has terminated")

            if request_id is None:
                request_id = next(self._ids)
            envelope = EngineRequest(id=request_id, request=request)
            self._counters.record_scheduled()
            self._requests.put_nowait(envelope)

        logger.debug(f"Engine {self.name!r} accepted request {request_id}")
        return request_id

    def try_poll_response(self) -> PollResult:
        """
        Retrieve one completed response without blocking.

        Returns:
            PollResult.success(response) - a successful run, removed from the engine
            PollResult.failed(response)  - a failed run, removed from the engine
            PollResult.empty(state)      - nothing completed yet
        """
        try:
            response = self._responses.get_nowait()
        except queue.Empty:
            return PollResult.empty(self.state)

        if response.error is not None:
            return PollResult.failed(response)
        return PollResult.success(response)

    def stop(self, timeout: Optional[float] = None, discard_pending: bool = False) -> None:
        """
        Stop the engine and join its worker.

        Args:
            timeout: Maximum seconds to wait for the worker (None = wait)
            discard_pending: Drop queued requests that have not started yet

        Idempotent. The in-flight run, if any, always completes.
        Responses already produced stay pollable.
        """
        with self._submit_lock:
            if self._closed:
                return
            self._closed = True

        logger.info(f"Stopping engine {self.name!r}")

        if discard_pending:
            dropped = self._drain_requests()
            if dropped:
                self._counters.record_discarded(dropped)
                logger.warning(
                    f"Engine {self.name!r} discarded {dropped} queued request(s)"
                )

        self._finalizer.detach()
        self._worker.shutdown(timeout)

    def _drain_requests(self) -> int:
        dropped = 0
        while True:
            try:
                self._requests.get_nowait()
            except queue.Empty:
                return dropped
            dropped += 1

    def __enter__(self) -> "InferenceEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def __repr__(self) -> str:
        return (
            f"InferenceEngine(name={self.name!r}, "
            f"state={self.state.value}, "
            f"pending={self.pending}, "
            f"running={self.is_running})"
        )
