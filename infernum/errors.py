"""
ERROR TAXONOMY

SYNCHRONOUS (raised from schedule):
- WorkerUnavailableError: engine stopped or worker thread gone.
  The engine is permanently unusable, build a new one.

ASYNCHRONOUS (delivered through try_poll_response):
- ModelError: computed failure raised by the model
- ModelFaultError: any other exception escaping the model,
  converted so the worker keeps serving

Empty polls are not errors.
"""


class InfernumError(Exception):
    """Base class for all infernum errors."""


class SubmissionError(InfernumError):
    """A request could not be handed to the worker."""


class WorkerUnavailableError(SubmissionError):
    """The worker has terminated; the engine accepts no more requests."""

    def __init__(self, engine_name: str, reason: str = "worker is not running"):
        self.engine_name = engine_name
        self.reason = reason
        super().__init__(f"Engine {engine_name!r} cannot accept requests: {reason}")


class ModelError(InfernumError):
    """
    Computed failure of a model run.

    Models raise this (or a subclass) for ordinary failures. The engine
    delivers it to the caller as-is, without reinterpreting it.
    """


class ModelFaultError(ModelError):
    """
    Unexpected exception raised while running a request.

    Carries the original exception type name and message only. The
    original exception is logged by the worker, not attached, so its
    traceback frames cannot keep the request payload alive.
    """

    def __init__(self, fault_type: str, message: str):
        self.fault_type = fault_type
        self.message = message
        super().__init__(f"{fault_type}: {message}")


class ImageReadError(InfernumError, ValueError):
    """Image file could not be read or has an unsupported format."""
