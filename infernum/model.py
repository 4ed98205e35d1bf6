"""
MODEL & REQUEST METADATA CAPABILITIES

This module defines the two contracts the engine consumes.

WHAT THIS IS:
- InferenceModel: one computation, "run request, produce response or fail"
- RequestMetadata: lightweight summary derived from a request

WHAT THIS IS NOT:
- Model loading or device selection (owned by each model)
- Scheduling (owned by the engine)

CRITICAL CONSTRAINTS:
- run() is called ONLY from the engine worker thread
- run() is NEVER called concurrently on the same instance
- Computed failures MUST be raised as ModelError
- metadata() MUST NOT alias large request buffers
"""

from abc import ABC, abstractmethod
from typing import Any


def _has_method(cls: type, name: str) -> bool:
    return any(callable(vars(base).get(name)) for base in cls.__mro__)


class InferenceModel(ABC):
    """
    Pluggable unit of computation owned by an InferenceEngine.

    A model is stateful and mutable. The engine moves it onto the
    worker thread at construction; callers must not touch it afterwards.

    Any object with a callable ``run`` attribute is treated as an
    InferenceModel, subclassing is optional.

    Example:
        class UpperModel(InferenceModel):
            def run(self, request):
                if not request.text:
                    raise ModelError("empty text")
                return request.text.upper()
    """

    @abstractmethod
    def run(self, request: Any) -> Any:
        """
        Run inference on one request.

        Args:
            request: Model-defined request object (consumed by this call)

        Returns:
            Model-defined response object

        Raises:
            ModelError: Ordinary computed failure
        """
        raise NotImplementedError

    def close(self) -> None:
        """
        Release model resources.

        Called once from the worker thread when the engine stops.
        Default: no-op.
        """

    @classmethod
    def __subclasshook__(cls, subclass: type):
        if cls is InferenceModel:
            return _has_method(subclass, "run")
        return NotImplemented


class RequestMetadata(ABC):
    """
    Capability of a request type to summarize itself cheaply.

    The engine calls metadata() once per request, before the request is
    handed to the model, and attaches the result to the response. The
    returned value must be independently owned: copy strings and shapes,
    never keep a reference to image or tensor buffers.
    """

    @abstractmethod
    def metadata(self) -> Any:
        """Return a lightweight, side-effect-free summary of this request."""
        raise NotImplementedError

    @classmethod
    def __subclasshook__(cls, subclass: type):
        if cls is RequestMetadata:
            return _has_method(subclass, "metadata")
        return NotImplemented


def is_model(obj: Any) -> bool:
    """True if obj can be driven by an engine (has a callable ``run``)."""
    return callable(getattr(obj, "run", None))


def provides_metadata(obj: Any) -> bool:
    """True if obj can summarize itself (has a callable ``metadata``)."""
    return callable(getattr(obj, "metadata", None))
