# src/emitterkit/core/errors.py
from __future__ import annotations

from typing import Any, Callable, Hashable, Optional, Sequence

__all__ = ["EmitterError", "WaitTimeout", "Aborted", "HandlerError"]


class EmitterError(Exception):
    """Base class for everything the emitter raises itself."""


class WaitTimeout(EmitterError, TimeoutError):
    def __init__(self, key: Hashable, timeout_ms: float):
        self.key = key
        self.timeout_ms = timeout_ms
        super().__init__(f"Timed out waiting for {key!r} after {timeout_ms}ms")


class Aborted(EmitterError):
    def __init__(self, key: Hashable, reason: Any = None):
        self.key = key
        self.reason = reason
        msg = f"Aborted waiting for {key!r}"
        if reason is not None:
            msg += f": {reason}"
        super().__init__(msg)


class HandlerError(EmitterError):
    """A handler raised during emit().

    `original` is the first exception of the failing tier; `errors` holds
    every exception raised in that tier, in invocation order.
    """

    def __init__(
        self,
        key: Hashable,
        handler: Callable[..., Any],
        original: BaseException,
        errors: Optional[Sequence[BaseException]] = None,
    ):
        self.key = key
        self.handler = handler
        self.original = original
        self.errors = tuple(errors) if errors else (original,)
        name = getattr(handler, "__name__", repr(handler))
        super().__init__(f"handler {name} failed for {key!r}: {original!r}")
