# src/emitterkit/core/cancel.py
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

Observer = Callable[[Any], None]


class CancelSignal:
    """Read side of a cancellation: query it, or observe it firing once.

    Usage:
        src = CancelSource()
        fut = emitter.wait_for("ready", signal=src.signal)
        src.cancel("shutting down")
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Any = None
        self._observers: Dict[int, Observer] = {}
        self._next_id = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Any:
        return self._reason

    def add_observer(self, fn: Observer) -> Callable[[], None]:
        """Call fn(reason) when cancelled; returns a detach callable."""
        oid = self._next_id
        self._next_id += 1
        self._observers[oid] = fn

        def detach() -> None:
            self._observers.pop(oid, None)

        return detach

    def _fire(self, reason: Any) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        observers = list(self._observers.values())
        self._observers.clear()
        errors: List[Exception] = []
        for fn in observers:
            try:
                fn(reason)
            except Exception as e:
                errors.append(e)
        if errors:
            raise errors[0]


class CancelSource:
    """Write side: owns a CancelSignal and is the only thing that can fire it."""

    def __init__(self) -> None:
        self.signal = CancelSignal()

    @property
    def cancelled(self) -> bool:
        return self.signal.cancelled

    def cancel(self, reason: Optional[Any] = None) -> None:
        self.signal._fire(reason)
