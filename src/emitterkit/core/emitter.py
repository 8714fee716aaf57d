# src/emitterkit/core/emitter.py
from __future__ import annotations

import asyncio
import functools
import itertools
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from emitterkit.config import EmitterConfig
from emitterkit.core import log
from emitterkit.core.cancel import CancelSignal
from emitterkit.core.errors import Aborted, HandlerError, WaitTimeout
from emitterkit.core.keys import GLOBAL_KEY, KeyKind, ResolvedKey, classify, namespace_prefixes
from emitterkit.core.metrics import Timer, gauge_set, inc
from emitterkit.core.tables import Handler, HandlerTables

_MISSING: Any = object()
_GLOBAL = classify(GLOBAL_KEY)
_instance_ids = itertools.count(1)


def _unwrap(fn: Handler) -> Handler:
    return getattr(fn, "_once_handler", fn)


def _fn_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)


class Emitter:
    """Synchronous in-process pub/sub with exact, namespace and global keys.

    Keys:
      - "*"                 global wildcard, handler(key[, payload])
      - "user.*", "user:*"  namespace wildcard, handler([payload])
      - anything else       exact key (str, int, enum...), handler([payload])

    emit() runs exact handlers, then namespace handlers (shortest prefix
    first), then global handlers. Each handler set is copied before it is
    iterated, so subscribing or unsubscribing from inside a handler only
    affects later emits.
    """

    def __init__(self, config: Optional[EmitterConfig] = None, *, name: Optional[str] = None):
        self.cfg = config or EmitterConfig()
        self.name = name or self.cfg.name or f"emitter-{next(_instance_ids)}"
        self.l = log.get(f"emitterkit.{self.name}")
        self._tables = HandlerTables()
        self._once: Dict[Tuple[ResolvedKey, Handler], Handler] = {}

    def __repr__(self) -> str:
        return f"<Emitter name={self.name!r} listeners={self._tables.total()}>"

    # -------------------- registration --------------------
    def _add(self, rk: ResolvedKey, handler: Handler) -> None:
        self._tables.add(rk, handler)
        self.l.debug("on %s=%r fn=%s", rk.kind.value, rk.name, _fn_name(handler))
        self._report_listeners()

    def _remove(self, rk: ResolvedKey, handler: Handler) -> None:
        if self._tables.remove(rk, handler):
            self.l.debug("off %s=%r fn=%s", rk.kind.value, rk.name, _fn_name(handler))
            self._report_listeners()

    def on(self, key: Hashable, handler: Handler) -> Callable[[], None]:
        """Register handler; returns an unsubscribe callable (safe to call twice)."""
        rk = classify(key)
        self._add(rk, handler)

        def unsubscribe() -> None:
            self._remove(rk, handler)

        return unsubscribe

    def off(self, key: Hashable, handler: Handler) -> None:
        """Remove handler from key, whether it was added with on() or once()."""
        rk = classify(key)
        wrapper = self._once.pop((rk, handler), None)
        if wrapper is not None:
            self._remove(rk, wrapper)
        self._remove(rk, handler)

    def once(self, key: Hashable, handler: Handler) -> None:
        rk = classify(key)
        slot = (rk, handler)
        if slot in self._once:
            return

        @functools.wraps(handler)
        def once_wrapper(*args: Any) -> None:
            # unregister first so a re-entrant emit cannot reach us again
            if self._once.get(slot) is once_wrapper:
                del self._once[slot]
            self._remove(rk, once_wrapper)
            handler(*args)

        once_wrapper._once_handler = handler  # type: ignore[attr-defined]
        self._once[slot] = once_wrapper
        self._add(rk, once_wrapper)

    # -------------------- publish --------------------
    def emit(self, key: Hashable, payload: Any = _MISSING) -> None:
        """Invoke every matching handler before returning.

        Omit payload for events that carry none: exact and namespace handlers
        are then called with no argument, global handlers with just the key.
        """
        args = () if payload is _MISSING else (payload,)
        metrics = self.cfg.metrics_enabled
        if metrics:
            inc("emitter_emit_total", emitter=self.name)

        with Timer("emitter_emit_ms", enabled=metrics, emitter=self.name):
            self._invoke(key, self._tables.snapshot(ResolvedKey(KeyKind.EXACT, key)), args)
            for prefix in namespace_prefixes(key):
                self._invoke(key, self._tables.snapshot(ResolvedKey(KeyKind.NAMESPACE, prefix)), args)
            self._invoke(key, self._tables.snapshot(_GLOBAL), (key, *args))

    def _invoke(self, key: Hashable, handlers: Sequence[Handler], args: tuple) -> None:
        errors: List[BaseException] = []
        failed: Optional[Handler] = None
        for fn in handlers:
            try:
                fn(*args)
            except Exception as e:
                if self.cfg.metrics_enabled:
                    inc("emitter_handler_errors_total", emitter=self.name)
                if self.cfg.error_policy == "propagate":
                    raise HandlerError(key, _unwrap(fn), e) from e
                if failed is None:
                    failed = _unwrap(fn)
                errors.append(e)
        if failed is not None:
            raise HandlerError(key, failed, errors[0], errors) from errors[0]

    # -------------------- await next --------------------
    def wait_for(
        self,
        key: Hashable,
        *,
        filter: Optional[Callable[[Any], bool]] = None,
        timeout_ms: Optional[float] = None,
        signal: Optional[CancelSignal] = None,
    ) -> "asyncio.Future[Any]":
        """Future resolved by the next matching emit of `key`.

        Must be called with a running event loop. The future resolves with the
        payload (None for payload-less events); for "*" it resolves with a
        (key, payload) tuple, which is also what `filter` receives. It fails
        with WaitTimeout, Aborted, or whatever `filter` raised.
        """
        if timeout_ms is not None and timeout_ms < 0:
            raise ValueError("timeout_ms must be >= 0")

        loop = asyncio.get_running_loop()
        fut: asyncio.Future[Any] = loop.create_future()

        if signal is not None and signal.cancelled:
            self._report_wait("aborted")
            fut.set_exception(Aborted(key, signal.reason))
            return fut

        rk = classify(key)
        timer: Optional[asyncio.TimerHandle] = None
        detach: Optional[Callable[[], None]] = None
        settled = False

        def teardown() -> None:
            nonlocal timer, detach
            self._remove(rk, on_event)
            if timer is not None:
                timer.cancel()
                timer = None
            if detach is not None:
                detach()
                detach = None

        def settle(outcome: str, result: Any = None, exc: Optional[BaseException] = None) -> None:
            nonlocal settled
            if settled:
                return
            settled = True
            teardown()
            self._report_wait(outcome)
            self.l.debug("wait %r -> %s", key, outcome)
            if fut.done():
                return
            if exc is not None:
                fut.set_exception(exc)
            else:
                fut.set_result(result)

        def on_event(*args: Any) -> None:
            if rk.kind is KeyKind.GLOBAL:
                value: Any = (args[0], args[1] if len(args) > 1 else None)
            else:
                value = args[0] if args else None
            try:
                ok = filter is None or filter(value)
            except Exception as e:
                settle("failed", exc=e)
                return
            if ok:
                settle("resolved", result=value)

        if timeout_ms is not None:
            timer = loop.call_later(
                timeout_ms / 1000.0, lambda: settle("timeout", exc=WaitTimeout(key, timeout_ms))
            )
        self._add(rk, on_event)
        if signal is not None:
            detach = signal.add_observer(lambda reason: settle("aborted", exc=Aborted(key, reason)))
        fut.add_done_callback(lambda f: settle("cancelled") if f.cancelled() else None)
        return fut

    # -------------------- introspection --------------------
    def listener_count(self, key: Hashable) -> int:
        return self._tables.count(classify(key))

    def event_names(self) -> List[Hashable]:
        """Exact keys with at least one handler, in first-registration order."""
        return self._tables.exact_keys()

    def clear(self) -> None:
        self._tables.clear()
        self._once.clear()
        self.l.debug("clear")
        self._report_listeners()

    # -------------------- metrics --------------------
    def _report_listeners(self) -> None:
        if self.cfg.metrics_enabled:
            gauge_set("emitter_listeners", float(self._tables.total()), emitter=self.name)

    def _report_wait(self, outcome: str) -> None:
        if self.cfg.metrics_enabled:
            inc("emitter_wait_total", emitter=self.name, outcome=outcome)


def create_emitter(config: Optional[EmitterConfig] = None) -> Emitter:
    """Always a fresh, independent emitter."""
    return Emitter(config)
