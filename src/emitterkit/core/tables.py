# src/emitterkit/core/tables.py
from __future__ import annotations

from typing import Any, Callable, Dict, Hashable, List, Tuple

from emitterkit.core.keys import KeyKind, ResolvedKey

Handler = Callable[..., Any]
# dict used as an insertion-ordered set of handlers
HandlerSet = Dict[Handler, None]


class HandlerTables:
    """The exact / namespace / global registration tables of one emitter.

    A key only stays in a table while its handler set is non-empty.
    """

    def __init__(self) -> None:
        self.exact: Dict[Hashable, HandlerSet] = {}
        self.namespace: Dict[str, HandlerSet] = {}
        self.global_: HandlerSet = {}

    def _table(self, kind: KeyKind) -> Dict[Hashable, HandlerSet]:
        if kind is KeyKind.EXACT:
            return self.exact
        return self.namespace  # type: ignore[return-value]

    def add(self, rk: ResolvedKey, handler: Handler) -> None:
        if rk.kind is KeyKind.GLOBAL:
            self.global_[handler] = None
            return
        self._table(rk.kind).setdefault(rk.name, {})[handler] = None

    def remove(self, rk: ResolvedKey, handler: Handler) -> bool:
        """Drop one handler; returns False when it was not registered."""
        if rk.kind is KeyKind.GLOBAL:
            if handler not in self.global_:
                return False
            del self.global_[handler]
            return True
        table = self._table(rk.kind)
        hs = table.get(rk.name)
        if hs is None or handler not in hs:
            return False
        del hs[handler]
        if not hs:
            del table[rk.name]
        return True

    def snapshot(self, rk: ResolvedKey) -> Tuple[Handler, ...]:
        if rk.kind is KeyKind.GLOBAL:
            return tuple(self.global_)
        hs = self._table(rk.kind).get(rk.name)
        return tuple(hs) if hs else ()

    def count(self, rk: ResolvedKey) -> int:
        if rk.kind is KeyKind.GLOBAL:
            return len(self.global_)
        return len(self._table(rk.kind).get(rk.name, ()))

    def total(self) -> int:
        return (
            sum(len(hs) for hs in self.exact.values())
            + sum(len(hs) for hs in self.namespace.values())
            + len(self.global_)
        )

    def exact_keys(self) -> List[Hashable]:
        return list(self.exact)

    def clear(self) -> None:
        self.exact = {}
        self.namespace = {}
        self.global_ = {}
