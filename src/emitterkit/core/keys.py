# src/emitterkit/core/keys.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Hashable, List

GLOBAL_KEY = "*"
SEPARATORS = (".", ":")
WILDCARD = "*"


class KeyKind(Enum):
    EXACT = "exact"
    NAMESPACE = "namespace"
    GLOBAL = "global"


@dataclass(frozen=True, slots=True)
class ResolvedKey:
    """A key after classification: which table it lives in and under what name.

    For NAMESPACE the name is the prefix including its separator ("user.").
    For GLOBAL the name is always GLOBAL_KEY.
    """
    kind: KeyKind
    name: Hashable


def is_namespace_key(key: Hashable) -> bool:
    if not isinstance(key, str) or len(key) < 2:
        return False
    return key[-1] == WILDCARD and key[-2] in SEPARATORS


def classify(key: Hashable) -> ResolvedKey:
    if key == GLOBAL_KEY:
        return ResolvedKey(KeyKind.GLOBAL, GLOBAL_KEY)
    if is_namespace_key(key):
        return ResolvedKey(KeyKind.NAMESPACE, key[:-1])  # type: ignore[index]
    return ResolvedKey(KeyKind.EXACT, key)


def namespace_prefixes(key: Hashable) -> List[str]:
    """Every prefix of `key` that ends in a separator, shortest first.

    "app:user.created" -> ["app:", "app:user."]. Non-string keys have none.
    """
    if not isinstance(key, str):
        return []
    return [key[: i + 1] for i, ch in enumerate(key) if ch in SEPARATORS]
