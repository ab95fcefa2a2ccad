"""
In-memory registry of protocol adapters.

The assembler looks adapters up by the ``(step kind, protocol)`` pair each
operation node reports, so supporting a new protocol is a registration rather
than a change to the assembler.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

if TYPE_CHECKING:
    from suiquencer.adapters.base import StepAdapter


AdapterKey = Tuple[str, str]


class AdapterNotFoundError(KeyError):
    """Raised when attempting to access an unknown adapter."""


class AdapterRegistry:
    """
    Stores step adapters keyed by (kind, protocol).
    """

    def __init__(self, initial: Iterable["StepAdapter"] | None = None) -> None:
        self._adapters: Dict[AdapterKey, "StepAdapter"] = {}
        for adapter in initial or ():
            self.register(adapter)

    def register(self, adapter: "StepAdapter") -> None:
        self._adapters[(adapter.kind, adapter.protocol)] = adapter

    def get(self, key: AdapterKey) -> "StepAdapter":
        try:
            return self._adapters[key]
        except KeyError as exc:
            kind, protocol = key
            raise AdapterNotFoundError(f"No adapter registered for {kind} via '{protocol}'") from exc

    def maybe_get(self, key: AdapterKey) -> Optional["StepAdapter"]:
        return self._adapters.get(key)

    def keys(self) -> List[AdapterKey]:
        return sorted(self._adapters)

    def __contains__(self, key: object) -> bool:
        return key in self._adapters
