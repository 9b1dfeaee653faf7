"""Allocation bookkeeping for elements and owned strings."""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from uci.errors.types import ErrorCode, UciError

T = TypeVar("T")


class AllocationError(RuntimeError):
    """Raised when an object is released twice or was never allocated here."""


class Allocator:
    """
    Hands out library-owned objects and keeps count of the live ones.

    Parameters
    ----------
    fail_at
        If set, every allocation from the ``fail_at``-th one (1-based) onward fails
        with OUT_OF_MEMORY.
        Used to simulate exhaustion at an exact point of an operation.

    Usage example
    -------------
        alloc = Allocator()
        entry = alloc.alloc("path", lambda: HistoryPath(name="/etc/config"))
        alloc.release(entry)
        assert alloc.live_count() == 0
    """

    def __init__(self, *, fail_at: Optional[int] = None) -> None:
        self.fail_at = fail_at
        self.allocations = 0
        self.releases = 0
        # keyed by id(); holding the object keeps the id from being reused
        self._live: dict[int, tuple[str, Any]] = {}

    def alloc(self, kind: str, factory: Callable[[], T]) -> T:
        """Create an object through ``factory`` and register it as live."""
        if self.fail_at is not None and self.allocations + 1 >= self.fail_at:
            raise UciError(ErrorCode.OUT_OF_MEMORY, f"cannot allocate {kind}")
        obj = factory()
        self.allocations += 1
        self._live[id(obj)] = (kind, obj)
        return obj

    def release(self, obj: Any) -> None:
        entry = self._live.get(id(obj))
        if entry is None or entry[1] is not obj:
            raise AllocationError(f"release of an object that is not live: {obj!r}")
        del self._live[id(obj)]
        self.releases += 1

    def is_live(self, obj: Any) -> bool:
        entry = self._live.get(id(obj))
        return entry is not None and entry[1] is obj

    def live_count(self, kind: Optional[str] = None) -> int:
        if kind is None:
            return len(self._live)
        return sum(1 for k, _ in self._live.values() if k == kind)
