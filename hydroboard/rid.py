"""Opaque resource identifiers and the owners that map them to objects."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")

_id_source = itertools.count(1)
_id_lock = threading.Lock()


def _next_id() -> int:
    with _id_lock:
        return next(_id_source)


@dataclass(frozen=True, order=True)
class RID:
    """An opaque handle; the zero id is the invalid handle."""

    id: int = 0

    def is_valid(self) -> bool:
        """Return True when this handle refers to something."""
        return self.id != 0


class RIDOwner(Generic[T]):
    """Hands out unique RIDs for objects and resolves them back."""

    def __init__(self) -> None:
        self._objects: dict[RID, T] = {}
        self._lock = threading.Lock()

    def make_rid(self, obj: T) -> RID:
        """Register ``obj`` and return a new handle for it."""
        rid = RID(_next_id())
        with self._lock:
            self._objects[rid] = obj
        return rid

    def get(self, rid: RID) -> T | None:
        """Return the object behind ``rid``, or None if it is not owned here."""
        with self._lock:
            return self._objects.get(rid)

    def owns(self, rid: RID) -> bool:
        """Return True when ``rid`` was made by this owner and not yet freed."""
        with self._lock:
            return rid in self._objects

    def free(self, rid: RID) -> T:
        """Release ``rid`` and return the object it referred to."""
        with self._lock:
            try:
                return self._objects.pop(rid)
            except KeyError:
                raise KeyError(f"{rid!r} is not owned by this owner") from None

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)

    def __iter__(self) -> Iterator[RID]:
        with self._lock:
            return iter(list(self._objects))