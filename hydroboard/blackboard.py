"""A thread-safe key/value store with typed entries and parent fallback."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from .types import TypeInfo, TypeRegistry, VariantType, default_registry, type_key, variant_type_of

_UNTYPED_NAMES = (None, "Variant")


@dataclass(slots=True)
class _Entry:
    info: TypeInfo
    value: Any

    def as_variant(self) -> Any:
        if not self.info.is_variant_type():
            return None
        return self.info.convert_out(self.value)


class Blackboard:
    """Named entries of registered types, optionally backed by a parent board.

    Reads may fall through to ancestors; writes always go to this board.
    """

    def __init__(self, registry: TypeRegistry | None = None) -> None:
        self._registry = registry if registry is not None else default_registry()
        self._entries: dict[str, _Entry] = {}
        self._parent: Blackboard | None = None
        self._lock = threading.RLock()

    @property
    def registry(self) -> TypeRegistry:
        return self._registry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def is_empty(self) -> bool:
        with self._lock:
            return not self._entries

    @property
    def parent(self) -> Blackboard | None:
        with self._lock:
            return self._parent

    def _ancestors(self) -> Iterator[Blackboard]:
        with self._lock:
            current = self._parent
        while current is not None:
            yield current
            with current._lock:
                current = current._parent

    def _is_valid_parent(self, candidate: Blackboard | None) -> bool:
        if candidate is None:
            return True
        if candidate is self:
            return False
        return not any(ancestor is self for ancestor in candidate._ancestors())

    def set_parent(self, parent: Blackboard | None) -> bool:
        """Attach to ``parent``; False if unchanged or if it would form a cycle."""
        with self._lock:
            if parent is self._parent or not self._is_valid_parent(parent):
                return False
            self._parent = parent
            return True

    def is_ancestor(self, candidate: Blackboard | None) -> bool:
        if candidate is None:
            return False
        return any(ancestor is candidate for ancestor in self._ancestors())

    def _lookup(self, name: str, check_parents: bool) -> _Entry | None:
        with self._lock:
            entry = self._entries.get(name)
        if entry is not None or not check_parents:
            return entry
        for ancestor in self._ancestors():
            with ancestor._lock:
                entry = ancestor._entries.get(name)
            if entry is not None:
                return entry
        return None

    def try_get_entry(
        self,
        name: str,
        *,
        type_name: str | None = None,
        check_parents: bool = True,
    ) -> tuple[bool, Any]:
        """Return ``(found, value)``.

        Without ``type_name`` the dynamic form of any entry is returned.  With
        it, the nearest entry of that name must have exactly that type.
        """
        if type_name in _UNTYPED_NAMES:
            entry = self._lookup(name, check_parents)
            if entry is None:
                return False, None
            return True, entry.as_variant()

        info = self._registry.get(type_name)
        if info is None:
            return False, None
        entry = self._lookup(name, check_parents)
        if entry is None or entry.info.type_key != info.type_key:
            return False, None
        return True, entry.value

    def get_entry(
        self,
        name: str,
        default: Any = None,
        *,
        type_name: str | None = None,
        check_parents: bool = True,
    ) -> Any:
        found, value = self.try_get_entry(name, type_name=type_name, check_parents=check_parents)
        return value if found else default

    def set_entry(self, name: str, value: Any, type_name: str | None = None) -> None:
        """Store ``value`` under ``name``.

        Without ``type_name`` the type is chosen from the value, and None
        erases the entry.  With it, the value is stored as that type,
        registering the type if it is unknown.
        """
        if type_name in _UNTYPED_NAMES:
            self._set_dynamic(name, value)
            return

        info = self._registry.register_type(type_name)
        with self._lock:
            existing = self._entries.get(name)
            if existing is not None and existing.info.type_key == info.type_key:
                existing.value = value
                return
            self._entries[name] = _Entry(info, value)

    def _set_dynamic(self, name: str, value: Any) -> None:
        incoming = variant_type_of(value)
        with self._lock:
            existing = self._entries.get(name)
            if existing is not None:
                if incoming is VariantType.NIL:
                    del self._entries[name]
                    return
                existing_type = existing.info.variant_type
                if existing_type is VariantType.OBJECT:
                    if existing.info.object_class_key == type_key(type(value).__name__):
                        existing.value = existing.info.convert_in(value)
                        return
                elif existing_type is incoming:
                    existing.value = existing.info.convert_in(value)
                    return
            elif incoming is VariantType.NIL:
                return

            info = self._registry.fallback_for(value)
            self._entries[name] = _Entry(info, info.convert_in(value))

    def entry_type_name(self, name: str) -> str:
        """Return the registered type name of the local entry ``name``."""
        with self._lock:
            try:
                return self._entries[name].info.name
            except KeyError:
                raise KeyError(name) from None

    def erase_entry(self, name: str) -> bool:
        with self._lock:
            return self._entries.pop(name, None) is not None

    def has_entry(self, name: str, check_parents: bool = True) -> bool:
        return self._lookup(name, check_parents) is not None

    def import_entries(self, data: Mapping[str, Any]) -> bool:
        """Store every item of ``data`` dynamically; False if it is empty."""
        if not data:
            return False
        with self._lock:
            for name, value in data.items():
                self._set_dynamic(name, value)
        return True

    def export_entries(self, include_parents: bool = True) -> dict[str, Any]:
        """Return the dynamic form of every entry.

        Ancestors are visited from the parent outward, and this board's own
        entries are applied last.
        """
        result: dict[str, Any] = {}
        if include_parents:
            for ancestor in self._ancestors():
                with ancestor._lock:
                    result.update({key: entry.as_variant() for key, entry in ancestor._entries.items()})
        with self._lock:
            result.update({key: entry.as_variant() for key, entry in self._entries.items()})
        return result

    def export_type_infos(self) -> dict[str, dict[str, Any]]:
        return self._registry.export_type_infos()