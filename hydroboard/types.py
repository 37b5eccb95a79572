"""Type descriptions and the registry the blackboard uses to store values."""

from __future__ import annotations

import array
import functools
import threading
import types
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Any, Callable

from .rid import RID

Converter = Callable[[Any], Any]


class VariantType(IntEnum):
    """Dynamic value kinds understood by the blackboard."""

    NIL = 0
    BOOL = 1
    INT = 2
    FLOAT = 3
    STRING = 4
    VECTOR2 = 5
    VECTOR2I = 6
    RECT2 = 7
    RECT2I = 8
    VECTOR3 = 9
    VECTOR3I = 10
    TRANSFORM2D = 11
    VECTOR4 = 12
    VECTOR4I = 13
    PLANE = 14
    QUATERNION = 15
    AABB = 16
    BASIS = 17
    TRANSFORM3D = 18
    PROJECTION = 19
    COLOR = 20
    STRING_NAME = 21
    NODE_PATH = 22
    RID = 23
    OBJECT = 24
    CALLABLE = 25
    SIGNAL = 26
    DICTIONARY = 27
    ARRAY = 28
    PACKED_BYTE_ARRAY = 29
    PACKED_INT32_ARRAY = 30
    PACKED_INT64_ARRAY = 31
    PACKED_FLOAT32_ARRAY = 32
    PACKED_FLOAT64_ARRAY = 33
    PACKED_STRING_ARRAY = 34
    PACKED_VECTOR2_ARRAY = 35
    PACKED_VECTOR3_ARRAY = 36
    PACKED_COLOR_ARRAY = 37
    PACKED_VECTOR4_ARRAY = 38
    VARIANT_MAX = 39


class TypeFlags(IntFlag):
    NONE = 0
    IS_REGISTERED = 1 << 0
    IS_VARIANT_TYPE = 1 << 1
    IS_OBJECT_PTR_TYPE = 1 << 2
    IS_REF_COUNTED = 1 << 3
    IS_CONVERTIBLE = 1 << 4
    IS_GD_OBJECT = IS_OBJECT_PTR_TYPE | IS_REF_COUNTED


def type_key(name: str) -> int:
    """Stable 32-bit djb2 hash of a type or class name."""
    hashv = 5381
    for char in name:
        hashv = (hashv * 33 + ord(char)) & 0xFFFFFFFF
    return hashv


_CALLABLE_TYPES = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.BuiltinMethodType,
    functools.partial,
)

_ARRAY_BY_ITEMSIZE = {
    1: VariantType.PACKED_BYTE_ARRAY,
    4: VariantType.PACKED_INT32_ARRAY,
    8: VariantType.PACKED_INT64_ARRAY,
}


def _array_variant_type(value: array.array) -> VariantType:
    code = value.typecode
    if code == "f":
        return VariantType.PACKED_FLOAT32_ARRAY
    if code == "d":
        return VariantType.PACKED_FLOAT64_ARRAY
    if code in ("u", "w"):
        return VariantType.OBJECT
    return _ARRAY_BY_ITEMSIZE.get(value.itemsize, VariantType.OBJECT)


def variant_type_of(value: Any) -> VariantType:
    """Classify a Python value as one of the dynamic value kinds."""
    if value is None:
        return VariantType.NIL
    if isinstance(value, bool):
        return VariantType.BOOL
    if isinstance(value, int):
        return VariantType.INT
    if isinstance(value, float):
        return VariantType.FLOAT
    if isinstance(value, str):
        return VariantType.STRING
    if isinstance(value, (bytes, bytearray)):
        return VariantType.PACKED_BYTE_ARRAY
    if isinstance(value, RID):
        return VariantType.RID
    if isinstance(value, dict):
        return VariantType.DICTIONARY
    if isinstance(value, (list, tuple)):
        return VariantType.ARRAY
    if isinstance(value, array.array):
        return _array_variant_type(value)
    if isinstance(value, _CALLABLE_TYPES):
        return VariantType.CALLABLE
    return VariantType.OBJECT


@dataclass(frozen=True)
class TypeInfo:
    """Everything the blackboard knows about one registered entry type."""

    name: str
    type_key: int
    variant_type: VariantType = VariantType.NIL
    object_class: str | None = None
    object_class_key: int = 0
    flags: TypeFlags = TypeFlags.NONE
    convert_to: Converter | None = field(default=None, compare=False, repr=False)
    convert_from: Converter | None = field(default=None, compare=False, repr=False)

    def _has(self, flag: TypeFlags) -> bool:
        return bool(self.flags & flag)

    def is_registered(self) -> bool:
        return self._has(TypeFlags.IS_REGISTERED)

    def is_variant_type(self) -> bool:
        return self._has(TypeFlags.IS_VARIANT_TYPE)

    def is_object_ptr_type(self) -> bool:
        return self._has(TypeFlags.IS_OBJECT_PTR_TYPE)

    def is_ref_counted(self) -> bool:
        return self._has(TypeFlags.IS_REF_COUNTED)

    def is_gd_object(self) -> bool:
        return self._has(TypeFlags.IS_GD_OBJECT)

    def is_convertible(self) -> bool:
        return self._has(TypeFlags.IS_CONVERTIBLE)

    def convert_in(self, value: Any) -> Any:
        """Turn a dynamic value into the stored form of this type."""
        if self.is_convertible() and self.convert_to is not None:
            return self.convert_to(value)
        return value

    def convert_out(self, value: Any) -> Any:
        """Turn a stored value of this type back into its dynamic form."""
        if self.is_convertible() and self.convert_from is not None:
            return self.convert_from(value)
        return value

    def to_dict(self) -> dict[str, Any]:
        return {
            "type_key": self.type_key,
            "type_name": self.name,
            "variant_type": int(self.variant_type),
            "object_class_key": self.object_class_key,
            "is_registered": self.is_registered(),
            "is_variant_type": self.is_variant_type(),
            "is_object_ptr_type": self.is_object_ptr_type(),
            "is_ref_counted": self.is_ref_counted(),
            "is_gd_object": self.is_gd_object(),
            "is_convertable": self.is_convertible(),
        }


_UINT16_MASK = 0xFFFF
_UINT32_MASK = 0xFFFFFFFF
_UINT64_MASK = 0xFFFFFFFFFFFFFFFF

_REF_FALLBACK = "Ref<RefCounted>"
_REF_BASE_CLASS = "RefCounted"

_V = VariantType

_CORE_VARIANT_TYPES: tuple[tuple[str, VariantType], ...] = (
    ("bool", _V.BOOL),
    ("uint8", _V.INT),
    ("int8", _V.INT),
    ("uint16", _V.INT),
    ("int16", _V.INT),
    ("uint32", _V.INT),
    ("int32", _V.INT),
    ("uint64", _V.INT),
    ("int64", _V.INT),
    ("float", _V.FLOAT),
    ("double", _V.FLOAT),
    ("String", _V.STRING),
    ("Vector2", _V.VECTOR2),
    ("Vector2i", _V.VECTOR2I),
    ("Rect2", _V.RECT2),
    ("Rect2i", _V.RECT2I),
    ("Vector3", _V.VECTOR3),
    ("Vector3i", _V.VECTOR3I),
    ("Transform2D", _V.TRANSFORM2D),
    ("Vector4", _V.VECTOR4),
    ("Vector4i", _V.VECTOR4I),
    ("Plane", _V.PLANE),
    ("Quaternion", _V.QUATERNION),
    ("AABB", _V.AABB),
    ("Basis", _V.BASIS),
    ("Transform3D", _V.TRANSFORM3D),
    ("Projection", _V.PROJECTION),
    ("Color", _V.COLOR),
    ("StringName", _V.STRING_NAME),
    ("NodePath", _V.NODE_PATH),
    ("RID", _V.RID),
    ("Callable", _V.CALLABLE),
    ("Signal", _V.SIGNAL),
    ("Dictionary", _V.DICTIONARY),
    ("Array", _V.ARRAY),
    ("PackedByteArray", _V.PACKED_BYTE_ARRAY),
    ("PackedInt32Array", _V.PACKED_INT32_ARRAY),
    ("PackedInt64Array", _V.PACKED_INT64_ARRAY),
    ("PackedFloat32Array", _V.PACKED_FLOAT32_ARRAY),
    ("PackedFloat64Array", _V.PACKED_FLOAT64_ARRAY),
    ("PackedStringArray", _V.PACKED_STRING_ARRAY),
    ("PackedVector2Array", _V.PACKED_VECTOR2_ARRAY),
    ("PackedVector3Array", _V.PACKED_VECTOR3_ARRAY),
    ("PackedVector4Array", _V.PACKED_VECTOR4_ARRAY),
    ("PackedColorArray", _V.PACKED_COLOR_ARRAY),
)

_CORE_FALLBACKS: dict[VariantType, str] = {
    _V.BOOL: "bool",
    _V.INT: "int64",
    _V.FLOAT: "double",
    _V.OBJECT: "Object",
    **{
        vt: name
        for name, vt in _CORE_VARIANT_TYPES
        if vt not in (_V.BOOL, _V.INT, _V.FLOAT)
    },
}


class TypeRegistry:
    """Thread-safe table of entry types, keyed by name and by type key."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._infos: dict[str, TypeInfo] = {}
        self._by_key: dict[int, TypeInfo] = {}
        self._object_classes: dict[int, TypeInfo] = {}
        self._fallbacks: dict[VariantType, TypeInfo] = {}
        self._ref_fallback: TypeInfo | None = None

    def register_type(
        self,
        name: str,
        variant_type: VariantType | int | None = None,
        *,
        object_class: str | None = None,
        ref_counted: bool = False,
        convert_to: Converter | None = None,
        convert_from: Converter | None = None,
    ) -> TypeInfo:
        """Register a type and return its info; registering twice is a no-op."""
        if not name:
            raise ValueError("type name must not be empty")
        if name == "Variant":
            raise ValueError("cannot register Variant type itself")
        if (convert_to is None) != (convert_from is None):
            raise ValueError("convert_to and convert_from must be given together")

        with self._lock:
            existing = self._infos.get(name)
            if existing is not None:
                return existing

            flags = TypeFlags.IS_REGISTERED
            vt = VariantType.NIL
            class_key = 0

            if convert_to is not None:
                if object_class is not None or ref_counted:
                    raise ValueError("convertible types cannot be object types")
                vt = self._checked_variant_type(variant_type, required=True)
                flags |= TypeFlags.IS_VARIANT_TYPE | TypeFlags.IS_CONVERTIBLE
            elif object_class is not None:
                if variant_type is not None and VariantType(variant_type) != VariantType.OBJECT:
                    raise ValueError("object types must use the OBJECT variant type")
                vt = VariantType.OBJECT
                flags |= TypeFlags.IS_VARIANT_TYPE
                flags |= TypeFlags.IS_REF_COUNTED if ref_counted else TypeFlags.IS_OBJECT_PTR_TYPE
                class_key = type_key(object_class)
            elif ref_counted:
                raise ValueError("reference-counted types need an object class")
            elif variant_type is not None:
                vt = self._checked_variant_type(variant_type, required=True)
                flags |= TypeFlags.IS_VARIANT_TYPE

            key = type_key(name)
            clash = self._by_key.get(key)
            if clash is not None:
                raise ValueError(f"type key of {name!r} collides with {clash.name!r}")

            info = TypeInfo(
                name=name,
                type_key=key,
                variant_type=vt,
                object_class=object_class,
                object_class_key=class_key,
                flags=flags,
                convert_to=convert_to,
                convert_from=convert_from,
            )
            self._infos[name] = info
            self._by_key[key] = info
            if class_key != 0:
                self._object_classes[class_key] = info
            return info

    @staticmethod
    def _checked_variant_type(variant_type: VariantType | int | None, *, required: bool) -> VariantType:
        if variant_type is None:
            if required:
                raise ValueError("a variant-compatible type is required")
            return VariantType.NIL
        vt = VariantType(variant_type)
        if vt in (VariantType.NIL, VariantType.VARIANT_MAX):
            raise ValueError(f"{vt.name} is not a storable variant type")
        return vt

    def register_core_types(self) -> None:
        """Register the built-in value types and their fallback table."""
        with self._lock:
            for name, vt in _CORE_VARIANT_TYPES:
                self.register_type(name, vt)
            self.register_type(
                "char16", VariantType.INT,
                convert_to=lambda x: int(x) & _UINT16_MASK, convert_from=int,
            )
            self.register_type(
                "char32", VariantType.INT,
                convert_to=lambda x: int(x) & _UINT32_MASK, convert_from=int,
            )
            self.register_type(
                "ObjectID", VariantType.INT,
                convert_to=lambda x: int(x) & _UINT64_MASK, convert_from=int,
            )
            self.register_type("Object", object_class="Object")
            self.register_type(_REF_FALLBACK, object_class=_REF_BASE_CLASS, ref_counted=True)

            for vt, name in _CORE_FALLBACKS.items():
                self._fallbacks[vt] = self._infos[name]
            self._ref_fallback = self._infos[_REF_FALLBACK]

    def get(self, name: str) -> TypeInfo | None:
        with self._lock:
            return self._infos.get(name)

    def is_registered(self, name: str) -> bool:
        with self._lock:
            return name in self._infos

    def by_type_key(self, type_key: int) -> TypeInfo | None:
        with self._lock:
            return self._by_key.get(type_key)

    def fallback_for(self, value: Any) -> TypeInfo:
        """Pick the entry type used to store an untyped dynamic value."""
        vt = variant_type_of(value)
        if vt is VariantType.NIL:
            raise ValueError("nil values cannot be stored")
        with self._lock:
            if vt is VariantType.OBJECT:
                cls = type(value)
                info = self._object_classes.get(type_key(cls.__name__))
                if info is None:
                    if any(base.__name__ == _REF_BASE_CLASS for base in cls.__mro__):
                        info = self._ref_fallback
                    else:
                        info = self._fallbacks.get(VariantType.OBJECT)
            else:
                info = self._fallbacks.get(vt)
        if info is None:
            raise LookupError(f"no fallback type registered for {vt.name}")
        return info

    def clear(self) -> None:
        """Forget every registered type and fallback."""
        with self._lock:
            self._infos.clear()
            self._by_key.clear()
            self._object_classes.clear()
            self._fallbacks.clear()
            self._ref_fallback = None

    def export_type_infos(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {name: info.to_dict() for name, info in self._infos.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._infos)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._infos


_default_lock = threading.Lock()
_default_holder: list[TypeRegistry] = []


def default_registry() -> TypeRegistry:
    """Return the shared registry, creating it with the core types on first use."""
    with _default_lock:
        if not _default_holder:
            registry = TypeRegistry()
            registry.register_core_types()
            _default_holder.append(registry)
        return _default_holder[0]