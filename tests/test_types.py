import threading
from array import array

import pytest

from hydroboard.rid import RID
from hydroboard.types import (
    TypeFlags,
    TypeRegistry,
    VariantType,
    default_registry,
    type_key,
    variant_type_of,
)


@pytest.fixture
def registry():
    reg = TypeRegistry()
    reg.register_core_types()
    return reg


class RefCounted:
    pass


class Json(RefCounted):
    pass


class Plain:
    pass


def test_type_key_of_empty_name_is_seed():
    assert type_key("") == 5381


@pytest.mark.parametrize("name", ["String", "StringName", "int64", "Object"])
def test_type_key_is_stable_unsigned_32_bit(name):
    key = type_key(name)
    assert key == type_key(name)
    assert 0 <= key < 2**32


def test_type_key_distinguishes_names():
    assert type_key("String") != type_key("StringName")


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, VariantType.NIL),
        (True, VariantType.BOOL),
        (0, VariantType.INT),
        (1.5, VariantType.FLOAT),
        ("text", VariantType.STRING),
        (b"ab", VariantType.PACKED_BYTE_ARRAY),
        (RID(3), VariantType.RID),
        ({}, VariantType.DICTIONARY),
        ([1], VariantType.ARRAY),
        ((1,), VariantType.ARRAY),
        (len, VariantType.CALLABLE),
        (lambda: 0, VariantType.CALLABLE),
        (array("d"), VariantType.PACKED_FLOAT64_ARRAY),
        (array("f"), VariantType.PACKED_FLOAT32_ARRAY),
        (array("q"), VariantType.PACKED_INT64_ARRAY),
        (array("B"), VariantType.PACKED_BYTE_ARRAY),
        (Plain(), VariantType.OBJECT),
    ],
)
def test_variant_type_of(value, expected):
    assert variant_type_of(value) is expected


def test_gd_object_flag_covers_both_object_kinds(registry):
    obj = registry.get("Object")
    ref = registry.get("Ref<RefCounted>")
    plain = registry.get("String")
    assert obj.is_gd_object() and obj.is_object_ptr_type() and not obj.is_ref_counted()
    assert ref.is_gd_object() and ref.is_ref_counted() and not ref.is_object_ptr_type()
    assert not plain.is_gd_object()


def test_export_type_infos_contains_string(registry):
    exported = registry.export_type_infos()
    info = exported["String"]
    assert info["type_name"] == "String"
    assert info["type_key"] == type_key("String")
    assert info["variant_type"] == VariantType.STRING
    assert info["is_registered"] and info["is_variant_type"]
    assert not info["is_convertable"]


@pytest.mark.parametrize(
    "value, variant",
    [
        (5, VariantType.INT),
        (True, VariantType.BOOL),
        (2.5, VariantType.FLOAT),
        ("s", VariantType.STRING),
        ([1, 2], VariantType.ARRAY),
        ({"a": 1}, VariantType.DICTIONARY),
        (RID(9), VariantType.RID),
    ],
)
def test_fallback_matches_value_kind(registry, value, variant):
    info = registry.fallback_for(value)
    assert info.variant_type is variant
    assert not info.is_convertible()


def test_object_fallbacks(registry):
    assert registry.fallback_for(Plain()) is registry.get("Object")
    assert registry.fallback_for(Json()) is registry.get("Ref<RefCounted>")
    assert registry.fallback_for(RefCounted()) is registry.get("Ref<RefCounted>")


def test_registered_object_class_wins(registry):
    info = registry.register_type("Ref<Json>", object_class="Json", ref_counted=True)
    assert registry.fallback_for(Json()) is info
    assert info.object_class_key == type_key("Json")


def test_fallback_rejects_nil(registry):
    with pytest.raises(ValueError):
        registry.fallback_for(None)


def test_fallback_without_core_types_raises():
    with pytest.raises(LookupError):
        TypeRegistry().fallback_for(1)


def test_convertible_round_trip(registry):
    char16 = registry.get("char16")
    assert char16.is_convertible() and char16.variant_type is VariantType.INT
    assert char16.convert_out(char16.convert_in(65)) == 65
    assert char16.convert_in(65 + 0x10000) == char16.convert_in(65)


def test_non_convertible_passes_values_through(registry):
    payload = Plain()
    info = registry.get("Object")
    assert info.convert_in(payload) is payload
    assert info.convert_out(payload) is payload


def test_register_twice_returns_same_info(registry):
    first = registry.register_type("Custom")
    second = registry.register_type("Custom", VariantType.INT)
    assert first is second
    assert registry.by_type_key(first.type_key) is first


def test_non_variant_type_flags(registry):
    info = registry.register_type("Custom")
    assert info.flags == TypeFlags.IS_REGISTERED
    assert info.variant_type is VariantType.NIL
    assert info.to_dict()["is_variant_type"] is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "Variant"},
        {"name": ""},
        {"name": "Half", "variant_type": VariantType.INT, "convert_to": int},
        {"name": "NoVariant", "convert_to": int, "convert_from": int},
        {"name": "Odd", "variant_type": VariantType.FLOAT, "object_class": "Node"},
        {"name": "Orphan", "ref_counted": True},
        {"name": "Max", "variant_type": VariantType.VARIANT_MAX},
    ],
)
def test_invalid_registrations_raise(registry, kwargs):
    with pytest.raises(ValueError):
        registry.register_type(**kwargs)


def test_clear_forgets_everything(registry):
    assert len(registry) > 0
    registry.clear()
    assert len(registry) == 0
    assert not registry.is_registered("String")
    assert "String" not in registry
    with pytest.raises(LookupError):
        registry.fallback_for("s")


def test_default_registry_is_shared_and_populated():
    first = default_registry()
    assert first is default_registry()
    assert first.is_registered("String")
    assert first.get("String").variant_type is VariantType.STRING


def test_concurrent_registration_yields_single_info():
    reg = TypeRegistry()
    results = []
    lock = threading.Lock()

    def work():
        info = reg.register_type("Shared", VariantType.INT)
        with lock:
            results.append(info)

    threads = [threading.Thread(target=work) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 8
    assert all(info is results[0] for info in results)
    assert len(reg) == 1