import pytest

from hydroboard.blackboard import Blackboard
from hydroboard.ports import (
    NodeConnectionInfo,
    NodePortInfo,
    NodeState,
    PortKind,
    Stateful,
)
from hydroboard.rid import RID
from hydroboard.types import VariantType


class _Node:
    def __init__(self, aliases=None):
        self.aliases = aliases or {}

    def get_input_alias(self, port):
        return self.aliases.get(port, port)


def test_port_kind_values():
    assert PortKind(1) is PortKind.INPUT
    assert PortKind(2) is PortKind.OUTPUT
    assert PortKind(3) == PortKind.INPUT | PortKind.OUTPUT
    assert PortKind.IN_OUT == PortKind(3)


def test_create_input():
    port = NodePortInfo.create_input("value", "int32", 5)
    assert port.is_input()
    assert not port.is_output()
    assert port.port_kind is PortKind.INPUT
    assert port.variant_type is VariantType.INT
    assert port.type_name == "int32"
    assert port.default_setter is not None


def test_create_output_has_no_default():
    port = NodePortInfo.create_output("target", "String")
    assert port.is_output()
    assert not port.is_input()
    assert port.variant_type is VariantType.STRING
    assert port.default_setter is None


def test_create_in_out():
    port = NodePortInfo.create_in_out("flag", "bool", True)
    assert port.is_input() and port.is_output()
    assert port.port_kind is PortKind.IN_OUT
    assert port.variant_type is VariantType.BOOL


def test_unknown_type_is_nil():
    port = NodePortInfo.create_input("thing", "PortsTestCustomType", object())
    assert port.variant_type is VariantType.NIL


def test_to_dict_writes_default():
    port = NodePortInfo.create_input("value", "int32", 5)
    bb = Blackboard()
    result = port.to_dict(_Node(), bb)
    assert result["default_value"] == 5
    assert result["name"] == "value"
    assert result["type_name"] == "int32"
    assert result["variant_type"] == int(VariantType.INT)
    assert result["port_kind"] == int(PortKind.INPUT)
    assert result["is_input"] is True
    assert result["is_output"] is False
    assert bb.get_entry("value", type_name="int32") == 5


def test_to_dict_default_goes_to_alias():
    port = NodePortInfo.create_input("value", "int32", 7)
    bb = Blackboard()
    port.to_dict(_Node({"value": "one"}), bb)
    assert bb.get_entry("one", type_name="int32") == 7
    assert not bb.has_entry("value")


def test_to_dict_output_without_default():
    port = NodePortInfo.create_output("target", "int32")
    bb = Blackboard()
    result = port.to_dict(_Node(), bb)
    assert "default_value" not in result
    assert result["port_kind"] == int(PortKind.OUTPUT)
    assert bb.is_empty()


def test_to_dict_non_variant_type_skips_default():
    port = NodePortInfo.create_input("thing", "PortsTestOtherType", 1)
    bb = Blackboard()
    result = port.to_dict(_Node(), bb)
    assert "default_value" not in result
    assert bb.is_empty()


def test_connection_to_dict():
    info = NodeConnectionInfo("next", "SequenceNode")
    assert info.to_dict() == {"name": "next", "type_name": "SequenceNode"}


class _Counter(NodeState):
    def __init__(self):
        self.count = 0


class _StatefulNode(Stateful):
    state_type = _Counter

    def __init__(self, rid):
        self.id = rid


def test_stateful_key_and_state():
    rid = RID(42)
    node = _StatefulNode(rid)
    assert node.state_key() == rid
    first = node.create_state()
    second = node.create_state()
    assert isinstance(first, _Counter)
    assert first is not second
    first.count += 1
    assert second.count == 0


def test_stateful_default_state_type():
    class Plain(Stateful):
        pass

    node = Plain()
    node.id = RID(3)
    assert node.state_key() == RID(3)
    first = node.create_state()
    second = node.create_state()
    assert type(first) is NodeState
    assert first is not second
    with pytest.raises(AttributeError):
        Plain().state_key()