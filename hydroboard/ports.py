"""Port and connection descriptions for pipeline nodes, and node state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Protocol

from .rid import RID
from .types import VariantType, default_registry

if TYPE_CHECKING:
    from .blackboard import Blackboard


class PortKind(IntFlag):
    """Direction of a node port."""

    NONE = 0
    INPUT = 1 << 0
    OUTPUT = 1 << 1
    IN_OUT = INPUT | OUTPUT


class _AliasedNode(Protocol):
    def get_input_alias(self, port: str) -> str: ...


DefaultSetter = Callable[[_AliasedNode, "Blackboard"], None]


def _resolve_variant_type(type_name: str) -> VariantType:
    info = default_registry().get(type_name)
    if info is not None and info.is_variant_type():
        return info.variant_type
    return VariantType.NIL


@dataclass(frozen=True)
class NodePortInfo:
    """A named, typed port through which a node reads or writes the blackboard."""

    name: str
    type_name: str
    variant_type: VariantType = VariantType.NIL
    port_kind: PortKind = PortKind.NONE
    default_setter: DefaultSetter | None = field(default=None, compare=False, repr=False)

    def is_input(self) -> bool:
        return bool(self.port_kind & PortKind.INPUT)

    def is_output(self) -> bool:
        return bool(self.port_kind & PortKind.OUTPUT)

    def to_dict(self, node: _AliasedNode, blackboard: Blackboard) -> dict[str, Any]:
        """Describe the port; an input's default is written to ``blackboard`` first."""
        result: dict[str, Any] = {
            "name": self.name,
            "type_name": self.type_name,
            "variant_type": int(self.variant_type),
        }
        if self.default_setter is not None and self.variant_type is not VariantType.NIL:
            self.default_setter(node, blackboard)
            result["default_value"] = blackboard.get_entry(self.name)
        result["port_kind"] = int(self.port_kind)
        result["is_input"] = self.is_input()
        result["is_output"] = self.is_output()
        return result

    @classmethod
    def _create(
        cls,
        name: str,
        type_name: str,
        kind: PortKind,
        setter: DefaultSetter | None = None,
    ) -> NodePortInfo:
        return cls(
            name=name,
            type_name=type_name,
            variant_type=_resolve_variant_type(type_name),
            port_kind=kind,
            default_setter=setter,
        )

    @staticmethod
    def _default_writer(name: str, type_name: str, default: Any) -> DefaultSetter:
        def write_default(node: _AliasedNode, blackboard: Blackboard) -> None:
            blackboard.set_entry(node.get_input_alias(name), default, type_name)

        return write_default

    @classmethod
    def create_input(cls, name: str, type_name: str, default: Any) -> NodePortInfo:
        return cls._create(name, type_name, PortKind.INPUT, cls._default_writer(name, type_name, default))

    @classmethod
    def create_output(cls, name: str, type_name: str) -> NodePortInfo:
        return cls._create(name, type_name, PortKind.OUTPUT)

    @classmethod
    def create_in_out(cls, name: str, type_name: str, default: Any) -> NodePortInfo:
        return cls._create(name, type_name, PortKind.IN_OUT, cls._default_writer(name, type_name, default))


@dataclass(frozen=True)
class NodeConnectionInfo:
    """A named link from one node to another node of a given type."""

    name: str
    type_name: str
    node_type: type | None = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type_name": self.type_name}


class NodeState:
    """Mutable per-pipeline state belonging to one stateful node."""


class Stateful:
    """Mixin for nodes that keep separate state in every pipeline running them."""

    state_type: ClassVar[type[NodeState]] = NodeState
    id: RID

    def state_key(self) -> RID:
        """Key under which a pipeline stores this node's state."""
        return self.id

    def create_state(self) -> NodeState:
        """Return a fresh state object for a new pipeline."""
        return self.state_type()