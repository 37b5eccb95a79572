"""Base class for nodes living in a pipeline graph."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Mapping

from .blackboard import Blackboard
from .ports import NodeConnectionInfo, NodePortInfo
from .rid import RID

logger = logging.getLogger(__name__)

_MISSING = object()


class PipelineNode:
    """A graph node with typed ports, port aliases and named connections.

    Subclasses declare their own ``PORTS`` and ``CONNECTIONS``; those of the
    base classes are inherited and listed first.
    """

    PORTS: ClassVar[tuple[NodePortInfo, ...]] = ()
    CONNECTIONS: ClassVar[tuple[NodeConnectionInfo, ...]] = ()

    def __init__(self) -> None:
        self.id: RID = RID()
        self.name: str = ""
        self._input_aliases: dict[str, str] = {}
        self._output_aliases: dict[str, str] = {}
        self._connections: dict[str, PipelineNode | None] = {
            info.name: None for info in self.connections()
        }

    @classmethod
    def node_name(cls) -> str:
        return cls.__name__

    @classmethod
    def ports(cls) -> tuple[NodePortInfo, ...]:
        return tuple(
            port for klass in reversed(cls.__mro__) for port in vars(klass).get("PORTS", ())
        )

    @classmethod
    def connections(cls) -> tuple[NodeConnectionInfo, ...]:
        return tuple(
            info for klass in reversed(cls.__mro__) for info in vars(klass).get("CONNECTIONS", ())
        )

    @classmethod
    def _connection_info(cls, name: str) -> NodeConnectionInfo | None:
        return next((info for info in cls.connections() if info.name == name), None)

    @classmethod
    def _port_info(cls, name: str) -> NodePortInfo | None:
        return next((port for port in cls.ports() if port.name == name), None)

    def set_connection(self, name: str, node: PipelineNode | None) -> bool:
        """Link ``node`` under ``name``; a node of the wrong type clears the link."""
        info = self._connection_info(name)
        if info is None:
            if self.connections():
                logger.warning("Unknown connection: %s", name)
            return False
        if node is not None and info.node_type is not None and not isinstance(node, info.node_type):
            node = None
        self._connections[name] = node
        return True

    def get_connection(self, name: str) -> PipelineNode | None:
        if self._connection_info(name) is None:
            if self.connections():
                logger.warning("Unknown connection: %s", name)
            return None
        return self._connections.get(name)

    def input_aliases(self) -> dict[str, str]:
        return dict(self._input_aliases)

    def set_input_aliases(self, aliases: Mapping[str, str] | None) -> None:
        self._input_aliases = dict(aliases or {})

    def output_aliases(self) -> dict[str, str]:
        return dict(self._output_aliases)

    def set_output_aliases(self, aliases: Mapping[str, str] | None) -> None:
        self._output_aliases = dict(aliases or {})

    def get_input_alias(self, port: str) -> str:
        return self._input_aliases.get(port, port)

    def get_output_alias(self, port: str) -> str:
        return self._output_aliases.get(port, port)

    def apply_port_defaults(self, blackboard: Blackboard) -> None:
        """Write every input port's default value to its aliased entry."""
        for port in self.ports():
            if port.default_setter is not None:
                port.default_setter(self, blackboard)

    def port_infos(self, blackboard: Blackboard) -> list[dict[str, Any]]:
        return [port.to_dict(self, blackboard) for port in self.ports()]

    def _get_port(
        self,
        blackboard: Blackboard,
        port: str,
        default: Any = _MISSING,
        *,
        type_name: str | None = None,
        check_parents: bool = True,
    ) -> Any:
        """Read an input port through its alias, typed as the port declares."""
        info = self._port_info(port)
        if type_name is None and info is not None:
            type_name = info.type_name
        if default is _MISSING:
            default = None
            if info is not None and info.default_setter is not None:
                scratch = Blackboard(blackboard.registry)
                info.default_setter(self, scratch)
                default = scratch.get_entry(
                    self.get_input_alias(port), type_name=type_name, check_parents=False
                )
        return blackboard.get_entry(
            self.get_input_alias(port), default, type_name=type_name, check_parents=check_parents
        )

    def _set_port(
        self,
        blackboard: Blackboard,
        port: str,
        value: Any,
        *,
        type_name: str | None = None,
    ) -> None:
        """Write an output port through its alias, typed as the port declares."""
        if type_name is None:
            info = self._port_info(port)
            if info is not None:
                type_name = info.type_name
        blackboard.set_entry(self.get_output_alias(port), value, type_name)

    def supports_children(self) -> bool:
        return False

    def has_children(self) -> bool:
        return False

    def children(self) -> list[PipelineNode]:
        return []

    def descendants(self) -> list[PipelineNode]:
        return []

    def has_child(self, candidate: PipelineNode | None) -> bool:
        return False

    def has_descendant(self, candidate: PipelineNode | None) -> bool:
        return False


class ParentNode(ABC):
    """Interface of nodes that hold child nodes."""

    @abstractmethod
    def has_child_node(self, node: PipelineNode | None) -> bool:
        """Return True when ``node`` is a direct child."""

    @abstractmethod
    def remove_child_node(self, node: PipelineNode | None) -> bool:
        """Detach ``node``; return True if it was a child."""

    @abstractmethod
    def remove_all_child_nodes(self) -> None:
        """Detach every child."""