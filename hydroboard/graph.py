"""A graph owning pipeline nodes, their root and their parentage."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, ClassVar, Iterator, Mapping, Protocol, runtime_checkable

from .pipeline_node import ParentNode, PipelineNode
from .rid import RID, RIDOwner

logger = logging.getLogger(__name__)

NodePredicate = Callable[[PipelineNode], bool]


class GraphBoundError(RuntimeError):
    """Raised when a bound graph would be modified."""


@runtime_checkable
class _SubGraphNode(Protocol):
    def get_sub_graph(self) -> Any: ...


class PipelineGraph:
    """Owns nodes by RID; node types are registered per graph class.

    While any pipeline has the graph bound, its structure cannot change.
    """

    node_type: ClassVar[type[PipelineNode]] = PipelineNode
    _registered_nodes: ClassVar[dict[str, type[PipelineNode]]] = {}
    _register_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._registered_nodes = {}
        cls._register_lock = threading.Lock()

    def __init__(self, plugin_name: str = "") -> None:
        self.id: RID = RID()
        self.plugin_name = plugin_name
        self._lock = threading.RLock()
        self._bind_lock = threading.Lock()
        self._bind_count = 0
        self._owner: RIDOwner[PipelineNode] = RIDOwner()
        self._nodes: dict[RID, PipelineNode] = {}
        self._parent_lookup: dict[RID, ParentNode] = {}
        self._connectors: list[PipelineNode] = []
        self._root: PipelineNode | None = None

    @classmethod
    def register_node(cls, node_type: type[PipelineNode]) -> bool:
        """Make ``node_type`` creatable by name; False if already registered."""
        if not (isinstance(node_type, type) and issubclass(node_type, cls.node_type)):
            raise TypeError(f"{node_type!r} is not a {cls.node_type.__name__} type")
        name = node_type.node_name()
        with cls._register_lock:
            if name in cls._registered_nodes:
                logger.warning("Node type already registered: %s", name)
                return False
            cls._registered_nodes[name] = node_type
            return True

    @classmethod
    def unregister_node(cls, node_type: type[PipelineNode]) -> bool:
        """Forget ``node_type``; False if it was not registered."""
        if not (isinstance(node_type, type) and issubclass(node_type, cls.node_type)):
            raise TypeError(f"{node_type!r} is not a {cls.node_type.__name__} type")
        name = node_type.node_name()
        with cls._register_lock:
            if cls._registered_nodes.pop(name, None) is None:
                logger.warning("Node type not registered: %s", name)
                return False
            return True

    @classmethod
    def registered_node_type_names(cls) -> list[str]:
        with cls._register_lock:
            return list(cls._registered_nodes)

    def bind(self) -> None:
        with self._bind_lock:
            self._bind_count += 1

    def unbind(self) -> None:
        with self._bind_lock:
            if self._bind_count == 0:
                raise RuntimeError("graph is not bound")
            self._bind_count -= 1

    def is_bound(self) -> bool:
        with self._bind_lock:
            return self._bind_count > 0

    def bind_count(self) -> int:
        with self._bind_lock:
            return self._bind_count

    def _ensure_unbound(self, action: str) -> None:
        if self.is_bound():
            raise GraphBoundError(f"Cannot {action} while the graph is bound")

    def create_node(
        self,
        node_type_name: str,
        input_aliases: Mapping[str, str] | None = None,
        output_aliases: Mapping[str, str] | None = None,
    ) -> RID:
        """Create a node of a registered type and return its RID."""
        self._ensure_unbound("create nodes")
        cls = type(self)
        with self._lock, cls._register_lock:
            factory = cls._registered_nodes.get(node_type_name)
            if factory is None:
                raise KeyError(f"unknown node type: {node_type_name}")
            node = factory()
            rid = self._owner.make_rid(node)
            node.id = rid
            self._nodes[rid] = node
            node.set_input_aliases(input_aliases)
            node.set_output_aliases(output_aliases)
            if node.connections():
                self._connectors.append(node)
            return rid

    def _clear_connections(self, node: PipelineNode) -> None:
        for connector in self._connectors:
            for info in connector.connections():
                if connector.get_connection(info.name) is node:
                    connector.set_connection(info.name, None)
        self._connectors = [c for c in self._connectors if c is not node]

    def _clear_parentage(self, node: PipelineNode) -> None:
        if isinstance(node, ParentNode):
            for child in node.children():
                self._parent_lookup.pop(child.id, None)
            node.remove_all_child_nodes()
        parent = self._parent_lookup.pop(node.id, None)
        if parent is not None:
            parent.remove_child_node(node)

    def destroy_node(self, rid: RID) -> None:
        """Destroy a node, unlinking it from connections and parents."""
        self._ensure_unbound("destroy nodes")
        with self._lock:
            node = self._nodes.get(rid)
            if node is None:
                raise KeyError(f"no node with {rid!r}")
            self._clear_connections(node)
            self._clear_parentage(node)
            if self._root is node:
                self._root = None
            del self._nodes[rid]
            self._owner.free(rid)

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    def nodes(self) -> list[PipelineNode]:
        with self._lock:
            return list(self._nodes.values())

    def get_node(self, rid: RID) -> PipelineNode | None:
        with self._lock:
            return self._nodes.get(rid)

    def set_root(self, rid: RID) -> None:
        self._ensure_unbound("modify the graph")
        with self._lock:
            node = self._nodes.get(rid)
            if node is None:
                raise KeyError(f"no node with {rid!r}")
            self._root = node

    def root(self) -> RID:
        with self._lock:
            return self._root.id if self._root is not None else RID()

    def root_node(self) -> PipelineNode | None:
        with self._lock:
            return self._root

    @staticmethod
    def _subtree(node: PipelineNode) -> Iterator[PipelineNode]:
        yield node
        yield from node.descendants()

    def query_node(self, rid: RID, predicate: NodePredicate) -> list[PipelineNode]:
        """Return the node and its descendants that satisfy ``predicate``."""
        with self._lock:
            node = self._nodes.get(rid)
            if node is None:
                raise KeyError(f"no node with {rid!r}")
            return [n for n in self._subtree(node) if predicate(n)]

    def query_nodes(self, predicate: NodePredicate) -> list[PipelineNode]:
        with self._lock:
            return [n for n in self._nodes.values() if predicate(n)]

    def sub_graphs(self) -> list[Any]:
        """Return the graphs held by sub-graph nodes."""
        with self._lock:
            graphs = []
            for node in self._nodes.values():
                if isinstance(node, _SubGraphNode):
                    graph = node.get_sub_graph()
                    if graph is not None:
                        graphs.append(graph)
            return graphs

    def rooted_statuses(self) -> list[tuple[PipelineNode, bool]]:
        """Pair every node with whether it is reachable from the root."""
        with self._lock:
            if self._root is None:
                return [(node, False) for node in self._nodes.values()]
            rooted = {n.id for n in self._subtree(self._root)}
            return [(node, node.id in rooted) for node in self._nodes.values()]

    def is_parented(self, node: PipelineNode | None) -> bool:
        if node is None:
            return False
        with self._lock:
            return node.id in self._parent_lookup

    def update_parent(self, node: PipelineNode, parent: ParentNode | None = None) -> None:
        """Record ``parent`` as the parent of ``node``; None forgets it.

        A node given a new parent is detached from its previous one.
        """
        if not isinstance(node, self.node_type):
            raise TypeError(f"{node!r} is not a {self.node_type.__name__}")
        with self._lock:
            previous = self._parent_lookup.get(node.id)
            if previous is not None:
                if parent is not None and previous is not parent:
                    previous.remove_child_node(node)
                if parent is None:
                    del self._parent_lookup[node.id]
                else:
                    self._parent_lookup[node.id] = parent
            elif parent is not None:
                self._parent_lookup[node.id] = parent