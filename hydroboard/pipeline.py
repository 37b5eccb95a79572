"""A running instance of a pipeline graph with its own blackboard and node state."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Mapping

from .blackboard import Blackboard
from .graph import PipelineGraph
from .pipeline_node import PipelineNode
from .ports import NodeState, Stateful
from .rid import RID

ERROR_ENTRY = "_error"
_ERROR_TYPE = "String"


class Pipeline(ABC):
    """Executes a bound graph against a private execution blackboard.

    The execution blackboard is parented to the source blackboard, so reads
    fall through to it while writes stay local.  Every stateful node of the
    graph gets its own state object for this pipeline.  Subclasses supply the
    actual traversal in ``_execute`` and ``_halt``.
    """

    def __init__(
        self,
        plugin_name: str,
        graph: PipelineGraph,
        source_blackboard: Blackboard | None = None,
        owns_source_blackboard: bool = False,
    ) -> None:
        self.id: RID = RID()
        self.plugin_name = plugin_name
        self.owns_source_blackboard = owns_source_blackboard
        self._lock = threading.RLock()
        self._closed = False
        self._graph = graph

        registry = source_blackboard.registry if source_blackboard is not None else None
        self._blackboard = Blackboard(registry)
        self._blackboard.set_parent(source_blackboard)
        self._blackboard.set_entry(ERROR_ENTRY, "", _ERROR_TYPE)

        graph.bind()
        self._node_states: dict[RID, NodeState] = {
            node.state_key(): node.create_state()
            for node in graph.nodes()
            if isinstance(node, Stateful)
        }

    @property
    def execution_blackboard(self) -> Blackboard:
        return self._blackboard

    @property
    def source_blackboard(self) -> Blackboard | None:
        return self._blackboard.parent

    @property
    def graph(self) -> PipelineGraph:
        return self._graph

    @property
    def root(self) -> PipelineNode | None:
        """The root node of the graph this pipeline runs."""
        return self._graph.root_node()

    @property
    def node_states(self) -> Mapping[RID, NodeState]:
        return MappingProxyType(self._node_states)

    def get_state(self, key: RID) -> NodeState | None:
        """Return the state stored for the stateful node keyed by ``key``."""
        return self._node_states.get(key)

    @property
    def error(self) -> str:
        """The last error recorded on the execution blackboard itself."""
        return self._blackboard.get_entry(
            ERROR_ENTRY, "", type_name=_ERROR_TYPE, check_parents=False
        )

    def set_error(self, message: str) -> None:
        self._blackboard.set_entry(ERROR_ENTRY, str(message), _ERROR_TYPE)

    def clear_error(self) -> None:
        self._blackboard.set_entry(ERROR_ENTRY, "", _ERROR_TYPE)

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("pipeline is closed")

    def execute(self) -> None:
        """Run one step of the pipeline."""
        with self._lock:
            self._ensure_open()
            self._execute()

    def halt(self) -> None:
        """Stop the pipeline and reset whatever a run left behind."""
        with self._lock:
            self._ensure_open()
            self._halt()

    @abstractmethod
    def _execute(self) -> None:
        """Perform one step; called with the pipeline lock held."""

    @abstractmethod
    def _halt(self) -> None:
        """Stop the run; called with the pipeline lock held."""

    def close(self) -> None:
        """Release the graph and drop node state; closing twice does nothing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._node_states.clear()
            self._graph.unbind()

    def __enter__(self) -> Pipeline:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()