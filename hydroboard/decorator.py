"""Pipeline nodes that wrap a single child."""

from __future__ import annotations

from typing import ClassVar

from .pipeline_node import ParentNode, PipelineNode


class DecoratorNode(PipelineNode, ParentNode):
    """A node holding at most one child of ``child_type``."""

    child_type: ClassVar[type[PipelineNode]] = PipelineNode

    def __init__(self) -> None:
        super().__init__()
        self._decorated: PipelineNode | None = None

    def child(self) -> PipelineNode | None:
        return self._decorated

    def set_child(self, node: PipelineNode | None) -> None:
        """Wrap ``node``; a node of the wrong type leaves the decorator empty."""
        self._decorated = node if isinstance(node, self.child_type) else None

    def has_child_node(self, node: PipelineNode | None) -> bool:
        if not isinstance(node, self.child_type):
            return False
        return self._decorated is not None and self._decorated is node

    def remove_child_node(self, node: PipelineNode | None) -> bool:
        if not isinstance(node, self.child_type):
            return False
        if node is self._decorated:
            self._decorated = None
            return True
        return False

    def remove_all_child_nodes(self) -> None:
        self._decorated = None

    def supports_children(self) -> bool:
        return True

    def has_children(self) -> bool:
        return self._decorated is not None

    def children(self) -> list[PipelineNode]:
        return [] if self._decorated is None else [self._decorated]

    def descendants(self) -> list[PipelineNode]:
        if self._decorated is None:
            return []
        return [self._decorated, *self._decorated.descendants()]

    def has_child(self, candidate: PipelineNode | None) -> bool:
        return self.has_child_node(candidate)

    def has_descendant(self, candidate: PipelineNode | None) -> bool:
        if candidate is None:
            return False
        return any(node is candidate for node in self.descendants())