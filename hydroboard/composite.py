"""Pipeline nodes that hold an ordered list of children."""

from __future__ import annotations

import logging
from typing import ClassVar, Iterable

from .pipeline_node import ParentNode, PipelineNode

logger = logging.getLogger(__name__)


class CompositeNode(PipelineNode, ParentNode):
    """A node with an ordered list of distinct children of ``child_type``."""

    child_type: ClassVar[type[PipelineNode]] = PipelineNode

    def __init__(self) -> None:
        super().__init__()
        self._children: list[PipelineNode] = []

    def _require_child_type(self, node: object) -> PipelineNode:
        if not isinstance(node, self.child_type):
            raise TypeError(
                f"{type(self).__name__} only accepts {self.child_type.__name__} children, "
                f"not {type(node).__name__}"
            )
        return node

    def _index_of(self, node: object) -> int | None:
        return next((idx for idx, child in enumerate(self._children) if child is node), None)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._children):
            raise IndexError(f"child index {index} out of range for {len(self._children)} children")

    def add_child(self, node: PipelineNode) -> bool:
        """Append ``node``; False if it is already a child."""
        self._require_child_type(node)
        if self._index_of(node) is not None:
            return False
        self._children.append(node)
        return True

    def remove_child(self, node: PipelineNode) -> bool:
        """Remove ``node``; False if it was not a child."""
        self._require_child_type(node)
        idx = self._index_of(node)
        if idx is None:
            return False
        del self._children[idx]
        return True

    def remove_child_at(self, index: int) -> None:
        self._check_index(index)
        del self._children[index]

    def clear(self) -> None:
        self._children.clear()

    def is_empty(self) -> bool:
        return not self._children

    def get_child(self, index: int) -> PipelineNode:
        self._check_index(index)
        return self._children[index]

    def set_child(self, index: int, node: PipelineNode) -> None:
        self._require_child_type(node)
        self._check_index(index)
        self._children[index] = node

    def child_count(self) -> int:
        return len(self._children)

    def swap_children(self, first_index: int, second_index: int) -> None:
        self._check_index(first_index)
        self._check_index(second_index)
        children = self._children
        children[first_index], children[second_index] = children[second_index], children[first_index]

    def insert_child(self, pos: int, node: PipelineNode) -> None:
        """Insert ``node`` before position ``pos``; ``pos`` may equal the child count."""
        self._require_child_type(node)
        if not 0 <= pos <= len(self._children):
            raise IndexError(f"insert position {pos} out of range for {len(self._children)} children")
        self._children.insert(pos, node)

    def append_children(self, nodes: Iterable[PipelineNode]) -> None:
        """Append every node of the right type; others are skipped."""
        for node in nodes:
            if not isinstance(node, self.child_type):
                logger.error("Skipping child of unsupported type %s", type(node).__name__)
                continue
            self._children.append(node)

    def has_child_node(self, node: PipelineNode | None) -> bool:
        if not isinstance(node, self.child_type):
            return False
        return self._index_of(node) is not None

    def remove_child_node(self, node: PipelineNode | None) -> bool:
        if not isinstance(node, self.child_type):
            return False
        return self.remove_child(node)

    def remove_all_child_nodes(self) -> None:
        self.clear()

    def supports_children(self) -> bool:
        return True

    def has_children(self) -> bool:
        return bool(self._children)

    def children(self) -> list[PipelineNode]:
        return list(self._children)

    def descendants(self) -> list[PipelineNode]:
        result: list[PipelineNode] = []
        for child in self._children:
            result.append(child)
            result.extend(child.descendants())
        return result

    def has_child(self, candidate: PipelineNode | None) -> bool:
        return self.has_child_node(candidate)

    def has_descendant(self, candidate: PipelineNode | None) -> bool:
        if candidate is None:
            return False
        return any(node is candidate for node in self.descendants())