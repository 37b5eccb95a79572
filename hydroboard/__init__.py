"""Typed hierarchical blackboards and node-graph pipeline building blocks for game AI."""

__version__ = "0.1.0"

__all__ = [
    "blackboard",
    "composite",
    "decorator",
    "graph",
    "pipeline",
    "pipeline_node",
    "ports",
    "rid",
    "types",
]