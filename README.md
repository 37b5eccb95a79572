# hydroboard

Typed, hierarchical blackboards and the building blocks of node-graph
pipelines for game AI behaviours such as behaviour trees.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Blackboards

`hydroboard.blackboard.Blackboard` is a thread-safe store of named entries.
Every entry has a registered type, kept in a `TypeRegistry`
(`hydroboard.types`); `default_registry()` returns a shared registry with the
built-in types already registered. Blackboards can be chained: a lookup that
misses locally walks up through the parents.

```python
from hydroboard.blackboard import Blackboard
from hydroboard.types import default_registry

registry = default_registry()

world = Blackboard(registry)
world.set_entry("gravity", 9.8)

agent = Blackboard(registry)
agent.set_parent(world)
agent.set_entry("health", 100)

agent.get_entry("gravity", 0.0)                      # 9.8, found on the parent
agent.get_entry("gravity", 0.0, check_parents=False) # 0.0, local only
agent.has_entry("health")                            # True

agent.set_entry("health", None)                      # None erases the entry
"health" in agent                                    # False

world.set_parent(agent)                              # False: that would be a cycle
```

Values stored without a type name get a type chosen from the value (an `int`
is stored as `int64`, a `float` as `double`, a `str` as `String`, and so on).
Entries can also be typed explicitly:

```python
agent.set_entry("ammo", 12, "uint8")
agent.get_entry("ammo", 0, type_name="uint8")   # 12
agent.get_entry("ammo", 0, type_name="int64")   # 0: the entry is not an int64
agent.entry_type_name("ammo")                   # "uint8"
```

`try_get_entry()` returns a `(found, value)` pair. `export_entries()` returns a
plain dictionary of every entry, with this board's own entries applied last so
they win over its ancestors'; `import_entries()` stores every item of a
mapping; `export_type_infos()` describes every registered type.

## Pipelines

- `hydroboard.pipeline_node.PipelineNode` is the base node. Subclasses declare
  `PORTS` (built with `NodePortInfo.create_input`, `create_output` and
  `create_in_out` from `hydroboard.ports`) and `CONNECTIONS`
  (`NodeConnectionInfo`). Input and output aliases remap port names to
  blackboard entries per node.
- `hydroboard.composite.CompositeNode` holds an ordered list of children;
  `hydroboard.decorator.DecoratorNode` holds a single child.
- `hydroboard.graph.PipelineGraph` owns nodes by `RID`. Node types are
  registered on a graph subclass and created by name. While a graph is bound,
  creating or destroying nodes or changing the root raises `GraphBoundError`.
- `hydroboard.pipeline.Pipeline` binds a graph for execution. It has its own
  execution blackboard, parented to an optional source blackboard, and a state
  object for every node that mixes in `Stateful`. It is abstract: subclasses
  implement `_execute()` and `_halt()`.

```python
from hydroboard.blackboard import Blackboard
from hydroboard.graph import PipelineGraph
from hydroboard.pipeline import Pipeline
from hydroboard.pipeline_node import PipelineNode
from hydroboard.ports import NodePortInfo


class Counter(PipelineNode):
    PORTS = (NodePortInfo.create_input("value", "int64", 0),)


class MyGraph(PipelineGraph):
    pass


class RunRoot(Pipeline):
    def _execute(self):
        board = self.execution_blackboard
        key = self.root.get_input_alias("value")
        board.set_entry(key, board.get_entry(key, 0, type_name="int64") + 1, "int64")

    def _halt(self):
        self.clear_error()


MyGraph.register_node(Counter)
graph = MyGraph("my_plugin")
rid = graph.create_node("Counter", {"value": "one"}, {})
graph.set_root(rid)

source = Blackboard()
source.set_entry("one", 5)

with RunRoot("my_plugin", graph, source) as pipeline:
    pipeline.execute()
    pipeline.execution_blackboard.get_entry("one")  # 6, written locally
    source.get_entry("one")                         # 5, unchanged
    pipeline.error                                  # ""
```

Leaving the `with` block (or calling `close()`) unbinds the graph.

## What this package does not do

It provides no ready-made node types (no sequence, selector, wait or other
task nodes) and no pipeline traversal of its own: what a run does is up to the
`Pipeline` subclass. There is no central server that hands out and tracks
blackboards, graphs and pipelines by id, no scripting or editor integration,
and no command-line tool.