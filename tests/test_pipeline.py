import pytest

from hydroboard.blackboard import Blackboard
from hydroboard.graph import GraphBoundError, PipelineGraph
from hydroboard.pipeline import ERROR_ENTRY, Pipeline
from hydroboard.pipeline_node import PipelineNode
from hydroboard.ports import NodeState, Stateful
from hydroboard.rid import RID


class CounterState(NodeState):
    def __init__(self):
        self.count = 0


class CounterNode(Stateful, PipelineNode):
    state_type = CounterState


class PlainNode(PipelineNode):
    pass


class _Graph(PipelineGraph):
    pass


_Graph.register_node(CounterNode)
_Graph.register_node(PlainNode)


class CountingPipeline(Pipeline):
    def _execute(self):
        root = self.root
        if root is None:
            self.set_error("no root")
            return
        state = self.get_state(root.state_key())
        state.count += 1
        self.execution_blackboard.set_entry("ticks", state.count, "int64")

    def _halt(self):
        root = self.root
        if root is not None:
            self.get_state(root.state_key()).count = 0
        self.execution_blackboard.erase_entry("ticks")


@pytest.fixture
def graph():
    g = _Graph("test")
    root = g.create_node("CounterNode")
    g.create_node("PlainNode")
    g.create_node("CounterNode")
    g.set_root(root)
    return g


def test_pipeline_is_abstract(graph):
    with pytest.raises(TypeError):
        Pipeline("plugin", graph)


def test_binding_follows_pipeline_lifetime(graph):
    first = CountingPipeline("plugin", graph)
    second = CountingPipeline("plugin", graph)
    assert PipelineGraph.is_bound(graph) is True
    assert PipelineGraph.bind_count(graph) == 2
    Pipeline.close(first)
    assert PipelineGraph.is_bound(graph) is True
    assert PipelineGraph.bind_count(graph) == 1
    Pipeline.close(second)
    assert PipelineGraph.is_bound(graph) is False
    assert PipelineGraph.bind_count(graph) == 0


def test_close_is_idempotent(graph):
    pipeline = CountingPipeline("plugin", graph)
    Pipeline.close(pipeline)
    Pipeline.close(pipeline)
    assert graph.bind_count() == 0
    assert pipeline.closed


def test_context_manager_unbinds(graph):
    with CountingPipeline("plugin", graph) as pipeline:
        assert graph.bind_count() == 1
        assert pipeline.graph is graph
        assert pipeline.get_state(RID()) is None
    assert graph.bind_count() == 0


def test_bound_graph_rejects_changes(graph):
    with CountingPipeline("plugin", graph, Blackboard()):
        with pytest.raises(GraphBoundError):
            PipelineGraph.create_node(graph, "PlainNode")
        with pytest.raises(GraphBoundError):
            PipelineGraph.destroy_node(graph, PipelineGraph.root(graph))
        assert PipelineGraph.__len__(graph) == 3
    rid = PipelineGraph.create_node(graph, "PlainNode")
    assert PipelineGraph.__len__(graph) == 4
    node = PipelineGraph.get_node(graph, rid)
    assert node.id == rid
    assert isinstance(node, PlainNode)


def test_source_blackboard_is_parent(graph):
    source = Blackboard()
    source.set_entry("message", "Hello World")
    with CountingPipeline("plugin", graph, source) as pipeline:
        assert pipeline.source_blackboard is source
        assert pipeline.execution_blackboard.parent is source
        assert pipeline.execution_blackboard.get_entry("message") == "Hello World"
        pipeline.execution_blackboard.set_entry("local", 1)
        assert not source.has_entry("local")


def test_without_source_blackboard(graph):
    with CountingPipeline("plugin", graph) as pipeline:
        assert pipeline.source_blackboard is None
        assert pipeline.owns_source_blackboard is False
        assert pipeline.plugin_name == "plugin"
        assert pipeline.get_state(RID()) is None


def test_error_starts_empty_and_round_trips(graph):
    with CountingPipeline("plugin", graph) as pipeline:
        assert pipeline.error == ""
        assert pipeline.execution_blackboard.has_entry(ERROR_ENTRY, check_parents=False)
        Pipeline.set_error(pipeline, "broken")
        assert pipeline.error == "broken"
        Pipeline.clear_error(pipeline)
        assert pipeline.error == ""


def test_error_ignores_parent(graph):
    source = Blackboard()
    source.set_entry(ERROR_ENTRY, "from parent")
    with CountingPipeline("plugin", graph, source) as pipeline:
        assert pipeline.error == ""


def test_node_states_for_stateful_nodes_only(graph):
    stateful = [n for n in graph.nodes() if isinstance(n, CounterNode)]
    with CountingPipeline("plugin", graph) as pipeline:
        assert set(pipeline.node_states) == {n.state_key() for n in stateful}
        assert all(isinstance(s, CounterState) for s in pipeline.node_states.values())
        assert pipeline.get_state(RID()) is None


def test_states_are_separate_per_pipeline(graph):
    key = graph.root_node().state_key()
    with CountingPipeline("a", graph) as first, CountingPipeline("b", graph) as second:
        assert Pipeline.get_state(first, key) is not Pipeline.get_state(second, key)
        Pipeline.execute(first)
        Pipeline.execute(first)
        Pipeline.execute(second)
        assert first.get_state(key).count == 2
        assert second.get_state(key).count == 1
        assert first.execution_blackboard.get_entry("ticks") == 2


def test_halt_resets(graph):
    with CountingPipeline("plugin", graph) as pipeline:
        Pipeline.execute(pipeline)
        Pipeline.halt(pipeline)
        assert Pipeline.get_state(pipeline, graph.root()).count == 0
        assert not pipeline.execution_blackboard.has_entry("ticks")


def test_execute_without_root_records_error():
    g = _Graph("test")
    PipelineGraph.create_node(g, "PlainNode")
    with CountingPipeline("plugin", g) as pipeline:
        assert pipeline.root is None
        assert pipeline.error == ""
        Pipeline.execute(pipeline)
        assert pipeline.error == "no root"
    assert PipelineGraph.bind_count(g) == 0


def test_closed_pipeline_refuses_to_run(graph):
    pipeline = CountingPipeline("plugin", graph)
    Pipeline.close(pipeline)
    assert len(pipeline.node_states) == 0
    assert PipelineGraph.bind_count(graph) == 0
    with pytest.raises(RuntimeError):
        Pipeline.execute(pipeline)
    with pytest.raises(RuntimeError):
        Pipeline.halt(pipeline)