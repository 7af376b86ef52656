"""Tests for the TaskGraph builder.

Covers node allocation, parent/child linking and the tolerance rules for
malformed task lists (several entry points, dangling triggers, self
triggers and duplicate names).
"""

from crawlflow.schemas.workflow import ROOT_TRIGGER, WorkflowTask
from crawlflow.services.workflow.graph import GraphNode, TaskGraph, build_graph


def _task(name: str, trigger: str) -> WorkflowTask:
    return WorkflowTask(task_id=f"task_{name}", name=name, trigger=trigger)


class TestGraphInitialization:
    """Tests for empty graphs and basic properties."""

    def test_empty_graph(self) -> None:
        """Test that a graph built from no tasks is empty and has no root."""
        graph = build_graph([])
        assert graph.node_count == 0
        assert graph.edge_count == 0
        assert len(graph) == 0
        assert graph.root is None
        assert graph.root_index is None

    def test_graph_repr(self) -> None:
        """Test string representation of graph."""
        graph = build_graph([_task("crawl", ROOT_TRIGGER), _task("shot", "crawl")])
        assert repr(graph) == "TaskGraph(nodes=2, edges=1, root='crawl')"

    def test_graph_repr_without_root(self) -> None:
        """Test string representation when no entry point exists."""
        assert repr(TaskGraph()) == "TaskGraph(nodes=0, edges=0, root=None)"

    def test_build_graph_matches_from_tasks(self) -> None:
        """Test that build_graph is the same as TaskGraph.from_tasks."""
        tasks = [_task("crawl", ROOT_TRIGGER), _task("shot", "crawl")]
        assert build_graph(tasks).names() == TaskGraph.from_tasks(tasks).names()


class TestNodeAllocation:
    """Tests for one-node-per-name allocation."""

    def test_nodes_follow_declaration_order(self) -> None:
        """Test that names() lists tasks in declaration order."""
        graph = build_graph(
            [_task("crawl", ROOT_TRIGGER), _task("filter", "crawl"), _task("shot", "filter")]
        )
        assert graph.names() == ["crawl", "filter", "shot"]
        assert graph.index_of("filter") == 1

    def test_node_carries_task_fields(self) -> None:
        """Test that a node keeps task_id and trigger of its task."""
        graph = build_graph([_task("crawl", ROOT_TRIGGER)])
        node = graph.get_node("crawl")
        assert isinstance(node, GraphNode)
        assert node.task_id == "task_crawl"
        assert node.trigger == ROOT_TRIGGER
        assert node.is_entry_point is True

    def test_contains_by_name(self) -> None:
        """Test membership checks by task name."""
        graph = build_graph([_task("crawl", ROOT_TRIGGER)])
        assert "crawl" in graph
        assert "missing" not in graph

    def test_unknown_name_lookups(self) -> None:
        """Test lookups for names that are not in the graph."""
        graph = build_graph([_task("crawl", ROOT_TRIGGER)])
        assert graph.get_node("missing") is None
        assert graph.index_of("missing") is None
        assert graph.children_of("missing") == []
        assert graph.parents_of("missing") == []

    def test_iteration_yields_nodes(self) -> None:
        """Test that iterating a graph yields its nodes."""
        graph = build_graph([_task("crawl", ROOT_TRIGGER), _task("shot", "crawl")])
        assert [node.name for node in graph] == ["crawl", "shot"]

    def test_duplicate_names_collapse_last_wins(self) -> None:
        """Test that a repeated name keeps one node holding the last declaration."""
        graph = build_graph(
            [
                _task("crawl", ROOT_TRIGGER),
                WorkflowTask(task_id="first", name="shot", trigger="crawl"),
                WorkflowTask(task_id="second", name="shot", trigger="crawl"),
            ]
        )
        assert graph.node_count == 2
        assert graph.get_node("shot").task_id == "second"
        assert graph.children_of("crawl") == ["shot"]


class TestLinking:
    """Tests for parent -> child edges."""

    def test_chain_links(self) -> None:
        """Test parent and child links along a chain."""
        graph = build_graph(
            [_task("crawl", ROOT_TRIGGER), _task("filter", "crawl"), _task("shot", "filter")]
        )
        assert graph.edge_count == 2
        assert graph.children_of("crawl") == ["filter"]
        assert graph.children_of("filter") == ["shot"]
        assert graph.parents_of("shot") == ["filter"]
        assert graph.parents_of("crawl") == []

    def test_children_in_declaration_order(self) -> None:
        """Test that children are linked in the order they were declared."""
        graph = build_graph(
            [
                _task("crawl", ROOT_TRIGGER),
                _task("shot", "crawl"),
                _task("scrape", "crawl"),
                _task("pdf", "crawl"),
            ]
        )
        assert graph.children_of("crawl") == ["shot", "scrape", "pdf"]

    def test_child_declared_before_parent(self) -> None:
        """Test that links do not depend on declaration order."""
        graph = build_graph([_task("shot", "crawl"), _task("crawl", ROOT_TRIGGER)])
        assert graph.children_of("crawl") == ["shot"]
        assert graph.root.name == "crawl"

    def test_root_has_no_parent_edge(self) -> None:
        """Test that the entry point is never linked to a parent."""
        graph = build_graph([_task("crawl", ROOT_TRIGGER)])
        assert graph.root.parents == []
        assert graph.edge_count == 0


class TestTolerance:
    """Tests for malformed input that building must tolerate."""

    def test_multiple_roots_last_wins(self) -> None:
        """Test that the last declared entry point becomes the root."""
        graph = build_graph([_task("first", ROOT_TRIGGER), _task("second", ROOT_TRIGGER)])
        assert graph.root.name == "second"
        assert graph.root_index == 1

    def test_redeclared_entry_point_wins(self) -> None:
        """Test that the root follows declaration order, not node order."""
        graph = build_graph(
            [_task("a", ROOT_TRIGGER), _task("b", ROOT_TRIGGER), _task("a", ROOT_TRIGGER)]
        )
        assert graph.root.name == "a"
        assert graph.root_index == 0

    def test_entry_point_replaced_by_duplicate(self) -> None:
        """Test that no root remains when the entry point's name is redeclared."""
        graph = build_graph([_task("a", ROOT_TRIGGER), _task("b", "a"), _task("a", "b")])
        assert graph.root is None

    def test_dangling_trigger_is_skipped(self) -> None:
        """Test that a trigger naming an unknown task creates no edge."""
        graph = build_graph([_task("crawl", ROOT_TRIGGER), _task("shot", "ghost")])
        assert graph.node_count == 2
        assert graph.edge_count == 0
        assert graph.parents_of("shot") == []

    def test_self_trigger_keeps_self_edge(self) -> None:
        """Test that a task triggering itself is linked to itself."""
        graph = build_graph([_task("crawl", ROOT_TRIGGER), _task("loop", "loop")])
        assert graph.children_of("loop") == ["loop"]
        assert graph.parents_of("loop") == ["loop"]

    def test_no_entry_point(self) -> None:
        """Test that a graph without an entry point still links its tasks."""
        graph = build_graph([_task("a", "b"), _task("b", "a")])
        assert graph.root is None
        assert graph.edge_count == 2
