"""Task graph model and builder.

This module turns a workflow's flat task list into a directed graph where
an edge runs from a task to every task it triggers. The graph is a
transient, read-only view: it is rebuilt from the task list whenever a
validation or traversal is needed and is never persisted.

Nodes live in an arena (a list) and refer to each other by index, with a
name -> index map for lookups. Parent and child links are plain integers,
so a cyclic document produces a cyclic index structure without any object
reference cycles.

Building never raises. Malformed input is tolerated so the validator can
report each problem precisely:
- several entry points: the last one declared becomes the root
- a trigger naming an unknown task: the edge is skipped
- a task triggering itself: the self-edge is kept so cycle detection sees it
- duplicate names: they collapse onto one node, last declaration wins

Time Complexity:
- Build: O(V + E)
- Node lookup by name: O(1)

Space Complexity: O(V + E)
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from crawlflow.schemas.workflow import ROOT_TRIGGER

if TYPE_CHECKING:
    from crawlflow.schemas.workflow import WorkflowTask


@dataclass(slots=True)
class GraphNode:
    """One task in a TaskGraph.

    Attributes:
        name: Task name, unique within the graph.
        task_id: Opaque task registry reference.
        trigger: ROOT_TRIGGER or the name of the parent task.
        children: Arena indices of tasks this task triggers.
        parents: Arena indices of tasks that trigger this task.
    """

    name: str
    task_id: str
    trigger: str
    children: list[int] = field(default_factory=list)
    parents: list[int] = field(default_factory=list)

    @property
    def is_entry_point(self) -> bool:
        return self.trigger == ROOT_TRIGGER


class TaskGraph:
    """Directed graph of workflow tasks, parent -> child.

    Example:
        >>> graph = TaskGraph.from_tasks(workflow.tasks)
        >>> graph.root.name
        'crawl'
        >>> graph.children_of("crawl")
        ['filter']
    """

    __slots__ = ("_index", "_nodes", "_root")

    def __init__(self) -> None:
        """Initialize an empty graph."""
        self._nodes: list[GraphNode] = []
        self._index: dict[str, int] = {}
        self._root: int | None = None

    @classmethod
    def from_tasks(cls, tasks: Iterable[WorkflowTask]) -> TaskGraph:
        """Build a graph from a flat task list.

        Args:
            tasks: Tasks in declaration order.

        Returns:
            The built graph. Never raises on malformed input.
        """
        graph = cls()

        # 1. One node per task name; the root is the last entry point declared
        for task in tasks:
            node = GraphNode(name=task.name, task_id=task.task_id, trigger=task.trigger)
            position = graph._index.get(task.name)
            if position is None:
                position = len(graph._nodes)
                graph._index[task.name] = position
                graph._nodes.append(node)
            else:
                graph._nodes[position] = node

            if node.is_entry_point:
                graph._root = position
            elif graph._root == position:
                # A later task under the same name replaced the entry point
                graph._root = None

        # 2. Parent -> child links; dangling triggers are skipped
        for position, node in enumerate(graph._nodes):
            if node.is_entry_point:
                continue
            parent = graph._index.get(node.trigger)
            if parent is None:
                continue
            graph._nodes[parent].children.append(position)
            node.parents.append(parent)

        return graph

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def root(self) -> GraphNode | None:
        """The entry-point node, or None when no task uses ROOT_TRIGGER."""
        return None if self._root is None else self._nodes[self._root]

    @property
    def root_index(self) -> int | None:
        """Arena index of the root node."""
        return self._root

    @property
    def node_count(self) -> int:
        """Get the number of nodes in the graph."""
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        """Get the number of parent -> child edges in the graph."""
        return sum(len(node.children) for node in self._nodes)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def index_of(self, name: str) -> int | None:
        """Arena index for a task name, or None if absent."""
        return self._index.get(name)

    def node_at(self, index: int) -> GraphNode:
        """Node stored at an arena index."""
        return self._nodes[index]

    def get_node(self, name: str) -> GraphNode | None:
        """Node for a task name, or None if absent."""
        index = self._index.get(name)
        return None if index is None else self._nodes[index]

    def names(self) -> list[str]:
        """Task names in declaration order."""
        return [node.name for node in self._nodes]

    def children_of(self, name: str) -> list[str]:
        """Names of the tasks triggered by the given task."""
        node = self.get_node(name)
        if node is None:
            return []
        return [self._nodes[child].name for child in node.children]

    def parents_of(self, name: str) -> list[str]:
        """Names of the tasks that trigger the given task."""
        node = self.get_node(name)
        if node is None:
            return []
        return [self._nodes[parent].name for parent in node.parents]

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __iter__(self) -> Iterator[GraphNode]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        root = self.root.name if self.root is not None else None
        return f"TaskGraph(nodes={self.node_count}, edges={self.edge_count}, root={root!r})"


def build_graph(tasks: Iterable[WorkflowTask]) -> TaskGraph:
    """Build a TaskGraph from a workflow's task list.

    Example:
        >>> graph = build_graph(workflow.tasks)
    """
    return TaskGraph.from_tasks(tasks)


__all__ = [
    "GraphNode",
    "TaskGraph",
    "build_graph",
]
