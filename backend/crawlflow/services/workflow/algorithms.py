"""Graph algorithms for task graph validation and topology analysis.

This module provides the traversals the validator, the mutation guard and
the workflow statistics are built on:
- Cycle detection using iterative DFS with an on-stack set
- Topological order using DFS post-order from the root
- Reachability, ancestor and descendant queries using BFS
- Leaf and isolated node enumeration
- Longest root path (workflow depth)
- Tree and dict serialization

Every traversal keeps a visited set and an explicit stack or queue, so all
of them terminate on graphs that are not yet known to be acyclic and none
of them depends on the recursion limit.

Time Complexity:
- Cycle detection: O(V + E)
- Topological order: O(V + E)
- Reachability: O(V + E)
- Longest root path: O(V + E)

Space Complexity: O(V) for all algorithms.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from crawlflow.schemas.workflow import ROOT_TRIGGER

if TYPE_CHECKING:
    from crawlflow.services.workflow.graph import TaskGraph

# DFS colouring for cycle detection
_UNVISITED = 0
_ON_STACK = 1
_DONE = 2


class GraphAlgorithms:
    """Collection of algorithms over a TaskGraph.

    All methods are static and side-effect free. Task names are used at
    the API boundary; arena indices are used internally.

    Example:
        >>> graph = build_graph(workflow.tasks)
        >>> if GraphAlgorithms.has_cycle(graph):
        ...     print(GraphAlgorithms.find_cycle(graph))
    """

    @staticmethod
    def find_cycle(graph: TaskGraph) -> list[str] | None:
        """Find a cycle using iterative DFS with path tracking.

        Starts a DFS from every unvisited node so cycles in fragments that
        are disconnected from the root are found too.

        Args:
            graph: The graph to check.

        Returns:
            Names forming the cycle, first name repeated at the end
            (e.g. ["b", "c", "d", "b"]), or None when the graph is acyclic.

        Example:
            >>> GraphAlgorithms.find_cycle(build_graph(tasks))
            ['b', 'c', 'd', 'b']
        """
        state = [_UNVISITED] * len(graph)

        for start in range(len(graph)):
            if state[start] != _UNVISITED:
                continue

            state[start] = _ON_STACK
            path: list[int] = [start]
            cursor: list[int] = [0]

            while path:
                children = graph.node_at(path[-1]).children
                position = cursor[-1]

                if position == len(children):
                    state[path.pop()] = _DONE
                    cursor.pop()
                    continue

                cursor[-1] += 1
                child = children[position]

                if state[child] == _ON_STACK:
                    # Found a cycle - extract the cycle path
                    cycle_start = path.index(child)
                    return [graph.node_at(i).name for i in (*path[cycle_start:], child)]

                if state[child] == _UNVISITED:
                    state[child] = _ON_STACK
                    path.append(child)
                    cursor.append(0)

        return None

    @staticmethod
    def has_cycle(graph: TaskGraph) -> bool:
        """Check whether any task transitively triggers itself."""
        return GraphAlgorithms.find_cycle(graph) is not None

    @staticmethod
    def topological_order(graph: TaskGraph) -> list[str]:
        """Execution order from the root, by reversed DFS post-order.

        Only nodes reachable from the root are included and the root comes
        first. The ordering guarantee holds only for acyclic graphs; on a
        cyclic graph the traversal still terminates but the order is
        meaningless.

        Returns:
            Task names, root first. Empty when there is no root.

        Example:
            >>> GraphAlgorithms.topological_order(graph)
            ['crawl', 'filter', 'shot']
        """
        return [graph.node_at(i).name for i in GraphAlgorithms._topological_indices(graph)]

    @staticmethod
    def _topological_indices(graph: TaskGraph) -> list[int]:
        root = graph.root_index
        if root is None:
            return []

        visited: set[int] = {root}
        post_order: list[int] = []
        path: list[int] = [root]
        cursor: list[int] = [0]

        while path:
            children = graph.node_at(path[-1]).children
            position = cursor[-1]

            if position == len(children):
                post_order.append(path.pop())
                cursor.pop()
                continue

            cursor[-1] += 1
            child = children[position]
            if child not in visited:
                visited.add(child)
                path.append(child)
                cursor.append(0)

        post_order.reverse()
        return post_order

    @staticmethod
    def leaf_nodes(graph: TaskGraph) -> Iterator[str]:
        """Lazily yield the names of tasks that trigger nothing.

        Each call starts a fresh pass over the graph.
        """
        for node in graph:
            if not node.children:
                yield node.name

    @staticmethod
    def reachable_from(graph: TaskGraph, name: str) -> set[str]:
        """Names reachable from a task by following child edges (BFS).

        The start task is included. An unknown name yields an empty set.
        """
        start = graph.index_of(name)
        if start is None:
            return set()

        reachable: set[int] = set()
        queue: deque[int] = deque([start])

        while queue:
            current = queue.popleft()
            if current in reachable:
                continue
            reachable.add(current)
            queue.extend(
                child for child in graph.node_at(current).children if child not in reachable
            )

        return {graph.node_at(i).name for i in reachable}

    @staticmethod
    def unreachable_from_root(graph: TaskGraph) -> list[str]:
        """Tasks the root cannot reach, in declaration order.

        When there is no root every task is unreachable.
        """
        root = graph.root
        if root is None:
            return graph.names()

        reachable = GraphAlgorithms.reachable_from(graph, root.name)
        return [node.name for node in graph if node.name not in reachable]

    @staticmethod
    def ancestors(graph: TaskGraph, name: str) -> set[str]:
        """Every task that transitively triggers the given task (BFS)."""
        return GraphAlgorithms._walk(graph, name, upward=True)

    @staticmethod
    def descendants(graph: TaskGraph, name: str) -> set[str]:
        """Every task transitively triggered by the given task (BFS)."""
        return GraphAlgorithms._walk(graph, name, upward=False)

    @staticmethod
    def _walk(graph: TaskGraph, name: str, *, upward: bool) -> set[str]:
        start = graph.index_of(name)
        if start is None:
            return set()

        def neighbours(index: int) -> list[int]:
            node = graph.node_at(index)
            return node.parents if upward else node.children

        seen: set[int] = set()
        queue: deque[int] = deque(neighbours(start))

        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            queue.extend(n for n in neighbours(current) if n not in seen)

        # A node on a cycle reaches itself; it is never its own relative.
        seen.discard(start)
        return {graph.node_at(i).name for i in seen}

    @staticmethod
    def isolated_nodes(graph: TaskGraph) -> list[str]:
        """Non-entry tasks with neither a parent nor a child."""
        return [
            node.name
            for node in graph
            if node.trigger != ROOT_TRIGGER and not node.parents and not node.children
        ]

    @staticmethod
    def longest_path_from_root(graph: TaskGraph) -> list[str]:
        """Deepest chain of tasks starting at the root.

        Computed over the reversed topological order of the tasks reachable
        from the root, so every child is scored before its parents. Tasks
        outside the root's reach, cycles among them included, do not count.
        Returns an empty list when there is no root.

        Example:
            >>> GraphAlgorithms.longest_path_from_root(graph)
            ['crawl', 'filter', 'shot']
        """
        root = graph.root_index
        if root is None:
            return []

        depth: dict[int, int] = {}
        next_hop: dict[int, int | None] = {}

        for index in reversed(GraphAlgorithms._topological_indices(graph)):
            best_depth, best_child = 1, None
            for child in graph.node_at(index).children:
                if depth[child] + 1 > best_depth:
                    best_depth, best_child = depth[child] + 1, child
            depth[index] = best_depth
            next_hop[index] = best_child

        path: list[str] = []
        current: int | None = root
        while current is not None:
            path.append(graph.node_at(current).name)
            current = next_hop[current]
        return path

    @staticmethod
    def max_depth(graph: TaskGraph) -> int:
        """Number of tasks on the longest root path (0 without a root)."""
        return len(GraphAlgorithms.longest_path_from_root(graph))

    @staticmethod
    def to_tree_string(graph: TaskGraph) -> str:
        """Render the graph as an indented tree rooted at the entry point.

        Each line is "name [task_id]", indented two spaces per level. A task
        reached a second time is printed as "name (already visited)" and not
        expanded again.

        Example:
            >>> print(GraphAlgorithms.to_tree_string(graph))
            crawl [t1]
              filter [t2]
                shot [t3]
        """
        root = graph.root_index
        if root is None:
            return "(no root)"

        lines: list[str] = []
        visited: set[int] = set()
        stack: list[tuple[int, int]] = [(root, 0)]

        while stack:
            index, indent = stack.pop()
            node = graph.node_at(index)
            prefix = "  " * indent

            if index in visited:
                lines.append(f"{prefix}{node.name} (already visited)")
                continue

            visited.add(index)
            lines.append(f"{prefix}{node.name} [{node.task_id}]")
            stack.extend((child, indent + 1) for child in reversed(node.children))

        return "\n".join(lines)

    @staticmethod
    def to_dict(graph: TaskGraph) -> dict[str, Any]:
        """JSON-ready representation of the graph."""
        return {
            "root": graph.root.name if graph.root is not None else None,
            "nodes": {
                node.name: {
                    "task_id": node.task_id,
                    "trigger": node.trigger,
                    "children": [graph.node_at(i).name for i in node.children],
                    "parents": [graph.node_at(i).name for i in node.parents],
                }
                for node in graph
            },
        }


__all__ = [
    "GraphAlgorithms",
]
