"""Workflow graph construction, validation and guarded mutation.

Components:
- TaskGraph / build_graph: transient parent -> child graph built from a task list
- GraphAlgorithms: cycle detection, topological order, reachability, depth
- WorkflowValidator: full structural validation of a workflow document
- MutationGuard: pre-checks for single add / remove / trigger-change edits

Example:
    >>> from crawlflow.services.workflow import WorkflowValidator, build_graph
    >>> result = WorkflowValidator().validate(workflow)
    >>> order = GraphAlgorithms.topological_order(build_graph(workflow.tasks))
"""

from crawlflow.services.workflow.algorithms import GraphAlgorithms
from crawlflow.services.workflow.graph import GraphNode, TaskGraph, build_graph
from crawlflow.services.workflow.guard import MutationGuard
from crawlflow.services.workflow.validator import WorkflowValidator

__all__ = [
    "GraphAlgorithms",
    "GraphNode",
    "MutationGuard",
    "TaskGraph",
    "WorkflowValidator",
    "build_graph",
]
