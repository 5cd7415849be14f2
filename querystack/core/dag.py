"""
Dependency graph for the resources declared in a stack.
"""

from typing import Any
from dataclasses import dataclass, field
from collections import defaultdict, deque


@dataclass
class ResourceNode:
    """A declared resource and its edges in the dependency graph."""

    logical_id: str
    resource: Any
    kind: str
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)


class DAG:
    """
    Directed acyclic graph of resource dependencies.

    An edge A -> B means B consumes something A only knows after it is
    provisioned (its name, its ARN). Any engine applying the graph must
    create A before B.
    """

    def __init__(self):
        self.nodes: dict[str, ResourceNode] = {}
        self._edges: dict[str, list[str]] = defaultdict(list)

    def add_node(self, logical_id: str, resource: Any, kind: str) -> None:
        """
        Add a resource node.

        Raises:
            ValueError: If the logical id is already in the graph
        """
        if logical_id in self.nodes:
            raise ValueError(f"Resource '{logical_id}' is already in the graph")
        self.nodes[logical_id] = ResourceNode(
            logical_id=logical_id, resource=resource, kind=kind
        )

    def add_edge(self, upstream: str, downstream: str) -> None:
        """
        Record that downstream depends on upstream.

        Args:
            upstream: Resource that must exist first
            downstream: Resource consuming the upstream's attributes
        """
        if upstream not in self.nodes or downstream not in self.nodes:
            raise ValueError(
                f"Cannot link '{upstream}' -> '{downstream}': both resources must be in the graph"
            )
        if downstream in self._edges[upstream]:
            return

        self._edges[upstream].append(downstream)
        self.nodes[downstream].dependencies.append(upstream)
        self.nodes[upstream].dependents.append(downstream)

    def get_dependencies(self, logical_id: str) -> list[str]:
        """Resources this one depends on."""
        return self.nodes[logical_id].dependencies if logical_id in self.nodes else []

    def get_dependents(self, logical_id: str) -> list[str]:
        """Resources depending on this one."""
        return self.nodes[logical_id].dependents if logical_id in self.nodes else []

    def topological_sort(self) -> list[str]:
        """
        Return a creation order for the graph.

        Ties are broken by declaration order, so the result is stable.

        Raises:
            ValueError: If the graph contains cycles
        """
        remaining = {
            logical_id: len(node.dependencies) for logical_id, node in self.nodes.items()
        }
        ready = deque(logical_id for logical_id, count in remaining.items() if count == 0)
        order = []

        while ready:
            logical_id = ready.popleft()
            order.append(logical_id)
            for dependent in self._edges[logical_id]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    ready.append(dependent)

        if len(order) != len(self.nodes):
            raise ValueError(f"Resource graph contains a cycle: {self.detect_cycles()}")

        return order

    def detect_cycles(self) -> list[str] | None:
        """
        Find a dependency cycle.

        Returns:
            The cycle as a path of logical ids, or None if the graph is acyclic
        """
        visited = set()
        on_path: list[str] = []

        def visit(logical_id: str) -> list[str] | None:
            visited.add(logical_id)
            on_path.append(logical_id)
            for dependent in self._edges[logical_id]:
                if dependent in on_path:
                    return on_path[on_path.index(dependent):] + [dependent]
                if dependent not in visited:
                    cycle = visit(dependent)
                    if cycle:
                        return cycle
            on_path.pop()
            return None

        for logical_id in self.nodes:
            if logical_id not in visited:
                cycle = visit(logical_id)
                if cycle:
                    return cycle

        return None

    def get_execution_levels(self) -> list[list[str]]:
        """
        Group resources into waves that can be created concurrently.

        Every resource sits one wave after the latest of its dependencies.
        """
        wave_of: dict[str, int] = {}
        levels: list[list[str]] = []

        for logical_id in self.topological_sort():
            deps = self.nodes[logical_id].dependencies
            wave = max((wave_of[d] + 1 for d in deps), default=0)
            wave_of[logical_id] = wave
            while len(levels) <= wave:
                levels.append([])
            levels[wave].append(logical_id)

        return levels

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form of the graph, for display and serialization."""
        return {
            "nodes": [
                {
                    "logical_id": node.logical_id,
                    "kind": node.kind,
                    "dependencies": list(node.dependencies),
                }
                for node in self.nodes.values()
            ],
            "edges": [
                {"from": upstream, "to": downstream}
                for upstream, downstreams in self._edges.items()
                for downstream in downstreams
            ],
        }

    def __repr__(self) -> str:
        edge_count = sum(len(d) for d in self._edges.values())
        return f"DAG(nodes={len(self.nodes)}, edges={edge_count})"
