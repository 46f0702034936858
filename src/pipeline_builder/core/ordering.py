"""Step ordering — topological sort of the node graph."""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from pipeline_builder.core.datatypes import Connection, PipelineNode


def topological_sort(nodes: Sequence[PipelineNode], connections: Sequence[Connection]) -> list[PipelineNode]:
    """Order nodes so every connection's source precedes its target.

    Without connections the nodes are ordered top to bottom by their
    canvas ``y`` coordinate.  Otherwise Kahn's algorithm runs with the
    queue seeded in node-list order.  Nodes caught in a cycle never reach
    in-degree zero; they are appended afterwards in node-list order, so
    every node appears exactly once whatever the graph looks like.

    Connections whose endpoints are not in *nodes* are ignored.

    Args:
        nodes: The graph's nodes, in insertion order.
        connections: Directed connections between them.

    Returns:
        A new list holding every node once.
    """
    if not connections:
        return sorted(nodes, key=lambda node: node.position.y)

    by_id = {node.id: node for node in nodes}
    successors: dict[str, list[str]] = {node_id: [] for node_id in by_id}
    in_degree: dict[str, int] = dict.fromkeys(by_id, 0)

    for connection in connections:
        if connection.source not in by_id or connection.target not in by_id:
            continue
        successors[connection.source].append(connection.target)
        in_degree[connection.target] += 1

    queue = deque(node_id for node_id in by_id if in_degree[node_id] == 0)
    ordered: list[PipelineNode] = []
    seen: set[str] = set()

    while queue:
        node_id = queue.popleft()
        ordered.append(by_id[node_id])
        seen.add(node_id)
        for target in successors[node_id]:
            in_degree[target] -= 1
            if in_degree[target] == 0:
                queue.append(target)

    ordered.extend(node for node in nodes if node.id not in seen)
    return ordered
