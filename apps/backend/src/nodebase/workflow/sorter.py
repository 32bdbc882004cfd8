"""Dependency ordering of workflow nodes."""

from __future__ import annotations

from collections import defaultdict, deque

from .errors import CycleDetectedError
from .schema import Connection, Node


def topological_sort(nodes: list[Node], connections: list[Connection]) -> list[Node]:
    """Return nodes ordered so every connection's source precedes its target.

    Nodes that no connection references are padded in as self-loops so they
    still show up in the result. Self-loops never constrain ordering. Among
    independent nodes the original list order wins.
    """
    if not connections:
        return list(nodes)

    edges: list[tuple[str, str]] = [(c.from_node_id, c.to_node_id) for c in connections]

    connected_ids: set[str] = set()
    for source, target in edges:
        connected_ids.add(source)
        connected_ids.add(target)
    for node in nodes:
        if node.id not in connected_ids:
            edges.append((node.id, node.id))

    order = _kahn([node.id for node in nodes], edges)

    node_map = {node.id: node for node in nodes}
    return [node_map[nid] for nid in order if nid in node_map]


def _kahn(preferred_order: list[str], edges: list[tuple[str, str]]) -> list[str]:
    # Seed with the node list order, then any id only known from edges
    all_ids: list[str] = []
    seen: set[str] = set()
    for nid in preferred_order + [nid for edge in edges for nid in edge]:
        if nid not in seen:
            seen.add(nid)
            all_ids.append(nid)

    in_degree: dict[str, int] = {nid: 0 for nid in all_ids}
    dependents: dict[str, list[str]] = defaultdict(list)
    for source, target in edges:
        if source == target:
            continue
        dependents[source].append(target)
        in_degree[target] += 1

    queue: deque[str] = deque(nid for nid in all_ids if in_degree[nid] == 0)
    order: list[str] = []
    placed: set[str] = set()
    while queue:
        nid = queue.popleft()
        if nid in placed:
            continue
        placed.add(nid)
        order.append(nid)
        for dependent in dependents[nid]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(all_ids):
        raise CycleDetectedError([nid for nid in all_ids if nid not in placed])

    return order
