"""Highest-value flow path through a transaction graph.

The search is a greedy depth-first walk: every node is expanded at most
once (a global visited set), so on graphs with shared sub-paths the
result is locally optimal per node rather than globally optimal. The
walk uses an explicit stack so pathological graphs cannot exhaust the
interpreter's recursion limit.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from solana_wallet_forensics.graph.models import GraphEdge

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 20


@dataclass
class _Frame:
    node: str
    depth: int
    edges: list[GraphEdge]
    cursor: int = 0
    best_edge: GraphEdge | None = None
    best_value: Decimal = Decimal(0)
    best_descended: bool = False
    pending: GraphEdge | None = field(default=None)

    def consider(self, edge: GraphEdge, value: Decimal, *, descended: bool) -> None:
        # Strict comparison: on equal totals the earlier edge wins.
        if value > self.best_value:
            self.best_edge = edge
            self.best_value = value
            self.best_descended = descended


def find_critical_path(
    edges: Sequence[GraphEdge],
    start_address: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[str]:
    """Find the chain of edges with the highest cumulative value.

    Only edges with a target and a positive value are followed. A node is
    terminal (adds nothing) when it was already visited, sits at
    ``max_depth`` hops from the start, or has no outgoing edges.

    Args:
        edges: Graph edges, in graph order.
        start_address: Node to start from, usually the focal wallet.
        max_depth: Hop cap; the result never exceeds this many edges.

    Returns:
        Edge ids of the winning chain in post-order: the deepest hop
        first, the start node's edge last. Use :func:`order_path_edges`
        for a front-to-back walk.
    """
    if not edges or not start_address:
        return []

    outgoing: dict[str, list[GraphEdge]] = defaultdict(list)
    for edge in edges:
        if edge.source:
            outgoing[edge.source].append(edge)

    visited: set[str] = set()
    winners: dict[str, tuple[GraphEdge, bool]] = {}

    def enter(node: str, depth: int) -> _Frame | None:
        if node in visited or depth >= max_depth:
            return None
        visited.add(node)
        return _Frame(node=node, depth=depth, edges=outgoing.get(node, []))

    root = enter(start_address, 0)
    if root is None:
        return []

    stack = [root]
    child_value = Decimal(0)
    while stack:
        frame = stack[-1]
        if frame.pending is not None:
            frame.consider(frame.pending, frame.pending.value + child_value, descended=True)
            frame.pending = None

        descended = False
        while frame.cursor < len(frame.edges):
            edge = frame.edges[frame.cursor]
            frame.cursor += 1
            if not edge.target or edge.value <= 0:
                continue
            child = enter(edge.target, frame.depth + 1)
            if child is None:
                frame.consider(edge, edge.value, descended=False)
                continue
            frame.pending = edge
            stack.append(child)
            descended = True
            break
        if descended:
            continue

        stack.pop()
        if frame.best_edge is not None:
            winners[frame.node] = (frame.best_edge, frame.best_descended)
        child_value = frame.best_value

    chain: list[str] = []
    node = start_address
    while node in winners:
        edge, through_child = winners[node]
        chain.append(edge.id)
        if not through_child:
            break
        node = edge.target

    chain.reverse()
    logger.debug("Critical path from %s: %d edges (visited %d nodes)", start_address, len(chain), len(visited))
    return chain


def order_path_edges(path: Sequence[str], edges: Sequence[GraphEdge]) -> list[GraphEdge]:
    """Resolve critical-path ids to edges, ordered from the start node outwards.

    Ids that are not in ``edges`` are skipped.
    """
    by_id = {edge.id: edge for edge in edges}
    return [by_id[edge_id] for edge_id in reversed(path) if edge_id in by_id]
