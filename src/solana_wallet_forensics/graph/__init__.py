"""Flow graph layer - Typed transaction graph and critical path."""

from solana_wallet_forensics.graph.builder import (
    GraphBuildError,
    TransactionGraphBuilder,
    build_graph,
)
from solana_wallet_forensics.graph.critical_path import find_critical_path, order_path_edges
from solana_wallet_forensics.graph.models import (
    EdgeKind,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    NodeKind,
    TransactionGraph,
)

__all__ = [
    "EdgeKind",
    "GraphBuildError",
    "GraphEdge",
    "GraphMetadata",
    "GraphNode",
    "NodeKind",
    "TransactionGraph",
    "TransactionGraphBuilder",
    "build_graph",
    "find_critical_path",
    "order_path_edges",
]
