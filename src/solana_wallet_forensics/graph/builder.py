"""Transaction-flow graph construction.

Folds a batch of enhanced transactions into a typed graph: wallets,
token mints and programs become nodes; native transfers, token
transfers and instruction invocations become edges.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from solana_wallet_forensics.graph.critical_path import DEFAULT_MAX_DEPTH, find_critical_path
from solana_wallet_forensics.graph.models import (
    EdgeKind,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    InstructionEdgeMetadata,
    NativeEdgeMetadata,
    NodeKind,
    TokenEdgeMetadata,
    TransactionGraph,
    WalletNodeMetadata,
)
from solana_wallet_forensics.ingestor.models import RawTransaction, parse_transactions

logger = logging.getLogger(__name__)

DEFAULT_TOP_ACTIVE_LIMIT = 10


class GraphBuildError(Exception):
    """Raised when the graph builder is given unusable input."""


class _GraphAccumulator:
    """Mutable state for one build; never shared between invocations."""

    def __init__(self) -> None:
        self.nodes: dict[str, GraphNode] = {}
        self.edges: list[GraphEdge] = []
        self.native_balances: dict[str, Decimal] = {}
        self.min_value: Decimal | None = None
        self.max_value = Decimal(0)

    def upsert(
        self,
        node_id: str,
        kind: NodeKind,
        tx: RawTransaction,
        value_change: Decimal = Decimal(0),
    ) -> GraphNode:
        ts = tx.sort_key
        node = self.nodes.get(node_id)
        if node is None:
            node = GraphNode(id=node_id, kind=kind, first_seen=ts, last_seen=ts)
            self.nodes[node_id] = node
        if value_change > 0:
            node.total_inflow += value_change
        elif value_change < 0:
            node.total_outflow += -value_change
        node.record_transaction(tx.signature, ts)
        return node

    def observe_value(self, value: Decimal) -> None:
        if value <= 0:
            return
        self.min_value = value if self.min_value is None else min(self.min_value, value)
        self.max_value = max(self.max_value, value)


class TransactionGraphBuilder:
    """Builds a :class:`TransactionGraph` for a focal wallet.

    Attributes:
        max_depth: Hop cap for the critical path search.
        top_active_limit: How many most-active wallets and programs to keep.
    """

    def __init__(
        self,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        top_active_limit: int = DEFAULT_TOP_ACTIVE_LIMIT,
    ) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be >= 1")
        if top_active_limit < 1:
            raise ValueError("top_active_limit must be >= 1")
        self.max_depth = max_depth
        self.top_active_limit = top_active_limit

    def build(
        self,
        transactions: Sequence[RawTransaction | dict[str, Any]],
        focal_address: str,
    ) -> TransactionGraph:
        """Build the flow graph.

        Args:
            transactions: Transaction batch (models or raw payload dicts).
            focal_address: Wallet the graph is centred on.

        Returns:
            The graph with derived metadata and critical path.

        Raises:
            GraphBuildError: If the batch is not a list/tuple or the focal
                address is empty.
        """
        if not isinstance(transactions, (list, tuple)):
            raise GraphBuildError(
                f"Expected a list of transactions, got {type(transactions).__name__}"
            )
        if not isinstance(focal_address, str) or not focal_address:
            raise GraphBuildError("Invalid wallet address provided")

        ordered = sorted(parse_transactions(transactions), key=lambda tx: tx.sort_key)

        acc = _GraphAccumulator()
        seed_ts = ordered[0].sort_key if ordered else 0
        acc.nodes[focal_address] = GraphNode(
            id=focal_address,
            kind=NodeKind.WALLET,
            first_seen=seed_ts,
            last_seen=seed_ts,
        )

        skipped = 0
        for tx in ordered:
            if not tx.is_valid:
                logger.warning("Skipping transaction without signature (slot=%d)", tx.slot)
                skipped += 1
                continue
            self._add_native_transfers(acc, tx)
            self._add_token_transfers(acc, tx)
            self._add_instructions(acc, tx)
            self._add_balance_changes(acc, tx)

        for address, balance in acc.native_balances.items():
            node = acc.nodes.get(address)
            if node is not None:
                node.balance = balance

        graph = TransactionGraph(
            nodes=acc.nodes,
            edges=acc.edges,
            metadata=GraphMetadata(
                time_range=(ordered[0].sort_key, ordered[-1].sort_key) if ordered else (0, 0),
                value_range=(acc.min_value or Decimal(0), acc.max_value),
                critical_path=find_critical_path(acc.edges, focal_address, max_depth=self.max_depth),
                accounts=dict(acc.native_balances),
                most_active_accounts=self._most_active(acc.nodes, NodeKind.WALLET),
                most_active_programs=self._most_active(acc.nodes, NodeKind.PROGRAM),
                token_mints=[n.id for n in acc.nodes.values() if n.kind == NodeKind.TOKEN],
            ),
        )

        logger.info(
            "Built graph for %s: %d nodes, %d edges, %d transactions (%d skipped)",
            focal_address,
            graph.node_count,
            graph.edge_count,
            len(ordered) - skipped,
            skipped,
        )
        return graph

    def _add_native_transfers(self, acc: _GraphAccumulator, tx: RawTransaction) -> None:
        for idx, transfer in enumerate(tx.native_transfers):
            if not transfer.has_endpoints:
                continue
            amount = transfer.amount
            acc.upsert(transfer.from_user_account, NodeKind.WALLET, tx, -amount)
            acc.upsert(transfer.to_user_account, NodeKind.WALLET, tx, amount)
            acc.edges.append(
                GraphEdge(
                    id=f"{tx.signature}-native-{idx}",
                    source=transfer.from_user_account,
                    target=transfer.to_user_account,
                    value=max(amount, Decimal(0)),
                    timestamp=tx.sort_key,
                    signature=tx.signature,
                    kind=EdgeKind.NATIVE,
                    metadata=NativeEdgeMetadata(
                        description=tx.description,
                        slot=tx.slot,
                        tx_type=tx.type_or_unknown,
                    ),
                    fee=tx.fee if transfer.from_user_account == tx.fee_payer else None,
                )
            )
            acc.observe_value(amount)

    def _add_token_transfers(self, acc: _GraphAccumulator, tx: RawTransaction) -> None:
        for idx, transfer in enumerate(tx.token_transfers):
            if not transfer.has_endpoints or not transfer.mint:
                continue
            acc.upsert(transfer.from_user_account, NodeKind.WALLET, tx)
            acc.upsert(transfer.to_user_account, NodeKind.WALLET, tx)
            acc.upsert(transfer.mint, NodeKind.TOKEN, tx)
            acc.edges.append(
                GraphEdge(
                    id=f"{tx.signature}-token-{idx}",
                    source=transfer.from_user_account,
                    target=transfer.to_user_account,
                    value=max(transfer.token_amount, Decimal(0)),
                    timestamp=tx.sort_key,
                    signature=tx.signature,
                    kind=EdgeKind.TOKEN,
                    metadata=TokenEdgeMetadata(
                        mint=transfer.mint,
                        description=tx.description,
                        slot=tx.slot,
                        tx_type=tx.type_or_unknown,
                    ),
                )
            )
            # Token units are not normalized against lamports.
            acc.observe_value(transfer.token_amount)

    def _add_instructions(self, acc: _GraphAccumulator, tx: RawTransaction) -> None:
        for idx, instruction in enumerate(tx.instructions):
            if not instruction.program_id:
                continue
            acc.upsert(instruction.program_id, NodeKind.PROGRAM, tx)
            for account_idx, account in enumerate(instruction.accounts):
                if not account:
                    continue
                acc.upsert(account, NodeKind.WALLET, tx)
                acc.edges.append(
                    GraphEdge(
                        id=f"{tx.signature}-instruction-{idx}-{account_idx}",
                        source=account,
                        target=instruction.program_id,
                        value=Decimal(0),
                        timestamp=tx.sort_key,
                        signature=tx.signature,
                        kind=EdgeKind.INSTRUCTION,
                        metadata=InstructionEdgeMetadata(
                            program_id=instruction.program_id,
                            description=tx.description,
                            slot=tx.slot,
                            tx_type=tx.type_or_unknown,
                        ),
                    )
                )

    def _add_balance_changes(self, acc: _GraphAccumulator, tx: RawTransaction) -> None:
        for data in tx.account_data:
            if not data.account:
                continue
            acc.native_balances[data.account] = (
                acc.native_balances.get(data.account, Decimal(0)) + data.native_balance_change
            )
            for change in data.token_balance_changes:
                if not change.user_account or not change.mint or change.raw_token_amount is None:
                    continue
                node = acc.nodes.get(change.user_account)
                if node is None or not isinstance(node.metadata, WalletNodeMetadata):
                    logger.debug(
                        "No wallet node for token balance change of %s in %s",
                        change.user_account,
                        tx.signature,
                    )
                    continue
                node.metadata.add_token_balance(change.mint, change.amount)

    def _most_active(self, nodes: dict[str, GraphNode], kind: NodeKind) -> list[str]:
        # sorted() is stable, so ties keep first-encountered order.
        ranked = sorted(
            (n for n in nodes.values() if n.kind == kind),
            key=lambda n: n.transaction_count,
            reverse=True,
        )
        return [n.id for n in ranked[: self.top_active_limit]]


def build_graph(
    transactions: Sequence[RawTransaction | dict[str, Any]],
    focal_address: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    top_active_limit: int = DEFAULT_TOP_ACTIVE_LIMIT,
) -> TransactionGraph:
    """Build a transaction-flow graph with default settings.

    See :meth:`TransactionGraphBuilder.build`.
    """
    builder = TransactionGraphBuilder(max_depth=max_depth, top_active_limit=top_active_limit)
    return builder.build(transactions, focal_address)
