"""Data models for the transaction-flow graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import ClassVar


class NodeKind(str, Enum):
    """Role of a participant in the flow graph."""

    WALLET = "wallet"
    TOKEN = "token"
    PROGRAM = "program"


class EdgeKind(str, Enum):
    """What an edge represents."""

    NATIVE = "native"
    TOKEN = "token"
    INSTRUCTION = "instruction"


@dataclass
class WalletNodeMetadata:
    """Per-mint token balance breakdown accumulated from balance changes."""

    kind: ClassVar[NodeKind] = NodeKind.WALLET

    token_balances: dict[str, Decimal] = field(default_factory=dict)

    def add_token_balance(self, mint: str, amount: Decimal) -> None:
        self.token_balances[mint] = self.token_balances.get(mint, Decimal(0)) + amount

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "token_balances": {mint: str(v) for mint, v in self.token_balances.items()},
        }


@dataclass(frozen=True)
class TokenNodeMetadata:
    kind: ClassVar[NodeKind] = NodeKind.TOKEN

    def to_dict(self) -> dict[str, object]:
        return {"kind": self.kind.value}


@dataclass(frozen=True)
class ProgramNodeMetadata:
    kind: ClassVar[NodeKind] = NodeKind.PROGRAM

    def to_dict(self) -> dict[str, object]:
        return {"kind": self.kind.value}


NodeMetadata = WalletNodeMetadata | TokenNodeMetadata | ProgramNodeMetadata


def metadata_for(kind: NodeKind) -> NodeMetadata:
    """Return fresh metadata matching a node kind."""
    if kind == NodeKind.WALLET:
        return WalletNodeMetadata()
    if kind == NodeKind.TOKEN:
        return TokenNodeMetadata()
    return ProgramNodeMetadata()


@dataclass(frozen=True)
class NativeEdgeMetadata:
    """Context for a native (lamport) transfer edge."""

    kind: ClassVar[EdgeKind] = EdgeKind.NATIVE

    description: str
    slot: int
    tx_type: str

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "slot": self.slot,
            "tx_type": self.tx_type,
        }


@dataclass(frozen=True)
class TokenEdgeMetadata:
    """Context for a token transfer edge, including the mint moved."""

    kind: ClassVar[EdgeKind] = EdgeKind.TOKEN

    mint: str
    description: str
    slot: int
    tx_type: str

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "mint": self.mint,
            "description": self.description,
            "slot": self.slot,
            "tx_type": self.tx_type,
        }


@dataclass(frozen=True)
class InstructionEdgeMetadata:
    """Context for an account-to-program invocation edge."""

    kind: ClassVar[EdgeKind] = EdgeKind.INSTRUCTION

    program_id: str
    description: str
    slot: int
    tx_type: str

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "program_id": self.program_id,
            "description": self.description,
            "slot": self.slot,
            "tx_type": self.tx_type,
        }


EdgeMetadata = NativeEdgeMetadata | TokenEdgeMetadata | InstructionEdgeMetadata


@dataclass
class GraphNode:
    """A wallet, token mint or program participating in the batch.

    Nodes are created on first reference and updated in place as later
    transactions touch them.

    Attributes:
        id: Address, mint or program id.
        kind: Role of the node.
        first_seen: Earliest timestamp of a participating transaction.
        last_seen: Latest timestamp of a participating transaction.
        balance: Summed native balance delta, None if no delta was recorded.
        total_inflow: Native amount received.
        total_outflow: Native amount sent.
        transactions: Participating signatures, without duplicates.
        metadata: Kind-specific extras.
    """

    id: str
    kind: NodeKind
    first_seen: int = 0
    last_seen: int = 0
    balance: Decimal | None = None
    total_inflow: Decimal = Decimal(0)
    total_outflow: Decimal = Decimal(0)
    transactions: list[str] = field(default_factory=list)
    metadata: NodeMetadata | None = None
    _seen: set[str] = field(default_factory=set, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._seen.update(self.transactions)
        if self.metadata is None:
            self.metadata = metadata_for(self.kind)

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    def record_transaction(self, signature: str, timestamp: int) -> None:
        """Extend the seen range and remember the signature."""
        self.first_seen = min(self.first_seen, timestamp)
        self.last_seen = max(self.last_seen, timestamp)
        if signature and signature not in self._seen:
            self._seen.add(signature)
            self.transactions.append(signature)

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "balance": str(self.balance) if self.balance is not None else None,
            "total_inflow": str(self.total_inflow),
            "total_outflow": str(self.total_outflow),
            "first_seen": self.first_seen,
            "last_seen": self.last_seen,
            "transactions": list(self.transactions),
            "metadata": self.metadata.to_dict() if self.metadata is not None else None,
        }


@dataclass(frozen=True)
class GraphEdge:
    """A directed value transfer or program invocation.

    Attributes:
        id: ``{signature}-{kind}-{index}`` (instruction edges add the account index).
        source: Sending node id.
        target: Receiving node id.
        value: Amount moved, zero for instruction edges.
        timestamp: Transaction time, 0 if unknown.
        signature: Owning transaction.
        kind: Edge kind.
        metadata: Kind-specific transaction context.
        fee: Transaction fee, only on native edges sent by the fee payer.
    """

    id: str
    source: str
    target: str
    value: Decimal
    timestamp: int
    signature: str
    kind: EdgeKind
    metadata: EdgeMetadata
    fee: Decimal | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "value": str(self.value),
            "timestamp": self.timestamp,
            "signature": self.signature,
            "kind": self.kind.value,
            "fee": str(self.fee) if self.fee is not None else None,
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class GraphMetadata:
    """Aggregates derived after all transactions were folded into the graph."""

    time_range: tuple[int, int] = (0, 0)
    value_range: tuple[Decimal, Decimal] = (Decimal(0), Decimal(0))
    critical_path: list[str] = field(default_factory=list)
    accounts: dict[str, Decimal] = field(default_factory=dict)
    most_active_accounts: list[str] = field(default_factory=list)
    most_active_programs: list[str] = field(default_factory=list)
    token_mints: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "time_range": {"start": self.time_range[0], "end": self.time_range[1]},
            "value_range": {"min": str(self.value_range[0]), "max": str(self.value_range[1])},
            "critical_path": list(self.critical_path),
            "accounts": {account: str(v) for account, v in self.accounts.items()},
            "most_active_accounts": list(self.most_active_accounts),
            "most_active_programs": list(self.most_active_programs),
            "token_mints": list(self.token_mints),
        }


@dataclass
class TransactionGraph:
    """Typed flow graph of one wallet's transaction batch."""

    nodes: dict[str, GraphNode] = field(default_factory=dict)
    edges: list[GraphEdge] = field(default_factory=list)
    metadata: GraphMetadata = field(default_factory=GraphMetadata)

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def get_node(self, node_id: str) -> GraphNode | None:
        return self.nodes.get(node_id)

    def edges_for(self, node_id: str) -> list[GraphEdge]:
        """Return edges where the node is the source or the target."""
        return [e for e in self.edges if e.source == node_id or e.target == node_id]

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "nodes": [n.to_dict() for n in self.nodes.values()],
            "edges": [e.to_dict() for e in self.edges],
            "metadata": self.metadata.to_dict(),
        }
