"""Input layer - Normalized Solana transactions and entity labels."""

from solana_wallet_forensics.ingestor.labels import AddressLabel, LabelCategory
from solana_wallet_forensics.ingestor.models import (
    AccountData,
    Instruction,
    NativeTransfer,
    RawTokenAmount,
    RawTransaction,
    TokenBalanceChange,
    TokenTransfer,
    parse_transactions,
)
from solana_wallet_forensics.ingestor.sources import LabelFetcher, TransactionFetcher
from solana_wallet_forensics.ingestor.validation import (
    is_solana_address,
    is_solana_address_or_domain,
    lamports_to_sol,
)

__all__ = [
    "AccountData",
    "AddressLabel",
    "Instruction",
    "LabelCategory",
    "LabelFetcher",
    "NativeTransfer",
    "RawTokenAmount",
    "RawTransaction",
    "TokenBalanceChange",
    "TokenTransfer",
    "TransactionFetcher",
    "is_solana_address",
    "is_solana_address_or_domain",
    "lamports_to_sol",
    "parse_transactions",
]
