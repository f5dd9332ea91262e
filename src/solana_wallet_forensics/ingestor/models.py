"""Data models for the ingestor module.

These are the normalized, immutable shapes of Helius "enhanced" Solana
transactions consumed by every analytic. Parsing is deliberately lenient:
third-party payloads are noisy, so wrongly-typed numbers become zero and
nested records that are not objects are dropped instead of raising.
"""

import contextlib
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

logger = logging.getLogger(__name__)

UNKNOWN = "UNKNOWN"


def _to_decimal(value: Any) -> Decimal:
    """Parse a JSON number into a Decimal, falling back to zero."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return Decimal(0)
    with contextlib.suppress(InvalidOperation, ValueError):
        parsed = Decimal(str(value))
        if parsed.is_finite():
            return parsed
    return Decimal(0)


def _to_timestamp(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        ts = float(value)
    except OverflowError:
        return None
    if not math.isfinite(ts):
        return None
    if ts > 1e12:
        ts /= 1000.0
    return int(ts)


def _to_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _mappings(value: Any) -> Iterable[Mapping[str, Any]]:
    if not isinstance(value, list):
        return ()
    return (item for item in value if isinstance(item, Mapping))


@dataclass(frozen=True)
class NativeTransfer:
    """A transfer of lamports between two accounts."""

    from_user_account: str
    to_user_account: str
    amount: Decimal

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NativeTransfer":
        """Create a NativeTransfer from a Helius payload entry."""
        return cls(
            from_user_account=_to_str(data.get("fromUserAccount")),
            to_user_account=_to_str(data.get("toUserAccount")),
            amount=_to_decimal(data.get("amount")),
        )

    @property
    def has_endpoints(self) -> bool:
        """Return True if both sides of the transfer are known."""
        return bool(self.from_user_account and self.to_user_account)


@dataclass(frozen=True)
class TokenTransfer:
    """A transfer of a fungible (or NFT) token identified by its mint."""

    from_user_account: str
    to_user_account: str
    mint: str
    token_amount: Decimal
    from_token_account: str = ""
    to_token_account: str = ""
    token_standard: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TokenTransfer":
        """Create a TokenTransfer from a Helius payload entry."""
        return cls(
            from_user_account=_to_str(data.get("fromUserAccount")),
            to_user_account=_to_str(data.get("toUserAccount")),
            mint=_to_str(data.get("mint")),
            token_amount=_to_decimal(data.get("tokenAmount")),
            from_token_account=_to_str(data.get("fromTokenAccount")),
            to_token_account=_to_str(data.get("toTokenAccount")),
            token_standard=_to_str(data.get("tokenStandard")),
        )

    @property
    def has_endpoints(self) -> bool:
        """Return True if both sides of the transfer are known."""
        return bool(self.from_user_account and self.to_user_account)


@dataclass(frozen=True)
class RawTokenAmount:
    """Raw integer token amount plus the mint's decimals."""

    token_amount: str
    decimals: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawTokenAmount":
        """Create a RawTokenAmount from a Helius payload entry."""
        decimals = data.get("decimals")
        return cls(
            token_amount=_to_str(data.get("tokenAmount")) or "0",
            decimals=decimals if isinstance(decimals, int) and not isinstance(decimals, bool) else 0,
        )

    @property
    def ui_amount(self) -> Decimal:
        """Return the signed amount scaled by the mint decimals (0 if unparsable)."""
        try:
            raw = Decimal(self.token_amount)
        except InvalidOperation:
            return Decimal(0)
        if not raw.is_finite():
            return Decimal(0)
        return raw.scaleb(-self.decimals)


@dataclass(frozen=True)
class TokenBalanceChange:
    """A per-mint token balance delta for one user account."""

    user_account: str
    mint: str
    raw_token_amount: RawTokenAmount | None
    token_account: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TokenBalanceChange":
        """Create a TokenBalanceChange from a Helius payload entry."""
        raw = data.get("rawTokenAmount")
        return cls(
            user_account=_to_str(data.get("userAccount")),
            mint=_to_str(data.get("mint")),
            raw_token_amount=RawTokenAmount.from_dict(raw) if isinstance(raw, Mapping) else None,
            token_account=_to_str(data.get("tokenAccount")),
        )

    @property
    def amount(self) -> Decimal:
        """Return the decimal-adjusted delta, or zero when the raw amount is missing."""
        if self.raw_token_amount is None:
            return Decimal(0)
        return self.raw_token_amount.ui_amount


@dataclass(frozen=True)
class AccountData:
    """Balance deltas for one account within a transaction."""

    account: str
    native_balance_change: Decimal
    token_balance_changes: tuple[TokenBalanceChange, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AccountData":
        """Create an AccountData from a Helius payload entry."""
        return cls(
            account=_to_str(data.get("account")),
            native_balance_change=_to_decimal(data.get("nativeBalanceChange")),
            token_balance_changes=tuple(
                TokenBalanceChange.from_dict(c) for c in _mappings(data.get("tokenBalanceChanges"))
            ),
        )


@dataclass(frozen=True)
class Instruction:
    """A program invocation and the accounts passed to it."""

    program_id: str
    accounts: tuple[str, ...]
    data: str = ""
    inner_instructions: tuple["Instruction", ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Instruction | None":
        """Create an Instruction, or None if the accounts list is not a list."""
        accounts = data.get("accounts")
        if not isinstance(accounts, list):
            return None
        inner = (Instruction.from_dict(i) for i in _mappings(data.get("innerInstructions")))
        return cls(
            program_id=_to_str(data.get("programId")),
            accounts=tuple(_to_str(a) for a in accounts),
            data=_to_str(data.get("data")),
            inner_instructions=tuple(i for i in inner if i is not None),
        )


@dataclass(frozen=True)
class RawTransaction:
    """A Helius enhanced transaction, normalized and immutable.

    ``timestamp`` is unix seconds and may be absent; consumers that need a
    number for ordering use :attr:`sort_key` (absent sorts as 0). ``type``
    and ``source`` are empty strings when the provider did not tag them.
    """

    signature: str
    timestamp: int | None = None
    fee: Decimal = Decimal(0)
    fee_payer: str = ""
    type: str = ""
    source: str = ""
    description: str = ""
    slot: int = 0
    transaction_error: bool = False
    native_transfers: tuple[NativeTransfer, ...] = ()
    token_transfers: tuple[TokenTransfer, ...] = ()
    account_data: tuple[AccountData, ...] = ()
    instructions: tuple[Instruction, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawTransaction":
        """Create a RawTransaction from a Helius enhanced-transaction payload.

        Args:
            data: One element of the ``/v0/transactions`` response.

        Returns:
            RawTransaction instance (possibly without signature, see is_valid).
        """
        slot = data.get("slot")
        instructions = (Instruction.from_dict(i) for i in _mappings(data.get("instructions")))
        return cls(
            signature=_to_str(data.get("signature")),
            timestamp=_to_timestamp(data.get("timestamp")),
            fee=_to_decimal(data.get("fee")),
            fee_payer=_to_str(data.get("feePayer")),
            type=_to_str(data.get("type")),
            source=_to_str(data.get("source")),
            description=_to_str(data.get("description")),
            slot=slot if isinstance(slot, int) and not isinstance(slot, bool) else 0,
            transaction_error=data.get("transactionError") is not None,
            native_transfers=tuple(
                NativeTransfer.from_dict(t) for t in _mappings(data.get("nativeTransfers"))
            ),
            token_transfers=tuple(
                TokenTransfer.from_dict(t) for t in _mappings(data.get("tokenTransfers"))
            ),
            account_data=tuple(AccountData.from_dict(a) for a in _mappings(data.get("accountData"))),
            instructions=tuple(i for i in instructions if i is not None),
        )

    @property
    def is_valid(self) -> bool:
        """Return True if the transaction carries a signature."""
        return bool(self.signature)

    @property
    def sort_key(self) -> int:
        """Return the timestamp for ordering, treating absent as 0."""
        return self.timestamp or 0

    @property
    def type_or_unknown(self) -> str:
        return self.type or UNKNOWN

    @property
    def source_or_unknown(self) -> str:
        return self.source or UNKNOWN

    def native_amount_to(self, address: str) -> Decimal:
        """Return the sum of native transfers received by ``address``."""
        return sum(
            (t.amount for t in self.native_transfers if t.to_user_account == address),
            Decimal(0),
        )

    def native_balance_change(self, address: str) -> Decimal:
        """Return the summed native balance delta recorded for ``address``."""
        return sum(
            (a.native_balance_change for a in self.account_data if a.account == address),
            Decimal(0),
        )

    def touches(self, address: str) -> bool:
        """Return True if the address appears in account data or token transfers."""
        return any(a.account == address for a in self.account_data) or any(
            t.from_user_account == address or t.to_user_account == address
            for t in self.token_transfers
        )


def parse_transactions(payload: Iterable[Any]) -> list[RawTransaction]:
    """Normalize a batch that may mix parsed models and raw payload dicts.

    Entries that are neither are dropped with a warning; validity (signature
    present) is left to the consumer so it can log the skip in context.
    """
    parsed: list[RawTransaction] = []
    for position, item in enumerate(payload):
        if isinstance(item, RawTransaction):
            parsed.append(item)
        elif isinstance(item, Mapping):
            parsed.append(RawTransaction.from_dict(item))
        else:
            logger.warning("Dropping non-object transaction entry at position %d: %r", position, item)
    return parsed
