"""Address validation and unit conversion helpers."""

import re
from decimal import Decimal, InvalidOperation

LAMPORTS_PER_SOL = Decimal(1_000_000_000)

_BASE58_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{1,61}[a-zA-Z0-9]\.(sol|sns)$")


def is_solana_address(value: str) -> bool:
    """Return True if value looks like a base58 Solana public key."""
    return bool(_BASE58_ADDRESS_RE.match(value or ""))


def is_solana_address_or_domain(value: str) -> bool:
    """Return True for a base58 address or a .sol/.sns domain name."""
    return is_solana_address(value) or bool(_DOMAIN_RE.match(value or ""))


def lamports_to_sol(lamports: int | str | Decimal, decimals: int | None = 9) -> Decimal:
    """Convert lamports to SOL, optionally rounded to ``decimals`` places.

    Raises:
        ValueError: If the value cannot be parsed as a number.
    """
    try:
        value = Decimal(str(lamports))
    except InvalidOperation as e:
        raise ValueError(f"Invalid lamports value: {lamports!r}") from e
    if not value.is_finite():
        raise ValueError(f"Invalid lamports value: {lamports!r}")
    sol = value / LAMPORTS_PER_SOL
    if decimals is None or decimals < 0:
        return sol
    return round(sol, decimals)
