"""Interfaces of the upstream fetch layer.

Fetching (HTTP, rate limiting, batching, retries) lives outside this
package. The analytics only depend on these two async callables.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from solana_wallet_forensics.ingestor.labels import AddressLabel
from solana_wallet_forensics.ingestor.models import RawTransaction

# Returns the wallet's transaction batch; entries may be parsed models or raw payload dicts.
TransactionFetcher = Callable[[str], Awaitable[Sequence[RawTransaction | dict[str, Any]]]]

# Returns the entity label for an address, or None when the address is unlabeled.
LabelFetcher = Callable[[str], Awaitable[AddressLabel | None]]
