"""Entity label model for BlockSec-style AML address labels."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

# Category code the label provider assigns to centralized exchanges
EXCHANGE_CATEGORY_CODE = 3011

# Chain id the label provider uses for Solana
SOLANA_CHAIN_ID = -3


@dataclass(frozen=True)
class LabelCategory:
    """A single entity category attached to a label."""

    name: str
    code: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LabelCategory":
        """Create a LabelCategory from a dictionary."""
        code = data.get("code")
        return cls(
            name=str(data.get("name", "")),
            code=int(code) if isinstance(code, (int, float)) and not isinstance(code, bool) else -1,
        )


@dataclass(frozen=True)
class AddressLabel:
    """Known-entity label for an address, as returned by the label provider."""

    address: str
    chain_id: int = SOLANA_CHAIN_ID
    main_entity: str = ""
    name_tag: str = ""
    categories: tuple[LabelCategory, ...] = ()

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "AddressLabel | None":
        """Create an AddressLabel from a full label-API response.

        Returns:
            AddressLabel, or None when the response carries no ``data`` object.
        """
        data = payload.get("data")
        if not isinstance(data, Mapping):
            return None
        entity_info = data.get("main_entity_info")
        raw_categories: Any = ()
        if isinstance(entity_info, Mapping):
            raw_categories = entity_info.get("categories") or ()
        chain_id = data.get("chain_id")
        return cls(
            address=str(data.get("address", "")),
            chain_id=chain_id if isinstance(chain_id, int) else SOLANA_CHAIN_ID,
            main_entity=str(data.get("main_entity") or ""),
            name_tag=str(data.get("name_tag") or ""),
            categories=tuple(
                LabelCategory.from_dict(c) for c in raw_categories if isinstance(c, Mapping)
            ),
        )

    def has_category(self, code: int) -> bool:
        """Return True if any category carries the given code."""
        return any(c.code == code for c in self.categories)

    @property
    def is_exchange(self) -> bool:
        """Return True if the label identifies a known exchange."""
        return self.has_category(EXCHANGE_CATEGORY_CODE)

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "address": self.address,
            "chain_id": self.chain_id,
            "main_entity": self.main_entity,
            "name_tag": self.name_tag,
            "categories": [{"name": c.name, "code": c.code} for c in self.categories],
        }
