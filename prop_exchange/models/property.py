"""Property records held by the ledger."""

from dataclasses import dataclass, field
from datetime import datetime

from prop_exchange.models.enums import PropertyStatus
from prop_exchange.structures import IndexedSet


@dataclass
class PropertyRecord:
    """Mutable ledger entry for one tokenized property.

    ``staged_owners``/``staged_shares`` hold the registration split until
    approval credits them into ``balances``.
    """

    property_id: int
    registrant: str
    postal_code: str
    location: str
    status: PropertyStatus = PropertyStatus.PENDING
    staged_owners: list[str] = field(default_factory=list)
    staged_shares: list[int] = field(default_factory=list)
    balances: dict[str, int] = field(default_factory=dict)
    holders: IndexedSet[str] = field(default_factory=IndexedSet)
    registered_at: datetime | None = None
    decided_at: datetime | None = None


@dataclass(frozen=True)
class PropertyView:
    """Read-only projection of a property; ``holders[i]`` owns ``shares[i]``."""

    property_id: int
    postal_code: str
    location: str
    status: PropertyStatus
    holders: list[str]
    shares: list[int]

    @property
    def total_shares(self) -> int:
        return sum(self.shares)
