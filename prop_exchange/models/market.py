"""Listing, offer and settlement models for the escrow marketplace."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from prop_exchange.models.enums import ListingState


@dataclass
class Listing:
    """A seller's offer to sell ``quantity`` shares for ``price`` in total."""

    property_id: int
    seller: str
    price: Decimal
    quantity: int
    state: ListingState = ListingState.ACTIVE
    accepted_buyer: str | None = None
    accepted_price: Decimal | None = None
    deal_deadline: datetime | None = None
    listed_at: datetime | None = None

    @property
    def key(self) -> tuple[int, str]:
        return (self.property_id, self.seller)

    def is_expired(self, now: datetime) -> bool:
        """True when an accepted deal has run past its deadline."""
        return (
            self.state == ListingState.PENDING_SALE
            and self.deal_deadline is not None
            and now > self.deal_deadline
        )


@dataclass
class Offer:
    """A buyer's proposed price against a listing."""

    property_id: int
    seller: str
    buyer: str
    price: Decimal
    sent_at: datetime | None = None


@dataclass(frozen=True)
class SaleReceipt:
    """Outcome of a settled sale."""

    property_id: int
    seller: str
    buyer: str
    quantity: int
    price: Decimal
    fee: Decimal
    seller_proceeds: Decimal
    settled_at: datetime
