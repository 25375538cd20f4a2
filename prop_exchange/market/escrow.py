"""Escrow marketplace for fractional property shares.

Per (property, seller) listing the protocol is::

    (none) --list--> ACTIVE --accept--> PENDING_SALE --settle--> EXECUTED
                       |                     |
                       +--unlist--> CANCELLED  +--deadline passes--> ACTIVE

The marketplace never holds shares. Balances are read from the ledger when
listing and re-checked at settlement, since holders can transfer shares
independently in between.

An accepted deal that was not settled before its deadline is released lazily:
queries report the listing as ACTIVE from the first instant past the deadline,
and the stored record is reset by the next successful call that touches the
listing.
"""

import logging
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from typing import Any

from prop_exchange.config import DEFAULT_DEAL_WINDOW_SECONDS
from prop_exchange.env.clock import Clock
from prop_exchange.env.events import EventEmitter
from prop_exchange.env.payments import PaymentRail, to_money
from prop_exchange.exceptions import (
    DuplicateError,
    ExchangeError,
    ExpiredError,
    InsufficientBalanceError,
    InsufficientFundsError,
    InvalidStateError,
    NotAuthorizedError,
    NotFoundError,
    PaymentMismatchError,
    ValidationError,
)
from prop_exchange.models.enums import ListingState
from prop_exchange.models.market import Listing, Offer, SaleReceipt
from prop_exchange.store.ledger import PropertyLedger

logger = logging.getLogger(__name__)

ListingKey = tuple[int, str]


class EscrowMarketplace:
    """List, offer on and settle trades of ledger shares.

    Parameters
    ----------
    ledger : PropertyLedger
        Source of balances and the share-transfer primitive.
    payments : PaymentRail
        Moves payment between identities.
    clock : Clock
        Time source for deal deadlines.
    emitter : EventEmitter | None
        Event log; defaults to the ledger's emitter.
    flat_fee : Decimal
        Amount kept by the marketplace from every settlement.
    deal_window : timedelta
        Time the accepted buyer has to settle.
    fee_account : str
        Identity that escrows payments and keeps the fees.
    """

    def __init__(
        self,
        ledger: PropertyLedger,
        payments: PaymentRail,
        clock: Clock,
        emitter: EventEmitter | None = None,
        flat_fee: Decimal = Decimal("0.01"),
        deal_window: timedelta = timedelta(seconds=DEFAULT_DEAL_WINDOW_SECONDS),
        fee_account: str = "marketplace",
    ) -> None:
        self.ledger = ledger
        self.payments = payments
        self.clock = clock
        self.emitter = emitter or ledger.emitter
        self.flat_fee = to_money(flat_fee)
        self.deal_window = deal_window
        self.fee_account = fee_account
        self.collected_fees = Decimal("0")

        self._listings: dict[ListingKey, Listing] = {}
        self._offers: dict[ListingKey, dict[str, Offer]] = {}

    # Listing lifecycle
    def list_property(self, seller: str, property_id: int, price: Decimal, quantity: int) -> Listing:
        """Offer ``quantity`` shares of ``property_id`` for ``price`` in total."""
        price = to_money(price)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"Quantity must be a positive integer, got {quantity!r}")
        if price <= 0:
            raise ValidationError(f"Price must be positive, got {price}")

        key = (property_id, seller)
        if key in self._listings:
            raise DuplicateError("Token owned is already listed")
        if quantity > self.ledger.balance_of(seller, property_id):
            raise InsufficientBalanceError("You do not own enough tokens to list this amount")

        listing = Listing(
            property_id=property_id,
            seller=seller,
            price=price,
            quantity=quantity,
            listed_at=self.clock.now(),
        )
        self._listings[key] = listing
        self._offers[key] = {}

        logger.info(
            "Listed %d shares of property %d by %s at %s",
            quantity, property_id, seller, price,
            extra=_context(key),
        )
        self.emitter.emit(
            "listing.created",
            _subject(key),
            seller=seller,
            property_id=property_id,
            quantity=quantity,
            price=price,
        )
        return replace(listing)

    def unlist_property(self, seller: str, property_id: int) -> Listing:
        """Cancel an ACTIVE listing and discard its offers."""
        key = (property_id, seller)
        listing = self._require_listing(key)
        if self._state_of(listing) == ListingState.PENDING_SALE:
            raise InvalidStateError("This listing has a buyer and is in pending state")

        self._release_if_expired(listing)
        del self._listings[key]
        del self._offers[key]
        listing.state = ListingState.CANCELLED

        logger.info(
            "Unlisted property %d by %s",
            property_id, seller,
            extra=_context(key),
        )
        self.emitter.emit(
            "listing.cancelled",
            _subject(key),
            seller=seller,
            property_id=property_id,
        )
        return listing

    # Offers
    def send_offer(self, buyer: str, property_id: int, seller: str, price: Decimal) -> Offer:
        """Create or replace ``buyer``'s offer on an ACTIVE listing."""
        price = to_money(price)
        key = (property_id, seller)
        listing = self._require_listing(key)
        if self._state_of(listing) != ListingState.ACTIVE:
            raise InvalidStateError("This listing has a buyer and is in pending state")
        if buyer == seller:
            raise ValidationError("Sellers cannot make offers on their own listing")
        if price <= self.flat_fee:
            raise ValidationError(
                f"Offer price {price} must exceed the marketplace fee {self.flat_fee}"
            )

        self._release_if_expired(listing)
        offer = Offer(
            property_id=property_id,
            seller=seller,
            buyer=buyer,
            price=price,
            sent_at=self.clock.now(),
        )
        self._offers[key][buyer] = offer

        logger.info(
            "Offer of %s by %s on property %d from %s",
            price, buyer, property_id, seller,
            extra=_context(key, buyer=buyer, price=price),
        )
        self.emitter.emit(
            "offer.sent",
            _subject(key),
            seller=seller,
            property_id=property_id,
            price=price,
            buyer=buyer,
        )
        return replace(offer)

    def retract_offer(self, buyer: str, property_id: int, seller: str) -> None:
        """Withdraw ``buyer``'s offer unless it is the accepted one of a live deal."""
        key = (property_id, seller)
        offers = self._offers.get(key, {})
        if buyer not in offers:
            raise NotFoundError("The offer does not exist")
        listing = self._listings[key]
        if self._state_of(listing) == ListingState.PENDING_SALE and listing.accepted_buyer == buyer:
            raise InvalidStateError("The accepted offer cannot be retracted before the deal expires")

        self._release_if_expired(listing)
        del offers[buyer]

        logger.info(
            "Offer by %s on property %d from %s retracted",
            buyer, property_id, seller,
            extra=_context(key, buyer=buyer),
        )
        self.emitter.emit(
            "offer.retracted",
            _subject(key),
            seller=seller,
            property_id=property_id,
            buyer=buyer,
        )

    def accept_offer(self, seller: str, property_id: int, buyer: str) -> Listing:
        """Lock the listing for ``buyer`` and start the settlement window."""
        key = (property_id, seller)
        listing = self._require_listing(key)
        if self._state_of(listing) != ListingState.ACTIVE:
            raise InvalidStateError("This listing has a buyer and is in pending state")
        offer = self._offers[key].get(buyer)
        if offer is None:
            raise NotFoundError("The offer does not exist")

        self._release_if_expired(listing)
        now = self.clock.now()
        listing.state = ListingState.PENDING_SALE
        listing.accepted_buyer = buyer
        listing.accepted_price = offer.price
        listing.deal_deadline = now + self.deal_window

        logger.info(
            "Seller %s accepted %s from %s on property %d, deadline %s",
            seller, offer.price, buyer, property_id, listing.deal_deadline.isoformat(),
            extra=_context(key, buyer=buyer, price=offer.price),
        )
        self.emitter.emit(
            "offer.accepted",
            _subject(key),
            seller=seller,
            property_id=property_id,
            buyer=buyer,
            price=offer.price,
            deal_deadline=listing.deal_deadline,
        )
        return replace(listing)

    # Settlement
    def execute_property_sale(
        self,
        buyer: str,
        property_id: int,
        seller: str,
        payment: Decimal,
    ) -> SaleReceipt:
        """Pay for and receive the shares of an accepted deal.

        The payment is escrowed into ``fee_account``, the shares move from
        seller to buyer with ``fee_account`` acting as the seller's approved
        operator, and the seller is paid ``payment - flat_fee``. If the
        share move fails, the escrowed payment is returned before the error
        propagates.

        Raises
        ------
        NotFoundError
            If there is no listing.
        InvalidStateError
            If no offer has been accepted.
        NotAuthorizedError
            If ``buyer`` is not the accepted buyer, or the seller has not
            approved ``fee_account`` as an operator with
            ``PropertyLedger.set_approval_for_all``.
        ExpiredError
            If the deal deadline has passed.
        PaymentMismatchError
            If ``payment`` differs from the accepted price.
        InsufficientBalanceError
            If the seller no longer holds the listed quantity.
        InsufficientFundsError
            If the buyer cannot pay.
        """
        payment = to_money(payment)
        key = (property_id, seller)
        listing = self._require_listing(key)
        if listing.state != ListingState.PENDING_SALE:
            raise InvalidStateError("No offer has been accepted for this listing")
        if buyer != listing.accepted_buyer:
            raise NotAuthorizedError("Only the accepted buyer can settle this deal")
        now = self.clock.now()
        if listing.is_expired(now):
            raise ExpiredError(
                f"Deal expired at {listing.deal_deadline.isoformat()}"
            )
        if payment != listing.accepted_price:
            raise PaymentMismatchError(
                f"Payment {payment} does not match agreed price {listing.accepted_price}"
            )
        if self.ledger.balance_of(seller, property_id) < listing.quantity:
            raise InsufficientBalanceError(
                f"{seller} no longer holds {listing.quantity} shares of property {property_id}"
            )
        if not self.ledger.is_approved_for_all(seller, self.fee_account):
            raise NotAuthorizedError(
                f"{seller} has not approved the marketplace to transfer its shares"
            )
        if self.payments.balance_of(buyer) < payment:
            raise InsufficientFundsError(f"{buyer} cannot pay {payment}")

        proceeds = payment - self.flat_fee
        self.payments.transfer(buyer, self.fee_account, payment)
        try:
            self.ledger.safe_transfer_from(self.fee_account, seller, buyer, property_id, listing.quantity)
        except ExchangeError:
            logger.exception(
                "Share transfer failed for property %d, refunding %s",
                property_id, buyer,
                extra=_context(key, buyer=buyer, amount=payment),
            )
            self.payments.transfer(self.fee_account, buyer, payment)
            raise
        self.payments.transfer(self.fee_account, seller, proceeds)
        self.collected_fees += self.flat_fee

        del self._listings[key]
        del self._offers[key]
        listing.state = ListingState.EXECUTED

        receipt = SaleReceipt(
            property_id=property_id,
            seller=seller,
            buyer=buyer,
            quantity=listing.quantity,
            price=payment,
            fee=self.flat_fee,
            seller_proceeds=proceeds,
            settled_at=now,
        )
        logger.info(
            "Sold %d shares of property %d from %s to %s for %s (fee %s)",
            listing.quantity, property_id, seller, buyer, payment, self.flat_fee,
            extra=_context(key, buyer=buyer, quantity=listing.quantity, price=payment),
        )
        self.emitter.emit(
            "listing.sold",
            _subject(key),
            seller=seller,
            buyer=buyer,
            property_id=property_id,
            quantity=listing.quantity,
            price=payment,
            fee=self.flat_fee,
        )
        return receipt

    # Query methods
    def get_listing(self, property_id: int, seller: str) -> Listing:
        """Copy of the listing as it stands now, with expired deals shown ACTIVE."""
        listing = self._require_listing((property_id, seller))
        if listing.is_expired(self.clock.now()):
            return _released(listing)
        return replace(listing)

    def get_listing_price(self, property_id: int, seller: str) -> Decimal:
        return self._require_listing((property_id, seller)).price

    def get_offer_price(self, property_id: int, seller: str, buyer: str) -> Decimal:
        offer = self._offers.get((property_id, seller), {}).get(buyer)
        if offer is None:
            raise NotFoundError("The offer does not exist")
        return offer.price

    def view_offers(self, property_id: int, seller: str) -> list[Offer]:
        """Offers on a listing, oldest first."""
        self._require_listing((property_id, seller))
        return [replace(o) for o in self._offers[(property_id, seller)].values()]

    def view_listings(self, property_id: int | None = None) -> list[Listing]:
        """All live listings, optionally for one property."""
        return [
            self.get_listing(pid, seller)
            for (pid, seller) in self._listings
            if property_id is None or pid == property_id
        ]

    def summary(self) -> dict[str, int | str]:
        """Return summary counts of live marketplace entities."""
        states = [self._state_of(listing) for listing in self._listings.values()]
        return {
            "listings": len(self._listings),
            "active": states.count(ListingState.ACTIVE),
            "pending_sale": states.count(ListingState.PENDING_SALE),
            "offers": sum(len(o) for o in self._offers.values()),
            "collected_fees": str(self.collected_fees),
        }

    def _require_listing(self, key: ListingKey) -> Listing:
        listing = self._listings.get(key)
        if listing is None:
            raise NotFoundError("The listing does not exist")
        return listing

    def _state_of(self, listing: Listing) -> ListingState:
        if listing.is_expired(self.clock.now()):
            return ListingState.ACTIVE
        return listing.state

    def _release_if_expired(self, listing: Listing) -> None:
        """Reset an expired deal in place. Call only once the operation cannot fail."""
        if not listing.is_expired(self.clock.now()):
            return
        buyer, deadline = listing.accepted_buyer, listing.deal_deadline
        listing.state = ListingState.ACTIVE
        listing.accepted_buyer = None
        listing.accepted_price = None
        listing.deal_deadline = None
        logger.info(
            "Deal with %s on property %d from %s expired",
            buyer, listing.property_id, listing.seller,
            extra=_context(listing.key, buyer=buyer),
        )
        self.emitter.emit(
            "listing.deal_expired",
            _subject(listing.key),
            seller=listing.seller,
            property_id=listing.property_id,
            buyer=buyer,
            deal_deadline=deadline,
        )


def _subject(key: ListingKey) -> str:
    return f"{key[0]}:{key[1]}"


def _context(key: ListingKey, **fields: Any) -> dict[str, Any]:
    return {"property_id": key[0], "seller": key[1], **fields}


def _released(listing: Listing) -> Listing:
    return replace(
        listing,
        state=ListingState.ACTIVE,
        accepted_buyer=None,
        accepted_price=None,
        deal_deadline=None,
    )
