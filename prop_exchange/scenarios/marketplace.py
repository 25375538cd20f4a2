"""Marketplace scenario: seed an exchange and drive random trading rounds."""

import logging
import random
from datetime import timedelta
from decimal import Decimal
from typing import Any

from prop_exchange.config import ExchangeConfig, SimulationConfig
from prop_exchange.env.access import AccessRegistry
from prop_exchange.env.clock import ManualClock
from prop_exchange.env.payments import InMemoryWallets
from prop_exchange.exceptions import ExpiredError, InsufficientFundsError
from prop_exchange.exchange import Exchange, build_exchange
from prop_exchange.generators import ParticipantGenerator, PropertyGenerator
from prop_exchange.models.enums import ListingState
from prop_exchange.models.participant import Participant

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class MarketplaceScenario:
    """Generate a populated exchange with a realistic trading history.

    The scenario:
    - approves participants in the access registry and funds their wallets
    - registers properties with random owner splits; some are rejected and
      resubmitted before approval
    - runs trading rounds: list, collect offers, accept one, then settle or
      let the deal expire
    - checks ledger invariants after every round
    """

    def __init__(
        self,
        num_participants: int = 10,
        num_properties: int = 5,
        trading_rounds: int = 20,
        rejection_rate: float = 0.1,
        expiry_rate: float = 0.1,
        initial_funds: Decimal = Decimal("1000"),
        seed: int | None = None,
        config: ExchangeConfig | None = None,
    ) -> None:
        """Initialize marketplace scenario.

        Parameters
        ----------
        num_participants : int
            Number of approved participants (at least 2).
        num_properties : int
            Number of properties to register.
        trading_rounds : int
            Number of list/offer/accept cycles.
        rejection_rate : float
            Probability a registration is rejected once before approval.
        expiry_rate : float
            Probability an accepted deal is left to expire.
        initial_funds : Decimal
            Wallet balance given to every participant.
        seed : int | None
            Random seed for reproducibility.
        config : ExchangeConfig | None
            Exchange configuration (fee, window, shares per property).
        """
        if num_participants < 2:
            raise ValueError("A marketplace needs at least 2 participants")
        self.num_participants = num_participants
        self.num_properties = num_properties
        self.trading_rounds = trading_rounds
        self.rejection_rate = rejection_rate
        self.expiry_rate = expiry_rate
        self.initial_funds = Decimal(initial_funds)
        self.seed = seed

        if seed is not None:
            random.seed(seed)

        self.registry = AccessRegistry()
        self.wallets = InMemoryWallets()
        self.clock = ManualClock()
        self.exchange: Exchange = build_exchange(
            config=config,
            access_gate=self.registry,
            payments=self.wallets,
            clock=self.clock,
        )
        self.participants: list[Participant] = []
        self.approver: Participant | None = None
        self.stats: dict[str, int] = {
            "registered": 0,
            "rejected": 0,
            "approved": 0,
            "listings": 0,
            "offers": 0,
            "sales": 0,
            "expired": 0,
            "unfunded": 0,
        }

        self._participant_gen = ParticipantGenerator(seed=seed)
        self._property_gen = PropertyGenerator(seed=seed)

    @classmethod
    def from_config(cls, sim: SimulationConfig, config: ExchangeConfig | None = None) -> "MarketplaceScenario":
        seed = config.seed if config is not None else None
        return cls(
            num_participants=sim.num_participants,
            num_properties=sim.num_properties,
            trading_rounds=sim.trading_rounds,
            rejection_rate=sim.rejection_rate,
            expiry_rate=sim.expiry_rate,
            initial_funds=sim.initial_funds,
            seed=seed,
            config=config,
        )

    def generate(self) -> Exchange:
        """Run the whole scenario.

        Returns
        -------
        Exchange
            The populated exchange.
        """
        logger.info(
            "Starting marketplace scenario: %d participants, %d properties, %d rounds",
            self.num_participants,
            self.num_properties,
            self.trading_rounds,
        )

        self._onboard_participants()
        for _ in range(self.num_properties):
            self._register_property()
        for _ in range(self.trading_rounds):
            self._trading_round()
            self.exchange.ledger.check_invariants()

        logger.info("Marketplace scenario complete: %s", self.stats)
        return self.exchange

    def _onboard_participants(self) -> None:
        self.approver = self._participant_gen.generate()
        self.registry.add_approver(self.approver.identity)

        for participant in self._participant_gen.generate_many(self.num_participants):
            self.registry.approve(participant.identity)
            self.wallets.deposit(participant.identity, self.initial_funds)
            self.exchange.ledger.set_approval_for_all(
                participant.identity, self.exchange.market.fee_account, True
            )
            self.participants.append(participant)

    def _register_property(self) -> None:
        ledger = self.exchange.ledger
        owner_count = random.randint(1, min(3, len(self.participants)))
        owners = [p.identity for p in random.sample(self.participants, owner_count)]
        registration = self._property_gen.generate(
            registrant=owners[0],
            owners=owners,
            total_shares=ledger.total_shares,
        )

        property_id = ledger.register_property(
            registration.registrant,
            registration.postal_code,
            registration.location,
            registration.owners,
            registration.shares,
        )
        self.stats["registered"] += 1

        if random.random() < self.rejection_rate:
            ledger.reject_property(self.approver.identity, property_id, "incomplete documents")
            self.stats["rejected"] += 1
            property_id = ledger.register_property(
                registration.registrant,
                registration.postal_code,
                registration.location,
                registration.owners,
                registration.shares,
            )
            self.stats["registered"] += 1

        ledger.approve_property(self.approver.identity, property_id)
        self.stats["approved"] += 1

    def _trading_round(self) -> None:
        ledger = self.exchange.ledger
        market = self.exchange.market

        listed = {(listing.property_id, listing.seller) for listing in market.view_listings()}
        candidates = [
            (pid, seller)
            for pid in ledger.properties
            if ledger.is_property_id_valid(pid)
            for seller in ledger.view_property(pid).holders
            if (pid, seller) not in listed
        ]
        if not candidates:
            return

        property_id, seller = random.choice(candidates)
        quantity = random.randint(1, ledger.balance_of(seller, property_id))
        ask = Decimal(random.randint(5, 200))
        market.list_property(seller, property_id, ask, quantity)
        self.stats["listings"] += 1

        buyers = [p.identity for p in self.participants if p.identity != seller]
        bidders = random.sample(buyers, random.randint(1, min(3, len(buyers))))
        for buyer in bidders:
            bid = (ask * Decimal(str(random.uniform(0.8, 1.2)))).quantize(CENT)
            market.send_offer(buyer, property_id, seller, max(bid, market.flat_fee + CENT))
            self.stats["offers"] += 1

        buyer = random.choice(bidders)
        listing = market.accept_offer(seller, property_id, buyer)
        self.clock.advance(timedelta(hours=random.randint(1, 48)))

        if random.random() < self.expiry_rate:
            self.clock.advance(market.deal_window)
            try:
                market.execute_property_sale(buyer, property_id, seller, listing.accepted_price)
            except ExpiredError:
                self.stats["expired"] += 1
            market.unlist_property(seller, property_id)
            return

        try:
            market.execute_property_sale(buyer, property_id, seller, listing.accepted_price)
            self.stats["sales"] += 1
        except InsufficientFundsError:
            self.stats["unfunded"] += 1
            self.clock.advance(market.deal_window + timedelta(seconds=1))
            market.unlist_property(seller, property_id)

    def export(self, sinks: list[Any]) -> int:
        """Publish the event log and ledger snapshots to sinks.

        Parameters
        ----------
        sinks : list[Any]
            Sink instances (ConsoleSink, JsonFileSink, KafkaSink).

        Returns
        -------
        int
            Number of events published.
        """
        emitter = self.exchange.emitter
        emitter.sinks = list(sinks)
        published = emitter.flush()

        ledger = self.exchange.ledger
        snapshot = [ledger.view_property(pid) for pid in ledger.properties]
        for sink in sinks:
            if hasattr(sink, "write_snapshot"):
                sink.write_snapshot("properties", snapshot)
                sink.write_snapshot("participants", self.participants)

        logger.info("Exported %d events to %d sinks", published, len(sinks))
        return published

    def get_holder_view(self, identity: str) -> dict[str, Any]:
        """Holdings, wallet balance and open listings of one participant."""
        ledger = self.exchange.ledger
        market = self.exchange.market
        holdings = {
            pid: ledger.balance_of(identity, pid) for pid in ledger.view_user_properties(identity)
        }
        return {
            "identity": identity,
            "holdings": holdings,
            "wallet": self.wallets.balance_of(identity),
            "listings": [
                listing
                for listing in market.view_listings()
                if listing.seller == identity and listing.state == ListingState.ACTIVE
            ],
        }
