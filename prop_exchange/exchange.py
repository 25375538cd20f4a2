"""Wiring of ledger, marketplace and environment collaborators."""

import logging
from dataclasses import dataclass, field

from prop_exchange.config import ExchangeConfig
from prop_exchange.env.access import AccessGate, AccessRegistry
from prop_exchange.env.clock import Clock, SystemClock
from prop_exchange.env.events import EventEmitter, EventSink
from prop_exchange.env.payments import InMemoryWallets, PaymentRail
from prop_exchange.market.escrow import EscrowMarketplace
from prop_exchange.store.ledger import PropertyLedger

logger = logging.getLogger(__name__)


@dataclass
class Exchange:
    """A ledger and its marketplace sharing one clock and event log."""

    ledger: PropertyLedger
    market: EscrowMarketplace
    emitter: EventEmitter
    access_gate: AccessGate
    payments: PaymentRail
    clock: Clock
    config: ExchangeConfig = field(default_factory=ExchangeConfig)


def build_exchange(
    config: ExchangeConfig | None = None,
    access_gate: AccessGate | None = None,
    payments: PaymentRail | None = None,
    clock: Clock | None = None,
    sinks: list[EventSink] | None = None,
) -> Exchange:
    """Construct an exchange from configuration and injected collaborators.

    Missing collaborators default to in-memory implementations and the
    system clock.
    """
    config = (config or ExchangeConfig()).validate()
    access_gate = access_gate if access_gate is not None else AccessRegistry()
    payments = payments if payments is not None else InMemoryWallets()
    clock = clock or SystemClock()

    emitter = EventEmitter(
        clock=clock,
        sinks=sinks,
        topic_prefix=config.output.topic_prefix,
    )
    ledger = PropertyLedger(
        access_gate=access_gate,
        emitter=emitter,
        total_shares=config.ledger.total_shares,
    )
    market = EscrowMarketplace(
        ledger=ledger,
        payments=payments,
        clock=clock,
        emitter=emitter,
        flat_fee=config.market.flat_fee,
        deal_window=config.market.deal_window,
        fee_account=config.market.fee_account,
    )
    logger.info(
        "Exchange ready: %d shares per property, fee %s, deal window %s",
        config.ledger.total_shares,
        config.market.flat_fee,
        config.market.deal_window,
    )
    return Exchange(
        ledger=ledger,
        market=market,
        emitter=emitter,
        access_gate=access_gate,
        payments=payments,
        clock=clock,
        config=config,
    )
