"""Fractional property ownership ledger and escrow marketplace."""

from prop_exchange.exchange import Exchange, build_exchange
from prop_exchange.market.escrow import EscrowMarketplace
from prop_exchange.store.ledger import PropertyLedger

__version__ = "0.1.0"

__all__ = ["EscrowMarketplace", "Exchange", "PropertyLedger", "build_exchange", "__version__"]
