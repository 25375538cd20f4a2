"""Escrow marketplace for trading ledger shares."""

from prop_exchange.market.escrow import EscrowMarketplace

__all__ = ["EscrowMarketplace"]
