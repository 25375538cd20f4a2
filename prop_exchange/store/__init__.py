"""In-memory ledger store for tokenized properties."""

from prop_exchange.store.ledger import PropertyLedger

__all__ = ["PropertyLedger"]
