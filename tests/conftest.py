"""Pytest configuration and fixtures."""

from decimal import Decimal

import pytest

from prop_exchange.env.access import AccessRegistry
from prop_exchange.env.clock import ManualClock
from prop_exchange.env.payments import InMemoryWallets
from prop_exchange.exchange import Exchange, build_exchange
from prop_exchange.market.escrow import EscrowMarketplace
from prop_exchange.store.ledger import PropertyLedger

ADMIN = "0xadmin"
USER1 = "0xuser1"
USER2 = "0xuser2"
USER3 = "0xuser3"
OUTSIDER = "0xnot-approved"


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def registry() -> AccessRegistry:
    """Access gate with one approver and three approved users."""
    return AccessRegistry(holders=[USER1, USER2, USER3], approvers=[ADMIN])


@pytest.fixture
def wallets() -> InMemoryWallets:
    """Wallets with 100 units for each user."""
    wallets = InMemoryWallets()
    for user in (USER1, USER2, USER3):
        wallets.deposit(user, Decimal("100"))
    return wallets


@pytest.fixture
def exchange(registry: AccessRegistry, wallets: InMemoryWallets, clock: ManualClock) -> Exchange:
    return build_exchange(access_gate=registry, payments=wallets, clock=clock)


@pytest.fixture
def ledger(exchange: Exchange) -> PropertyLedger:
    return exchange.ledger


@pytest.fixture
def market(exchange: Exchange) -> EscrowMarketplace:
    return exchange.market


@pytest.fixture
def property_id(ledger: PropertyLedger) -> int:
    """An approved property fully owned by USER1."""
    pid = ledger.register_property(USER1, "573821", "123 Main Street, Los Angeles, CA", [USER1], [1000])
    ledger.approve_property(ADMIN, pid)
    return pid
