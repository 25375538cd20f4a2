"""Value transfer between identities."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol, runtime_checkable

from prop_exchange.exceptions import InsufficientFundsError, ValidationError

logger = logging.getLogger(__name__)


@runtime_checkable
class PaymentRail(Protocol):
    """Atomic value-transfer primitive provided by the environment."""

    def transfer(self, payer: str, payee: str, amount: Decimal) -> None:
        """Move ``amount`` from ``payer`` to ``payee`` or raise without effect."""
        ...

    def balance_of(self, identity: str) -> Decimal:
        ...


class InMemoryWallets:
    """Decimal wallet balances keyed by identity."""

    def __init__(self) -> None:
        self._balances: dict[str, Decimal] = {}

    def deposit(self, identity: str, amount: Decimal) -> Decimal:
        """Credit ``amount`` to ``identity`` and return the new balance."""
        amount = _positive(amount)
        self._balances[identity] = self._balances.get(identity, Decimal("0")) + amount
        return self._balances[identity]

    def balance_of(self, identity: str) -> Decimal:
        return self._balances.get(identity, Decimal("0"))

    def transfer(self, payer: str, payee: str, amount: Decimal) -> None:
        amount = _positive(amount)
        available = self.balance_of(payer)
        if available < amount:
            raise InsufficientFundsError(
                f"{payer} has {available}, needs {amount}"
            )
        self._balances[payer] = available - amount
        self._balances[payee] = self.balance_of(payee) + amount
        logger.debug("Transferred %s from %s to %s", amount, payer, payee)

    def total(self) -> Decimal:
        """Sum of all balances; unchanged by transfers."""
        return sum(self._balances.values(), Decimal("0"))


def to_money(value: Any) -> Decimal:
    """Convert ``value`` to a finite Decimal or raise ValidationError."""
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValidationError(f"Not a monetary amount: {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Amount must be finite, got {value!r}")
    return amount


def _positive(amount: Any) -> Decimal:
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError(f"Amount must be positive, got {amount}")
    return amount
