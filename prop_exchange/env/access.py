"""Access gate: which identities may hold shares or approve properties."""

import logging
from typing import Iterable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class AccessGate(Protocol):
    """Capability check provided by the identity/KYC layer."""

    def is_approved_holder(self, identity: str) -> bool:
        """Return True if ``identity`` may hold and trade shares."""
        ...

    def is_approver(self, identity: str) -> bool:
        """Return True if ``identity`` may approve or reject properties."""
        ...


class AccessRegistry:
    """In-memory access gate.

    Stands in for the onboarding and admin workflow: identities are
    approved or revoked directly, with no pending-user queue.
    """

    def __init__(
        self,
        holders: Iterable[str] = (),
        approvers: Iterable[str] = (),
    ) -> None:
        self._holders: set[str] = set(holders)
        self._approvers: set[str] = set(approvers)

    def approve(self, identity: str) -> None:
        """Allow ``identity`` to hold shares."""
        self._holders.add(identity)
        logger.debug("Approved holder %s", identity)

    def revoke(self, identity: str) -> None:
        """Stop ``identity`` from being named as an owner in new registrations."""
        self._holders.discard(identity)
        logger.debug("Revoked holder %s", identity)

    def add_approver(self, identity: str) -> None:
        self._approvers.add(identity)
        logger.debug("Added approver %s", identity)

    def remove_approver(self, identity: str) -> None:
        self._approvers.discard(identity)

    def is_approved_holder(self, identity: str) -> bool:
        return identity in self._holders

    def is_approver(self, identity: str) -> bool:
        return identity in self._approvers

    @property
    def holders(self) -> frozenset[str]:
        return frozenset(self._holders)
