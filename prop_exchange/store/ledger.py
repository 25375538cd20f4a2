"""Fractional-ownership ledger with owner-set and holder index maintenance."""

import logging
from dataclasses import dataclass, field

from prop_exchange.config import DEFAULT_TOTAL_SHARES
from prop_exchange.env.access import AccessGate
from prop_exchange.env.events import EventEmitter
from prop_exchange.exceptions import (
    InvariantError,
    NotAuthorizedError,
    NotFoundError,
    NotOwnerError,
    ShareArithmeticError,
    ValidationError,
)
from prop_exchange.models.enums import PropertyStatus
from prop_exchange.models.property import PropertyRecord, PropertyView
from prop_exchange.structures import IndexedSet

logger = logging.getLogger(__name__)


@dataclass
class PropertyLedger:
    """In-memory ledger of tokenized properties and their share balances.

    Every approved property is split into exactly ``total_shares`` shares.
    A holder is in a property's ``holders`` set and in the reverse
    ``_holder_index`` exactly when its balance is positive. Each mutating
    method validates everything before touching state, so a raised
    exception leaves the ledger unchanged.
    """

    access_gate: AccessGate
    emitter: EventEmitter = field(default_factory=EventEmitter)
    total_shares: int = DEFAULT_TOTAL_SHARES

    # Primary entities
    properties: dict[int, PropertyRecord] = field(default_factory=dict)

    # Pending ids in registration order; dict keys give O(1) removal
    _pending: dict[int, None] = field(default_factory=dict)
    _next_id: int = 0

    # Relationship indexes
    _holder_index: dict[str, IndexedSet[int]] = field(default_factory=dict)
    _operators: dict[str, set[str]] = field(default_factory=dict)

    # Registration workflow
    def register_property(
        self,
        registrant: str,
        postal_code: str,
        location: str,
        owners: list[str],
        shares: list[int],
    ) -> int:
        """Submit a property for approval.

        Parameters
        ----------
        registrant : str
            Identity submitting the property.
        postal_code : str
            Postal code of the property.
        location : str
            Free-text location description.
        owners : list[str]
            Initial holders; each must be an approved identity.
        shares : list[int]
            Shares per owner, same length as ``owners``, summing to
            ``total_shares``.

        Returns
        -------
        int
            The new property id.
        """
        if len(owners) != len(shares):
            raise ValidationError("Owners and shares length do not match")
        if not all(self.access_gate.is_approved_holder(owner) for owner in owners):
            raise ValidationError("Some users are not approved")
        for share in shares:
            if isinstance(share, bool) or not isinstance(share, int) or share <= 0:
                raise ValidationError(f"Shares must be positive integers, got {share!r}")
        if sum(shares) != self.total_shares:
            raise ValidationError(f"Shares sum is not {self.total_shares}")

        property_id = self._next_id
        self._next_id += 1
        self.properties[property_id] = PropertyRecord(
            property_id=property_id,
            registrant=registrant,
            postal_code=postal_code,
            location=location,
            staged_owners=list(owners),
            staged_shares=list(shares),
            registered_at=self.emitter.clock.now(),
        )
        self._pending[property_id] = None

        logger.info(
            "Property %d registered by %s (%d owners)",
            property_id, registrant, len(owners),
            extra={"property_id": property_id, "holder": registrant},
        )
        self.emitter.emit(
            "property.registered",
            str(property_id),
            registrant=registrant,
            property_id=property_id,
        )
        return property_id

    def approve_property(self, approver: str, property_id: int) -> None:
        """Approve a pending property and credit its staged owners."""
        record = self._pending_record(approver, property_id)

        del self._pending[property_id]
        for owner, share in zip(record.staged_owners, record.staged_shares):
            self._credit(record, owner, share)
        record.staged_owners = []
        record.staged_shares = []
        record.status = PropertyStatus.APPROVED
        record.decided_at = self.emitter.clock.now()

        logger.info(
            "Property %d approved by %s",
            property_id, approver,
            extra={"property_id": property_id, "operator": approver},
        )
        self.emitter.emit(
            "property.approved",
            str(property_id),
            approver=approver,
            property_id=property_id,
        )

    def reject_property(self, approver: str, property_id: int, reason: str) -> None:
        """Reject a pending property; its id stays permanently invalid."""
        record = self._pending_record(approver, property_id)

        del self._pending[property_id]
        record.postal_code = ""
        record.location = ""
        record.staged_owners = []
        record.staged_shares = []
        record.status = PropertyStatus.REJECTED
        record.decided_at = self.emitter.clock.now()

        logger.info(
            "Property %d rejected by %s: %s",
            property_id, approver, reason,
            extra={"property_id": property_id, "operator": approver},
        )
        self.emitter.emit(
            "property.rejected",
            str(property_id),
            approver=approver,
            property_id=property_id,
            reason=reason,
        )

    def _pending_record(self, approver: str, property_id: int) -> PropertyRecord:
        if not self.access_gate.is_approver(approver):
            raise NotAuthorizedError(f"{approver} is not allowed to approve or reject properties")
        if not self._pending:
            raise NotFoundError("No pending properties to approve or reject")
        if property_id not in self._pending:
            raise NotFoundError("Property ID not found in pending list, double check")
        return self.properties[property_id]

    # Share accounting
    def transfer_shares(self, sender: str, recipient: str, property_id: int, amount: int) -> None:
        """Move ``amount`` shares of ``property_id`` from ``sender`` to ``recipient``.

        Raises
        ------
        NotFoundError
            If the property is not approved.
        ValidationError
            If ``amount`` is not a positive integer.
        NotOwnerError
            If ``sender`` holds no shares of the property.
        ShareArithmeticError
            If ``amount`` exceeds the sender's balance.
        """
        record = self._approved(property_id)
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(f"Transfer amount must be a positive integer, got {amount!r}")
        balance = record.balances.get(sender, 0)
        if balance == 0:
            raise NotOwnerError("from is not an owner")
        if amount > balance:
            raise ShareArithmeticError(
                f"{sender} holds {balance} shares of property {property_id}, cannot transfer {amount}"
            )

        if sender != recipient:
            self._debit(record, sender, amount)
            self._credit(record, recipient, amount)

        logger.debug(
            "Transferred %d shares of property %d from %s to %s",
            amount, property_id, sender, recipient,
        )
        self.emitter.emit(
            "shares.transferred",
            str(property_id),
            sender=sender,
            recipient=recipient,
            property_id=property_id,
            amount=amount,
        )

    def safe_transfer_from(
        self,
        operator: str,
        sender: str,
        recipient: str,
        property_id: int,
        amount: int,
    ) -> None:
        """Caller-checked transfer: ``operator`` must be the sender or approved by it."""
        if operator != sender and not self.is_approved_for_all(sender, operator):
            raise NotAuthorizedError(f"{operator} is not approved to transfer for {sender}")
        self.transfer_shares(sender, recipient, property_id, amount)

    def set_approval_for_all(self, holder: str, operator: str, approved: bool) -> None:
        """Grant or revoke ``operator``'s right to move all of ``holder``'s shares."""
        if holder == operator:
            raise ValidationError("Setting approval status for self")
        operators = self._operators.setdefault(holder, set())
        if approved:
            operators.add(operator)
        else:
            operators.discard(operator)
        self.emitter.emit(
            "operator.approval",
            holder,
            holder=holder,
            operator=operator,
            approved=approved,
        )

    def is_approved_for_all(self, holder: str, operator: str) -> bool:
        return operator in self._operators.get(holder, ())

    def _credit(self, record: PropertyRecord, holder: str, amount: int) -> None:
        previous = record.balances.get(holder, 0)
        record.balances[holder] = previous + amount
        if previous == 0:
            record.holders.add(holder)
            self._holder_index.setdefault(holder, IndexedSet()).add(record.property_id)

    def _debit(self, record: PropertyRecord, holder: str, amount: int) -> None:
        remaining = record.balances[holder] - amount
        if remaining:
            record.balances[holder] = remaining
            return
        del record.balances[holder]
        record.holders.discard(holder)
        held = self._holder_index[holder]
        held.discard(record.property_id)
        if not held:
            del self._holder_index[holder]

    def _approved(self, property_id: int) -> PropertyRecord:
        record = self.properties.get(property_id)
        if record is None or record.status != PropertyStatus.APPROVED:
            raise NotFoundError(f"Property {property_id} is not an approved property")
        return record

    # Query methods
    def balance_of(self, holder: str, property_id: int) -> int:
        """Shares of ``property_id`` held by ``holder`` (0 if none)."""
        record = self.properties.get(property_id)
        if record is None:
            return 0
        return record.balances.get(holder, 0)

    def is_property_id_valid(self, property_id: int) -> bool:
        """True only for approved properties."""
        record = self.properties.get(property_id)
        return record is not None and record.status == PropertyStatus.APPROVED

    def view_property(self, property_id: int) -> PropertyView:
        """Descriptive fields plus parallel holder/share lists."""
        record = self.properties.get(property_id)
        if record is None:
            raise NotFoundError(f"Property {property_id} not found")
        holders = list(record.holders)
        return PropertyView(
            property_id=record.property_id,
            postal_code=record.postal_code,
            location=record.location,
            status=record.status,
            holders=holders,
            shares=[record.balances[h] for h in holders],
        )

    def view_pending_properties(self) -> list[int]:
        """Pending property ids in registration order."""
        return list(self._pending)

    def view_user_properties(self, holder: str) -> list[int]:
        """Ids of properties in which ``holder`` has a positive balance."""
        return sorted(self._holder_index.get(holder, ()))

    def check_invariants(self) -> None:
        """Verify share sums, holder sets and the holder index.

        Raises
        ------
        InvariantError
            On the first inconsistency found.
        """
        for record in self.properties.values():
            pid = record.property_id
            if record.status == PropertyStatus.APPROVED:
                total = sum(record.balances.values())
                if total != self.total_shares:
                    raise InvariantError(f"Property {pid} shares sum to {total}, not {self.total_shares}")
            elif record.balances or record.holders:
                raise InvariantError(f"Property {pid} is {record.status.value} but has holders")
            if set(record.holders) != set(record.balances):
                raise InvariantError(f"Property {pid} holder set does not match its balances")
            for holder, balance in record.balances.items():
                if balance <= 0:
                    raise InvariantError(f"{holder} has balance {balance} in property {pid}")
                if pid not in self._holder_index.get(holder, ()):
                    raise InvariantError(f"Holder index misses property {pid} for {holder}")
        for holder, ids in self._holder_index.items():
            if not ids:
                raise InvariantError(f"Empty holder index entry for {holder}")
            for pid in ids:
                record = self.properties.get(pid)
                if record is None or record.balances.get(holder, 0) <= 0:
                    raise InvariantError(f"Holder index lists property {pid} for {holder} without a balance")

    def summary(self) -> dict[str, int]:
        """Return summary counts of ledger entities."""
        counts = {status.value.lower(): 0 for status in PropertyStatus}
        for record in self.properties.values():
            counts[record.status.value.lower()] += 1
        return {
            "properties": len(self.properties),
            **counts,
            "holders": len(self._holder_index),
        }
