"""Tests for environment collaborators: clock, wallets, access gate, events."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from prop_exchange.env.access import AccessGate, AccessRegistry
from prop_exchange.env.clock import Clock, ManualClock, SystemClock
from prop_exchange.env.events import EventEmitter
from prop_exchange.env.payments import InMemoryWallets, PaymentRail, to_money
from prop_exchange.exceptions import InsufficientFundsError, SinkError, ValidationError


class TestClocks:
    """Tests for SystemClock and ManualClock."""

    def test_system_clock_is_utc(self) -> None:
        now = SystemClock().now()

        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_clocks_satisfy_protocol(self) -> None:
        assert isinstance(SystemClock(), Clock)
        assert isinstance(ManualClock(), Clock)

    def test_manual_clock_default_start(self) -> None:
        assert ManualClock().now() == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_advance(self) -> None:
        clock = ManualClock()
        start = clock.now()

        clock.advance(timedelta(hours=2))
        clock.advance(30)

        assert clock.now() == start + timedelta(hours=2, seconds=30)

    def test_cannot_move_backwards(self) -> None:
        clock = ManualClock()

        with pytest.raises(ValueError):
            clock.advance(-1)
        with pytest.raises(ValueError):
            clock.set(clock.now() - timedelta(seconds=1))

    def test_set(self) -> None:
        clock = ManualClock()
        moment = datetime(2025, 6, 1, tzinfo=timezone.utc)

        assert clock.set(moment) == moment
        assert clock.now() == moment


class TestInMemoryWallets:
    """Tests for InMemoryWallets."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryWallets(), PaymentRail)

    def test_deposit_and_balance(self) -> None:
        wallets = InMemoryWallets()

        assert wallets.balance_of("0xa") == Decimal("0")
        assert wallets.deposit("0xa", Decimal("5")) == Decimal("5")
        assert wallets.deposit("0xa", Decimal("2.5")) == Decimal("7.5")

    def test_transfer(self) -> None:
        wallets = InMemoryWallets()
        wallets.deposit("0xa", Decimal("10"))

        wallets.transfer("0xa", "0xb", Decimal("3.25"))

        assert wallets.balance_of("0xa") == Decimal("6.75")
        assert wallets.balance_of("0xb") == Decimal("3.25")
        assert wallets.total() == Decimal("10")

    def test_transfer_insufficient(self) -> None:
        wallets = InMemoryWallets()
        wallets.deposit("0xa", Decimal("1"))

        with pytest.raises(InsufficientFundsError):
            wallets.transfer("0xa", "0xb", Decimal("1.01"))

        assert wallets.balance_of("0xa") == Decimal("1")
        assert wallets.balance_of("0xb") == Decimal("0")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
    def test_non_positive_amounts(self, amount: Decimal) -> None:
        wallets = InMemoryWallets()
        wallets.deposit("0xa", Decimal("1"))

        with pytest.raises(ValidationError):
            wallets.deposit("0xa", amount)
        with pytest.raises(ValidationError):
            wallets.transfer("0xa", "0xb", amount)


class TestToMoney:
    """Tests for monetary amount conversion."""

    @pytest.mark.parametrize(
        "value,expected",
        [("10.50", Decimal("10.50")), (3, Decimal("3")), (Decimal("0"), Decimal("0")), ("-2", Decimal("-2"))],
    )
    def test_converts(self, value, expected: Decimal) -> None:
        assert to_money(value) == expected

    @pytest.mark.parametrize(
        "value", ["abc", "", None, [1], float("nan"), float("inf"), Decimal("NaN"), Decimal("-Infinity")]
    )
    def test_rejects(self, value) -> None:
        with pytest.raises(ValidationError):
            to_money(value)

    def test_wallets_reject_malformed_amounts(self) -> None:
        wallets = InMemoryWallets()

        with pytest.raises(ValidationError):
            wallets.deposit("0xa", "lots")
        assert wallets.total() == Decimal("0")


class TestAccessRegistry:
    """Tests for AccessRegistry."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(AccessRegistry(), AccessGate)

    def test_approve_and_revoke(self) -> None:
        registry = AccessRegistry()

        registry.approve("0xa")
        assert registry.is_approved_holder("0xa")
        assert registry.holders == frozenset({"0xa"})

        registry.revoke("0xa")
        assert not registry.is_approved_holder("0xa")

    def test_approvers_are_separate(self) -> None:
        registry = AccessRegistry(holders=["0xa"], approvers=["0xadmin"])

        assert registry.is_approver("0xadmin")
        assert not registry.is_approver("0xa")
        assert not registry.is_approved_holder("0xadmin")

        registry.remove_approver("0xadmin")
        assert not registry.is_approver("0xadmin")


class TestEventEmitter:
    """Tests for EventEmitter."""

    def test_emit_records_event(self) -> None:
        clock = ManualClock()
        emitter = EventEmitter(clock=clock)

        event = emitter.emit("listing.created", "0:0xa", price=Decimal("10"))

        assert event.event_time == clock.now()
        assert event.source == "prop_exchange"
        assert event.entity == "listing"
        assert event.data == {"price": Decimal("10")}
        assert emitter.events == [event]
        assert emitter.last is event

    def test_event_ids_unique(self) -> None:
        emitter = EventEmitter()
        ids = {emitter.emit("offer.sent", "0:0xa").event_id for _ in range(20)}

        assert len(ids) == 20

    def test_topic_for(self) -> None:
        emitter = EventEmitter(topic_prefix="prod.exchange")
        event = emitter.emit("shares.transferred", "3")

        assert emitter.topic_for(event) == "prod.exchange.shares"

    def test_of_type(self) -> None:
        emitter = EventEmitter()
        emitter.emit("offer.sent", "0:0xa")
        emitter.emit("offer.retracted", "0:0xa")
        emitter.emit("offer.sent", "0:0xb")

        assert [e.subject for e in emitter.of_type("offer.sent")] == ["0:0xa", "0:0xb"]

    def test_flush_groups_by_topic(self) -> None:
        sink = MagicMock()
        emitter = EventEmitter(sinks=[sink])
        emitter.emit("listing.created", "0:0xa")
        emitter.emit("offer.sent", "0:0xa")
        emitter.emit("listing.cancelled", "0:0xa")

        assert emitter.flush() == 3

        batches = {call.args[0]: call.args[1] for call in sink.write_batch.call_args_list}
        assert set(batches) == {"dev.exchange.listing", "dev.exchange.offer"}
        assert [e.event_type for e in batches["dev.exchange.listing"]] == [
            "listing.created",
            "listing.cancelled",
        ]
        assert emitter.pending == []

    def test_flush_only_publishes_new_events(self) -> None:
        sink = MagicMock()
        emitter = EventEmitter(sinks=[sink])
        emitter.emit("offer.sent", "0:0xa")
        emitter.flush()
        sink.reset_mock()

        assert emitter.flush() == 0
        sink.write_batch.assert_not_called()

        emitter.emit("offer.sent", "0:0xb")
        assert emitter.flush() == 1
        sink.write_batch.assert_called_once()

    def test_flush_failure_keeps_events_pending(self) -> None:
        sink = MagicMock()
        sink.write_batch.side_effect = OSError("disk full")
        emitter = EventEmitter(sinks=[sink])
        emitter.emit("offer.sent", "0:0xa")

        with pytest.raises(SinkError, match="disk full"):
            emitter.flush()

        assert len(emitter.pending) == 1
