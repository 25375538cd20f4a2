"""Collaborators supplied by the execution environment."""

from prop_exchange.env.access import AccessGate, AccessRegistry
from prop_exchange.env.clock import Clock, ManualClock, SystemClock
from prop_exchange.env.events import EventEmitter, EventSink
from prop_exchange.env.payments import InMemoryWallets, PaymentRail, to_money

__all__ = [
    "AccessGate",
    "AccessRegistry",
    "Clock",
    "EventEmitter",
    "EventSink",
    "InMemoryWallets",
    "ManualClock",
    "PaymentRail",
    "SystemClock",
    "to_money",
]
