"""Synthetic participant and property generators."""

from prop_exchange.generators.participant import ParticipantGenerator
from prop_exchange.generators.property import PropertyGenerator, split_shares

__all__ = ["ParticipantGenerator", "PropertyGenerator", "split_shares"]
