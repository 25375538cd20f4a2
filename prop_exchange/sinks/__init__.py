"""Output sinks for publishing exchange events."""

from prop_exchange.sinks.console import ConsoleSink
from prop_exchange.sinks.json_file import JsonFileSink
from prop_exchange.sinks.kafka import KafkaSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink"]
