"""Kafka sink for streaming exchange events to Kafka topics."""

import json
import logging
from dataclasses import dataclass
from typing import Any

from confluent_kafka import Producer
from confluent_kafka.serialization import MessageField, SerializationContext

from prop_exchange.models.base import Event
from prop_exchange.sinks.serialization import serialize_value, to_dict

logger = logging.getLogger(__name__)

SCHEMA_NAMESPACE = "com.propexchange.events"
DEFAULT_SCHEMA_REGISTRY_URL = "http://localhost:8081"

# One envelope schema for every topic; the payload travels as a JSON string
EVENT_AVRO_SCHEMA = {
    "type": "record",
    "name": "ExchangeEvent",
    "namespace": SCHEMA_NAMESPACE,
    "fields": [
        {"name": "event_id", "type": "string"},
        {"name": "event_type", "type": "string"},
        {"name": "event_time", "type": {"type": "long", "logicalType": "timestamp-millis"}},
        {"name": "source", "type": "string"},
        {"name": "subject", "type": "string"},
        {"name": "data", "type": "string"},
        {"name": "metadata", "type": {"type": "map", "values": "string"}, "default": {}},
    ],
}


@dataclass
class ProducerConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str
    schema_registry_url: str | None = None
    acks: str = "all"  # "0", "1", "all"
    batch_size: int = 16384  # bytes
    linger_ms: int = 5  # ms to wait for batching
    compression: str = "snappy"  # none, gzip, snappy, lz4
    retries: int = 3


# Configuration presets
RELIABLE = ProducerConfig(
    bootstrap_servers="localhost:9092",
    schema_registry_url=DEFAULT_SCHEMA_REGISTRY_URL,
    acks="all",
    batch_size=16384,
    linger_ms=5,
)

EVENT_BY_EVENT = ProducerConfig(
    bootstrap_servers="localhost:9092",
    schema_registry_url=DEFAULT_SCHEMA_REGISTRY_URL,
    acks="all",
    batch_size=1,
    linger_ms=0,
)


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0


class KafkaSink:
    """Publish events to Kafka, keyed by event subject.

    Events on one listing or property share a key and therefore a
    partition, which keeps their order for consumers.
    """

    def __init__(self, config: ProducerConfig | str) -> None:
        """Initialize Kafka sink.

        Parameters
        ----------
        config : ProducerConfig | str
            Producer configuration or bootstrap servers string.
        """
        if isinstance(config, str):
            config = ProducerConfig(bootstrap_servers=config)

        self.config = config
        self.producer = self._create_producer()
        self.stats = ProducerStats()
        self._avro_serializer: Any = None

        if config.schema_registry_url:
            self._init_avro_serializer()

    def _create_producer(self) -> Producer:
        """Create Kafka producer with configuration."""
        return Producer(
            {
                "bootstrap.servers": self.config.bootstrap_servers,
                "acks": self.config.acks,
                "retries": self.config.retries,
                "linger.ms": self.config.linger_ms,
                "batch.size": self.config.batch_size,
                "compression.type": self.config.compression,
            }
        )

    def _init_avro_serializer(self) -> None:
        """Initialize the Avro serializer for the event envelope."""
        try:
            from confluent_kafka.schema_registry import SchemaRegistryClient
            from confluent_kafka.schema_registry.avro import AvroSerializer
        except ImportError:
            logger.warning(
                "confluent-kafka[avro] not installed. Using JSON serialization. "
                "Install with: pip install 'confluent-kafka[avro]'"
            )
            return

        schema_registry_client = SchemaRegistryClient({"url": self.config.schema_registry_url})
        self._avro_serializer = AvroSerializer(
            schema_registry_client,
            json.dumps(EVENT_AVRO_SCHEMA),
            to_dict=self._to_avro_dict,
        )
        logger.info("Avro serializer initialized for %s.ExchangeEvent", SCHEMA_NAMESPACE)

    def _to_avro_dict(self, event: Event, ctx: SerializationContext) -> dict:
        """Convert an event to an Avro-compatible dict."""
        return {
            "event_id": event.event_id,
            "event_type": event.event_type,
            "event_time": int(event.event_time.timestamp() * 1000),
            "source": event.source,
            "subject": event.subject,
            "data": json.dumps(serialize_value(event.data), ensure_ascii=False, default=str),
            "metadata": {k: str(v) for k, v in event.metadata.items()},
        }

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            logger.error("Delivery failed: %s", err)
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        """Send a single record to a Kafka topic."""
        if self._avro_serializer is not None and isinstance(record, Event):
            value = self._avro_serializer(record, SerializationContext(topic, MessageField.VALUE))
        else:
            value = json.dumps(to_dict(record), ensure_ascii=False, default=str).encode("utf-8")

        if key is None and isinstance(record, Event):
            key = record.subject

        self.producer.produce(
            topic=topic,
            key=key.encode("utf-8") if key else None,
            value=value,
            callback=self._delivery_callback,
        )
        self.stats.sent += 1
        self.producer.poll(0)

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Write a batch of records to a Kafka topic."""
        logger.info("Writing batch to %s: %d records", topic, len(records))

        for record in records:
            self.send(topic, record)

        self.flush()
        logger.info(
            "Batch complete: sent=%d, delivered=%d, failed=%d",
            self.stats.sent, self.stats.delivered, self.stats.failed,
        )

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages."""
        self.producer.flush(timeout)

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka sink closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
