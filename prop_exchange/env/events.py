"""Event emission for ledger and marketplace state changes."""

import logging
import uuid
from typing import Any, Protocol

from prop_exchange.env.clock import Clock, SystemClock
from prop_exchange.exceptions import SinkError
from prop_exchange.logging import event_context
from prop_exchange.models.base import Event

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Anything that can receive a batch of records for a topic."""

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        ...


class EventEmitter:
    """Record state-change events and publish them to sinks.

    Emitting only appends to the in-memory log, so a state change can never
    fail because of an output problem. ``flush()`` hands the pending events
    to every sink, grouped per topic.

    Parameters
    ----------
    clock : Clock | None
        Time source for ``event_time`` (default: ``SystemClock``).
    sinks : list[EventSink] | None
        Publication targets.
    source : str
        Value placed in every event's ``source`` field.
    topic_prefix : str
        Topics are ``<topic_prefix>.<entity>``, e.g. ``dev.exchange.listing``.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        sinks: list[EventSink] | None = None,
        source: str = "prop_exchange",
        topic_prefix: str = "dev.exchange",
    ) -> None:
        self.clock = clock or SystemClock()
        self.sinks: list[EventSink] = list(sinks or [])
        self.source = source
        self.topic_prefix = topic_prefix
        self.events: list[Event] = []
        self._published = 0

    def emit(self, event_type: str, subject: str, **data: Any) -> Event:
        """Append an event to the log and return it."""
        event = Event(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            event_time=self.clock.now(),
            source=self.source,
            subject=subject,
            data=data,
        )
        self.events.append(event)
        logger.debug("Event %s", event_type, extra=event_context(event_type, subject, data))
        return event

    def topic_for(self, event: Event) -> str:
        return f"{self.topic_prefix}.{event.entity}"

    @property
    def pending(self) -> list[Event]:
        """Events not yet handed to the sinks."""
        return self.events[self._published:]

    def flush(self) -> int:
        """Publish pending events to all sinks.

        Returns
        -------
        int
            Number of events published.

        Raises
        ------
        SinkError
            If a sink fails; the events stay pending.
        """
        pending = self.pending
        if not pending:
            return 0

        by_topic: dict[str, list[Event]] = {}
        for event in pending:
            by_topic.setdefault(self.topic_for(event), []).append(event)

        for sink in self.sinks:
            for topic, events in by_topic.items():
                try:
                    sink.write_batch(topic, events)
                except Exception as e:
                    raise SinkError(f"{type(sink).__name__} failed on {topic}: {e}") from e

        self._published = len(self.events)
        logger.info("Published %d events to %d sinks", len(pending), len(self.sinks))
        return len(pending)

    def of_type(self, event_type: str) -> list[Event]:
        """All recorded events with the given type."""
        return [e for e in self.events if e.event_type == event_type]

    @property
    def last(self) -> Event | None:
        return self.events[-1] if self.events else None
