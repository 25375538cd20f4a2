"""Base models shared across the ledger and the marketplace."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Event:
    """Standard event envelope for every state change."""

    event_id: str
    event_type: str  # entity.action (e.g., listing.created)
    event_time: datetime
    source: str  # Component that emitted it
    subject: str  # Entity key affected
    data: dict[str, Any]
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def entity(self) -> str:
        """Entity part of the event type (``listing`` for ``listing.created``)."""
        return self.event_type.split(".", 1)[0]
