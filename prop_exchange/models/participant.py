"""Participants and registration requests used to seed an exchange."""

from dataclasses import dataclass, field


@dataclass
class Participant:
    """An identity that can hold and trade shares."""

    identity: str  # 0x-prefixed 20-byte hex address
    name: str
    country: str


@dataclass
class PropertyRegistration:
    """Arguments for ``PropertyLedger.register_property``."""

    registrant: str
    postal_code: str
    location: str
    owners: list[str] = field(default_factory=list)
    shares: list[int] = field(default_factory=list)
