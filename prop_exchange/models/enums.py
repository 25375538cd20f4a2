"""Enumeration types for ledger and marketplace entities."""

from enum import Enum


class PropertyStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ListingState(str, Enum):
    ACTIVE = "ACTIVE"
    PENDING_SALE = "PENDING_SALE"
    CANCELLED = "CANCELLED"
    EXECUTED = "EXECUTED"
