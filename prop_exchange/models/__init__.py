"""Domain models for the property exchange."""

from prop_exchange.models.base import Event
from prop_exchange.models.enums import ListingState, PropertyStatus
from prop_exchange.models.market import Listing, Offer, SaleReceipt
from prop_exchange.models.participant import Participant, PropertyRegistration
from prop_exchange.models.property import PropertyRecord, PropertyView

__all__ = [
    "Event",
    "Listing",
    "ListingState",
    "Offer",
    "Participant",
    "PropertyRecord",
    "PropertyRegistration",
    "PropertyStatus",
    "PropertyView",
    "SaleReceipt",
]
