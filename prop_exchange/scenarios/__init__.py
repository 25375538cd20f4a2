"""Scenarios for generating realistic exchange histories."""

from prop_exchange.scenarios.marketplace import MarketplaceScenario

__all__ = ["MarketplaceScenario"]
