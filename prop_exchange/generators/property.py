"""Property registration generator."""

import random

from prop_exchange.config import DEFAULT_TOTAL_SHARES
from prop_exchange.generators.base import BaseGenerator
from prop_exchange.models.participant import PropertyRegistration


class PropertyGenerator(BaseGenerator):
    """Generate property registrations with a random share split."""

    def generate(
        self,
        registrant: str,
        owners: list[str],
        total_shares: int = DEFAULT_TOTAL_SHARES,
    ) -> PropertyRegistration:
        """Generate a registration owned by ``owners``.

        Parameters
        ----------
        registrant : str
            Identity submitting the property.
        owners : list[str]
            Distinct initial holders; at most ``total_shares`` of them.
        total_shares : int
            Shares to split among the owners.

        Returns
        -------
        PropertyRegistration
            Registration whose shares are all positive and sum to
            ``total_shares``.
        """
        return PropertyRegistration(
            registrant=registrant,
            postal_code=self.fake.postcode(),
            location=self.fake.address().replace("\n", ", "),
            owners=list(owners),
            shares=split_shares(total_shares, len(owners)),
        )


def split_shares(total: int, parts: int) -> list[int]:
    """Split ``total`` into ``parts`` random positive integers."""
    if parts <= 0 or parts > total:
        raise ValueError(f"Cannot split {total} shares among {parts} owners")
    cuts = sorted(random.sample(range(1, total), parts - 1))
    bounds = [0, *cuts, total]
    return [hi - lo for lo, hi in zip(bounds, bounds[1:])]
