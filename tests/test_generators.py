"""Tests for participant and property generators."""

import re

import pytest

from prop_exchange.generators import ParticipantGenerator, PropertyGenerator, split_shares

IDENTITY_RE = re.compile(r"^0x[0-9a-f]{40}$")


class TestParticipantGenerator:
    """Tests for ParticipantGenerator."""

    def test_generate(self, seed: int) -> None:
        participant = ParticipantGenerator(seed=seed).generate()

        assert IDENTITY_RE.match(participant.identity)
        assert participant.name
        assert participant.country

    def test_identities_unique(self, seed: int) -> None:
        participants = ParticipantGenerator(seed=seed).generate_many(200)

        assert len({p.identity for p in participants}) == 200

    def test_reproducible(self, seed: int) -> None:
        first = ParticipantGenerator(seed=seed).generate_many(5)
        second = ParticipantGenerator(seed=seed).generate_many(5)

        assert first == second


class TestPropertyGenerator:
    """Tests for PropertyGenerator and split_shares."""

    def test_generate(self, seed: int) -> None:
        owners = ["0xa", "0xb", "0xc"]
        registration = PropertyGenerator(seed=seed).generate("0xa", owners)

        assert registration.registrant == "0xa"
        assert registration.owners == owners
        assert sum(registration.shares) == 1000
        assert all(share > 0 for share in registration.shares)
        assert registration.postal_code
        assert "\n" not in registration.location

    def test_custom_total(self, seed: int) -> None:
        registration = PropertyGenerator(seed=seed).generate("0xa", ["0xa", "0xb"], total_shares=10)

        assert sum(registration.shares) == 10

    @pytest.mark.parametrize("total,parts", [(1000, 1), (1000, 3), (5, 5), (2, 2)])
    def test_split_shares(self, total: int, parts: int) -> None:
        shares = split_shares(total, parts)

        assert len(shares) == parts
        assert sum(shares) == total
        assert min(shares) >= 1

    @pytest.mark.parametrize("total,parts", [(1000, 0), (3, 4)])
    def test_split_shares_invalid(self, total: int, parts: int) -> None:
        with pytest.raises(ValueError):
            split_shares(total, parts)
