"""Participant generator."""

from prop_exchange.generators.base import BaseGenerator
from prop_exchange.models.participant import Participant


class ParticipantGenerator(BaseGenerator):
    """Generate participants with unique address-style identities."""

    def __init__(self, seed: int | None = None, locale: str = "en_US") -> None:
        super().__init__(seed, locale)
        self._issued: set[str] = set()

    def generate(self) -> Participant:
        identity = self._new_identity()
        return Participant(
            identity=identity,
            name=self.fake.name(),
            country=self.fake.country(),
        )

    def generate_many(self, count: int) -> list[Participant]:
        return [self.generate() for _ in range(count)]

    def _new_identity(self) -> str:
        while True:
            identity = "0x" + self.fake.hexify(text="^" * 40)
            if identity not in self._issued:
                self._issued.add(identity)
                return identity
