"""Event identifier generation."""
import random
from typing import Protocol

MAX_EVENT_ID = 2**63 - 1


class IdGenerator(Protocol):
    """Anything that can hand out fresh event identifiers."""

    def next_id(self) -> int:
        ...


class RandomIdGenerator:
    """
    Random 63-bit positive identifiers.

    Identifiers are not checked against storage; collisions are an accepted
    risk. Pass ``seed`` to get a reproducible sequence.
    """

    def __init__(self, seed: int | None = None):
        self._rng = random.Random(seed)

    def next_id(self) -> int:
        return self._rng.randint(1, MAX_EVENT_ID)
