"""
Dummy decider implementation for testing.

Provides deterministic and random answers for testing purposes.
"""

import random

from typing_extensions import override

from ..exceptions import ValidationError
from ..interfaces import Decider
from ..models import Item


class DummyDecider(Decider):
    """
    Dummy decider for testing purposes.

    "alphabetical" prefers the title that sorts first (case-insensitive),
    so a fully ranked list comes out in A-Z order. "random" flips a seeded coin.
    """

    def __init__(self, mode: str = "alphabetical", seed: int = 42):
        """
        Initialize dummy decider.

        Args:
            mode: "alphabetical" or "random"
            seed: Random seed for reproducible results
        """
        if mode not in ("alphabetical", "random"):
            raise ValidationError(f"Unknown mode: {mode}")
        self.mode = mode
        self.seed = seed
        self.decider_id = f"dummy_{mode}"
        self._rng = random.Random(seed)

    @override
    def is_better(self, candidate: Item, incumbent: Item) -> bool:
        if self.mode == "alphabetical":
            return candidate.title.casefold() < incumbent.title.casefold()
        return self._rng.random() < 0.5
