"""
Simulated decider implementation.

Answers comparisons from latent scores with a noise parameter, for testing
and for exercising the engine without a human in the loop.
"""

import random
from typing import Dict

from typing_extensions import override

from ..interfaces import Decider
from ..models import Item


class SimulatedDecider(Decider):
    """
    Simulated decider for testing purposes.

    Compares ground truth scores with added noise. With noise=0 every answer
    agrees with the ground truth order, so insertion must reproduce it.
    """

    def __init__(self, ground_truth: Dict[str, float], noise: float = 0.0, seed: int | None = None):
        """
        Initialize simulated decider.

        Args:
            ground_truth: Dict mapping item_id to true preference score (higher is better)
            noise: Amount of noise to add (0-1, where 1 = full noise)
            seed: Random seed for reproducible noise
        """
        self.ground_truth = ground_truth
        self.noise = max(0.0, min(1.0, noise))  # Clamp to [0, 1]
        self.decider_id = "simulated"
        self._rng = random.Random(seed)
        self.decisions = 0

    def _add_noise(self, score: float) -> float:
        """Add Gaussian noise to score."""
        if self.noise == 0:
            return score

        # Scale noise by score magnitude
        noise_scale = abs(score) * self.noise
        return score + self._rng.gauss(0, noise_scale)

    @override
    def is_better(self, candidate: Item, incumbent: Item) -> bool:
        """Compare noisy scores; unknown items score 0."""
        self.decisions += 1
        candidate_score = self._add_noise(self.ground_truth.get(candidate.item_id, 0.0))
        incumbent_score = self._add_noise(self.ground_truth.get(incumbent.item_id, 0.0))
        return candidate_score > incumbent_score
