"""
Counterpart sampling for sampled matching.

A counterpart list is returned as the opponents' current strategies
(int array). Strategies are read from the pre-commit state, so the
list never reflects another reviser's pending choice.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

FIXED = "fixed"
RESAMPLED = "resampled"
SAMPLE_REUSE = (FIXED, RESAMPLED)


def sample_with_replacement(opponent_strategies: np.ndarray, n: int, rng: np.random.Generator) -> np.ndarray:
    if len(opponent_strategies) == 0 or n <= 0:
        return np.empty(0, dtype=int)
    return opponent_strategies[rng.integers(len(opponent_strategies), size=n)]


def sample_without_replacement(opponent_strategies: np.ndarray, n: int, rng: np.random.Generator) -> np.ndarray:
    n = min(n, len(opponent_strategies))
    if n <= 0:
        return np.empty(0, dtype=int)
    return opponent_strategies[rng.choice(len(opponent_strategies), size=n, replace=False)]


class Sampler:
    def __init__(self, n_trials: int, with_replacement: bool, reuse: str, rng: np.random.Generator):
        self.n_trials = n_trials
        self.with_replacement = with_replacement
        self.reuse = reuse
        self.rng = rng
        self._draw = sample_with_replacement if with_replacement else sample_without_replacement

    def counterparts(self, opponent_strategies: np.ndarray) -> np.ndarray:
        return self._draw(opponent_strategies, self.n_trials, self.rng)

    def for_revision(self, opponent_strategies: np.ndarray) -> Callable[[], np.ndarray]:
        """
        Draw function for one revising agent.

        Under FIXED every call returns the same sample; under RESAMPLED each
        call draws afresh.
        """
        if self.reuse == FIXED:
            sample = self.counterparts(opponent_strategies)
            return lambda: sample
        return lambda: self.counterparts(opponent_strategies)
