"""
Payoff model for a two-population bimatrix game.

Each population owns a matrix indexed [own strategy, opponent strategy].
The bimatrix given by a caller is a K1 x K2 table of pairs
(payoff to population 1, payoff to population 2), row = population 1's
strategy, column = population 2's strategy. Population 2's matrix is the
transpose of the second components so that it is also row = own.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


class ConfigurationError(ValueError):
    """Invalid setup; raised before any simulation state is built."""


class PayoffMatrix:
    def __init__(self, values):
        arr = np.asarray(values, dtype=float)
        if arr.ndim != 2 or arr.shape[0] == 0 or arr.shape[1] == 0:
            raise ConfigurationError(f"payoff matrix must be a non-empty 2-D table, got shape {arr.shape}")
        self.values = arr
        self.transposed = arr.T
        # largest payoff gap one revision can observe
        self.rate_scaling = float(arr.max() - arr.min())

    @property
    def n_own(self) -> int:
        return self.values.shape[0]

    @property
    def n_opponent(self) -> int:
        return self.values.shape[1]

    def row(self, s: int) -> np.ndarray:
        return self.values[s]

    def column(self, t: int) -> np.ndarray:
        return self.transposed[t]

    def expected_payoffs(self, opponent_frequencies: np.ndarray) -> np.ndarray:
        """Payoff of every own strategy against the opponent distribution (complete matching)."""
        return self.values @ np.asarray(opponent_frequencies, dtype=float)

    def expected_payoff(self, s: int, opponent_frequencies: np.ndarray) -> float:
        return float(self.values[s] @ np.asarray(opponent_frequencies, dtype=float))

    def sampled_payoff(self, s: int, counterpart_strategies: np.ndarray) -> float:
        """Mean payoff of strategy `s` over a list of counterpart strategies."""
        if len(counterpart_strategies) == 0:
            return 0.0
        return float(self.values[s, counterpart_strategies].mean())


class PayoffModel:
    """Both populations' payoff matrices."""

    def __init__(self, matrix_1: PayoffMatrix, matrix_2: PayoffMatrix):
        if matrix_1.n_own != matrix_2.n_opponent or matrix_1.n_opponent != matrix_2.n_own:
            raise ConfigurationError(
                f"payoff matrices do not conform: {matrix_1.values.shape} vs {matrix_2.values.shape}"
            )
        self.matrices = {1: matrix_1, 2: matrix_2}

    @classmethod
    def from_bimatrix(cls, table) -> "PayoffModel":
        arr = np.asarray(table, dtype=float)
        if arr.ndim != 3 or arr.shape[2] != 2:
            raise ConfigurationError(
                f"bimatrix must be a rectangular table of (own, opponent) pairs, got shape {arr.shape}"
            )
        return cls(PayoffMatrix(arr[:, :, 0]), PayoffMatrix(arr[:, :, 1].T))

    @classmethod
    def from_matrices(cls, matrix_1, matrix_2) -> "PayoffModel":
        return cls(PayoffMatrix(matrix_1), PayoffMatrix(matrix_2))

    def __getitem__(self, population_id: int) -> PayoffMatrix:
        return self.matrices[population_id]

    def n_strategies(self, population_id: int) -> int:
        return self.matrices[population_id].n_own

    def validate(self, counts_1: Sequence[int] | None, counts_2: Sequence[int] | None):
        """Check initial per-strategy count vectors against the matrices."""
        for pid, counts in ((1, counts_1), (2, counts_2)):
            if counts is None:
                continue
            counts = list(counts)
            k = self.n_strategies(pid)
            if len(counts) != k:
                raise ConfigurationError(
                    f"population {pid}: payoff matrix has {k} strategies "
                    f"but {len(counts)} initial counts were given"
                )
            for c in counts:
                if int(c) != c or c < 0:
                    raise ConfigurationError(f"population {pid}: initial counts must be non-negative integers, got {counts}")
            if sum(counts) == 0:
                raise ConfigurationError(f"population {pid}: initial counts sum to zero")

    def expected_payoffs(self, frequencies_1: np.ndarray, frequencies_2: np.ndarray) -> dict[int, np.ndarray]:
        return {
            1: self.matrices[1].expected_payoffs(frequencies_2),
            2: self.matrices[2].expected_payoffs(frequencies_1),
        }
