"""
Decision rules, tie-breakers and the random-walk auxiliary chain.

Every rule maps (current strategy, candidate list) to a next strategy.
Rules and tie-breakers are plain objects built once from the option
strings in `Params`; nothing here dispatches by name during a tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from game_payoffs import ConfigurationError

BEST = "best"
LOGIT = "logit"
PROPORTIONAL = "proportional"
DECISION_METHODS = (BEST, LOGIT, PROPORTIONAL)

STICK_UNIFORM = "stick-uniform"
STICK_MIN = "stick-min"
UNIFORM = "uniform"
MIN = "min"
RANDOM_WALK = "random-walk"
TIE_BREAKERS = (STICK_UNIFORM, STICK_MIN, UNIFORM, MIN, RANDOM_WALK)


class LogitOverflowError(ArithmeticError):
    """exp(payoff / eta), or the sum of those weights, is not representable."""


@dataclass
class Candidate:
    strategy: int
    payoff: float


def weighted_index(weights: Sequence[float], rng: np.random.Generator) -> int:
    """Index drawn with probability proportional to `weights` (cumulative-weight inversion)."""
    with np.errstate(over="ignore"):
        cum = np.cumsum(np.asarray(weights, dtype=float))
    total = cum[-1]
    if not (total > 0 and np.isfinite(total)):
        raise ValueError("weights must have a positive finite sum")
    i = int(np.searchsorted(cum, rng.random() * total, side="right"))
    return min(i, len(cum) - 1)


# ---- Random-walk auxiliary chain ----

class RandomWalkState:
    """
    Strategy counts of a pool of phantom "non-committed" agents.

    The pool has as many members as the real population had when it was
    last reset; `advance` moves members between strategies but never
    changes the total.
    """

    def __init__(self, n_strategies: int):
        self.counts = np.zeros(n_strategies, dtype=int)

    @property
    def size(self) -> int:
        return int(self.counts.sum())

    def reset(self, size: int, rng: np.random.Generator):
        k = len(self.counts)
        self.counts = rng.multinomial(size, np.full(k, 1.0 / k)).astype(int)

    def advance(self, steps: int, rng: np.random.Generator):
        if self.size == 0:
            return
        for _ in range(steps):
            imitator = weighted_index(self.counts, rng)
            self.counts[imitator] -= 1
            # +1: the imitator may copy its own old strategy
            new = weighted_index(self.counts + 1, rng)
            self.counts[new] += 1


# ---- Tie-breakers ----

class StickUniform:
    def choose(self, current: int, tied: List[int], rng: np.random.Generator) -> int:
        if current in tied:
            return current
        return tied[int(rng.integers(len(tied)))]


class StickMin:
    def choose(self, current: int, tied: List[int], rng: np.random.Generator) -> int:
        if current in tied:
            return current
        return min(tied)


class Uniform:
    def choose(self, current: int, tied: List[int], rng: np.random.Generator) -> int:
        return tied[int(rng.integers(len(tied)))]


class Min:
    def choose(self, current: int, tied: List[int], rng: np.random.Generator) -> int:
        return min(tied)


class RandomWalk:
    def __init__(self, walk: RandomWalkState):
        self.walk = walk

    def choose(self, current: int, tied: List[int], rng: np.random.Generator) -> int:
        distinct = sorted(set(tied))
        # +1 for the revising agent, which is not in the phantom pool
        weights = 1 + self.walk.counts[distinct]
        return distinct[weighted_index(weights, rng)]


def make_tie_breaker(name: str, walk: RandomWalkState | None = None):
    if name == STICK_UNIFORM:
        return StickUniform()
    if name == STICK_MIN:
        return StickMin()
    if name == UNIFORM:
        return Uniform()
    if name == MIN:
        return Min()
    if name == RANDOM_WALK:
        if walk is None:
            raise ConfigurationError("random-walk tie-breaker needs a random-walk state")
        return RandomWalk(walk)
    raise ConfigurationError(f"unknown tie-breaker {name!r}, expected one of {TIE_BREAKERS}")


# ---- Decision rules ----

class BestResponse:
    def __init__(self, tie_breaker):
        self.tie_breaker = tie_breaker

    def decide(self, current: int, candidates: List[Candidate], rng: np.random.Generator) -> int:
        if not candidates:
            return current
        best = max(c.payoff for c in candidates)
        tied = [c.strategy for c in candidates if c.payoff == best]
        if len(set(tied)) == 1:
            return tied[0]
        return self.tie_breaker.choose(current, tied, rng)


class Logit:
    def __init__(self, eta: float):
        self.eta = eta

    def decide(self, current: int, candidates: List[Candidate], rng: np.random.Generator) -> int:
        if len(candidates) < 2:
            return current
        payoffs = np.array([c.payoff for c in candidates], dtype=float)
        try:
            with np.errstate(over="raise"):
                weights = np.exp(payoffs / self.eta)
                total = weights.sum()
        except FloatingPointError as e:
            raise LogitOverflowError(f"exp(payoff / eta) overflowed for eta={self.eta}") from e
        if not np.isfinite(total) or total == 0:
            raise LogitOverflowError(f"logit weights out of range for eta={self.eta}")
        return candidates[weighted_index(weights, rng)].strategy


class Proportional:
    """Pairwise proportional imitation: candidates are [own, alternative]."""

    def __init__(self, rate_scaling: float):
        self.rate_scaling = rate_scaling

    def decide(self, current: int, candidates: List[Candidate], rng: np.random.Generator) -> int:
        if len(candidates) < 2 or self.rate_scaling == 0:
            return current
        worse, better = sorted(candidates[:2], key=lambda c: c.payoff)
        if rng.random() < (better.payoff - worse.payoff) / self.rate_scaling:
            return better.strategy
        return current


def make_decision_rule(method: str, tie_breaker: str, eta: float, rate_scaling: float,
                       walk: RandomWalkState | None = None):
    if method == BEST:
        return BestResponse(make_tie_breaker(tie_breaker, walk))
    if method == LOGIT:
        if not eta > 0:
            raise ConfigurationError(f"logit needs eta > 0, got {eta}")
        return Logit(eta)
    if method == PROPORTIONAL:
        return Proportional(rate_scaling)
    raise ConfigurationError(f"unknown decision method {method!r}, expected one of {DECISION_METHODS}")
