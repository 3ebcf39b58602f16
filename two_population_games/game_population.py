"""
Agents and populations.

An agent holds two strategy fields: `strategy` (what everybody sees this
tick) and `next_strategy` (what it will play after the commit). Revisers
only ever write `next_strategy`, so nobody observes a new strategy before
`Population.commit()`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class Agent:
    population_id: int
    strategy: int
    next_strategy: int = -1
    payoff: float = 0.0
    payoff_updated: bool = False

    def __post_init__(self):
        if self.next_strategy < 0:
            self.next_strategy = self.strategy

    def hatch(self) -> "Agent":
        """New agent with the same strategy and no other state."""
        return Agent(self.population_id, self.strategy)


class Population:
    def __init__(self, population_id: int, n_strategies: int, agents: List[Agent]):
        self.population_id = population_id
        self.n_strategies = n_strategies
        self.agents = agents

    @classmethod
    def random(cls, population_id: int, n_strategies: int, size: int, rng: np.random.Generator) -> "Population":
        strategies = rng.integers(n_strategies, size=size)
        return cls(population_id, n_strategies, [Agent(population_id, int(s)) for s in strategies])

    @classmethod
    def from_counts(cls, population_id: int, counts: Sequence[int], rng: np.random.Generator) -> "Population":
        agents = [Agent(population_id, s) for s, c in enumerate(counts) for _ in range(int(c))]
        rng.shuffle(agents)
        return cls(population_id, len(counts), agents)

    def __len__(self):
        return len(self.agents)

    def strategies(self) -> np.ndarray:
        return np.fromiter((a.strategy for a in self.agents), dtype=int, count=len(self.agents))

    def strategy_counts(self) -> np.ndarray:
        return np.bincount(self.strategies(), minlength=self.n_strategies)

    def strategy_frequencies(self) -> np.ndarray:
        counts = self.strategy_counts()
        total = counts.sum()
        if total == 0:
            return np.zeros(self.n_strategies)
        return counts / total

    def reset_tick(self):
        for a in self.agents:
            a.next_strategy = a.strategy
            a.payoff_updated = False

    def commit(self):
        for a in self.agents:
            a.strategy = a.next_strategy

    def resize(self, target_size: int, rng: np.random.Generator) -> bool:
        """Hatch or remove agents until the population has `target_size` members."""
        n = len(self.agents)
        if target_size == n:
            return False
        if target_size > n:
            if n == 0:
                newborns = Population.random(self.population_id, self.n_strategies, target_size, rng).agents
            else:
                parents = rng.integers(n, size=target_size - n)
                newborns = [self.agents[i].hatch() for i in parents]
            self.agents.extend(newborns)
        else:
            keep = np.sort(rng.choice(n, size=target_size, replace=False))
            self.agents = [self.agents[i] for i in keep]
        logger.debug("population %d resized from %d to %d", self.population_id, n, target_size)
        return True
