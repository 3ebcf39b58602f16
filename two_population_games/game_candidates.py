"""
Candidate generation and pricing for a revising agent.

Direct protocol: candidates are strategies (own strategy first).
Imitative protocol: candidates are agents (self first), and their
strategies and payoffs are what the decision rule sees.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

import numpy as np

from game_decisions import Candidate
from game_payoffs import PayoffModel
from game_population import Agent, Population
from game_sampling import Sampler

DIRECT = "direct"
IMITATIVE = "imitative"
CANDIDATE_SELECTION = (DIRECT, IMITATIVE)

COMPLETE = "complete"
SAMPLED = "sampled"
MATCHING = (COMPLETE, SAMPLED)


@dataclass
class TickSnapshot:
    """Composition frozen at the start of a tick."""
    strategies: Dict[int, np.ndarray]
    counts: Dict[int, np.ndarray]
    frequencies: Dict[int, np.ndarray]
    expected_payoffs: Dict[int, np.ndarray]

    @classmethod
    def take(cls, populations: Dict[int, Population], payoffs: PayoffModel) -> "TickSnapshot":
        strategies = {pid: pop.strategies() for pid, pop in populations.items()}
        counts = {pid: np.bincount(strategies[pid], minlength=pop.n_strategies) for pid, pop in populations.items()}
        freqs = {pid: c / c.sum() if c.sum() > 0 else np.zeros(len(c), dtype=float) for pid, c in counts.items()}
        return cls(strategies, counts, freqs, payoffs.expected_payoffs(freqs[1], freqs[2]))


def opponent_of(population_id: int) -> int:
    return 2 if population_id == 1 else 1


class PayoffEvaluator:
    """Prices strategies and agents against the tick snapshot."""

    def __init__(self, payoffs: PayoffModel, sampler: Sampler | None):
        self.payoffs = payoffs
        self.sampler = sampler
        self.snapshot: TickSnapshot | None = None

    @property
    def complete_matching(self) -> bool:
        return self.sampler is None

    def begin_tick(self, snapshot: TickSnapshot):
        self.snapshot = snapshot

    def strategy_pricer(self, population_id: int) -> Callable[[int], float]:
        """Payoff function for the strategies one revision tests."""
        if self.complete_matching:
            expected = self.snapshot.expected_payoffs[population_id]
            return lambda s: float(expected[s])
        matrix = self.payoffs[population_id]
        draw = self.sampler.for_revision(self.snapshot.strategies[opponent_of(population_id)])
        return lambda s: matrix.sampled_payoff(s, draw())

    def agent_payoff(self, agent: Agent) -> float:
        """Realized payoff of `agent` this tick, computed at most once."""
        if not agent.payoff_updated:
            pid = agent.population_id
            if self.complete_matching:
                agent.payoff = float(self.snapshot.expected_payoffs[pid][agent.strategy])
            else:
                counterparts = self.sampler.counterparts(self.snapshot.strategies[opponent_of(pid)])
                agent.payoff = self.payoffs[pid].sampled_payoff(agent.strategy, counterparts)
            agent.payoff_updated = True
        return agent.payoff


class DirectCandidates:
    def __init__(self, test_set_size: int, evaluator: PayoffEvaluator, rng: np.random.Generator):
        self.test_set_size = test_set_size
        self.evaluator = evaluator
        self.rng = rng

    def candidates(self, population: Population, index: int) -> List[Candidate]:
        agent = population.agents[index]
        k = population.n_strategies
        m = max(1, min(self.test_set_size, k))
        tested = [agent.strategy]
        if m > 1:
            others = [s for s in range(k) if s != agent.strategy]
            tested += [int(s) for s in self.rng.choice(others, size=m - 1, replace=False)]
        price = self.evaluator.strategy_pricer(population.population_id)
        return [Candidate(s, price(s)) for s in tested]


class ImitativeCandidates:
    def __init__(self, n_imitatees: int, with_replacement: bool, consider_self: bool,
                 evaluator: PayoffEvaluator, rng: np.random.Generator):
        self.n_imitatees = n_imitatees
        self.with_replacement = with_replacement
        self.consider_self = consider_self
        self.evaluator = evaluator
        self.rng = rng

    def effective_imitatees(self, population_size: int) -> int:
        if self.with_replacement:
            return self.n_imitatees if (self.consider_self or population_size > 1) else 0
        return min(self.n_imitatees, population_size - 1)

    def imitatee_indices(self, population_size: int, index: int) -> np.ndarray:
        m = self.effective_imitatees(population_size)
        if m <= 0:
            return np.empty(0, dtype=int)
        if self.with_replacement and self.consider_self:
            return self.rng.integers(population_size, size=m)
        if self.with_replacement:
            drawn = self.rng.integers(population_size - 1, size=m)
        else:
            drawn = self.rng.choice(population_size - 1, size=m, replace=False)
        # skip over the reviser's own slot
        return drawn + (drawn >= index)

    def candidates(self, population: Population, index: int) -> List[Candidate]:
        agents = population.agents
        chosen = [agents[index]] + [agents[i] for i in self.imitatee_indices(len(agents), index)]
        return [Candidate(a.strategy, self.evaluator.agent_payoff(a)) for a in chosen]
