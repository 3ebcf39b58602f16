"""
Tests for game_population.py: agents, counts, commit and resizing
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import numpy as np
import pytest

from game_population import Agent, Population


@pytest.fixture
def rng():
    return np.random.default_rng(7)


def test_agent_pending_defaults_to_current():
    a = Agent(1, 2)
    assert a.next_strategy == 2
    assert not a.payoff_updated


def test_hatch_inherits_only_strategy():
    parent = Agent(2, 1, next_strategy=0, payoff=3.5, payoff_updated=True)
    child = parent.hatch()
    assert (child.population_id, child.strategy, child.next_strategy) == (2, 1, 1)
    assert child.payoff == 0.0 and not child.payoff_updated


def test_from_counts(rng):
    pop = Population.from_counts(1, [3, 0, 2], rng)
    assert len(pop) == 5
    np.testing.assert_array_equal(pop.strategy_counts(), [3, 0, 2])
    np.testing.assert_allclose(pop.strategy_frequencies(), [0.6, 0.0, 0.4])


def test_random_population(rng):
    pop = Population.random(2, 4, 400, rng)
    assert len(pop) == 400
    assert pop.strategy_counts().sum() == 400
    assert (pop.strategy_counts() > 50).all()


def test_commit_is_simultaneous(rng):
    pop = Population.from_counts(1, [2, 2], rng)
    for a in pop.agents:
        a.next_strategy = 1 - a.strategy
    # nothing visible before the commit
    np.testing.assert_array_equal(pop.strategy_counts(), [2, 2])
    before = pop.strategies()
    pop.commit()
    np.testing.assert_array_equal(pop.strategies(), 1 - before)


def test_reset_tick_clears_pending_and_memo(rng):
    pop = Population.from_counts(1, [1, 1], rng)
    for a in pop.agents:
        a.next_strategy = 0
        a.payoff_updated = True
    pop.reset_tick()
    for a in pop.agents:
        assert a.next_strategy == a.strategy
        assert not a.payoff_updated


def test_resize_grow_hatches_existing_strategies(rng):
    pop = Population.from_counts(1, [0, 5, 0], rng)
    assert pop.resize(12, rng)
    assert len(pop) == 12
    np.testing.assert_array_equal(pop.strategy_counts(), [0, 12, 0])


def test_resize_shrink_removes_agents(rng):
    pop = Population.from_counts(2, [10, 10], rng)
    survivors_pool = set(map(id, pop.agents))
    assert pop.resize(7, rng)
    assert len(pop) == 7
    assert set(map(id, pop.agents)) <= survivors_pool
    assert len(set(map(id, pop.agents))) == 7


def test_resize_same_size_is_noop(rng):
    pop = Population.from_counts(1, [2, 2], rng)
    agents = list(pop.agents)
    assert not pop.resize(4, rng)
    assert pop.agents == agents
