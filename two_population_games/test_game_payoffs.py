"""
Tests for game_payoffs.py: payoff matrices, expectations, validation
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import numpy as np
import pytest

from game_candidates import PayoffEvaluator, TickSnapshot
from game_payoffs import ConfigurationError, PayoffMatrix, PayoffModel
from game_population import Population
from game_sampling import RESAMPLED, Sampler


@pytest.fixture
def battle_of_sexes():
    # row = pop 1 strategy, column = pop 2 strategy
    return PayoffModel.from_bimatrix([
        [[3, 2], [0, 0]],
        [[0, 0], [2, 3]],
    ])


def test_bimatrix_split_and_transpose():
    model = PayoffModel.from_bimatrix([
        [[1, 4], [2, 5], [3, 6]],
        [[7, 10], [8, 11], [9, 12]],
    ])
    np.testing.assert_array_equal(model[1].values, [[1, 2, 3], [7, 8, 9]])
    # pop 2 has 3 strategies, each row is its own strategy
    np.testing.assert_array_equal(model[2].values, [[4, 10], [5, 11], [6, 12]])
    assert model.n_strategies(1) == 2
    assert model.n_strategies(2) == 3


def test_expected_payoffs(battle_of_sexes):
    payoffs = battle_of_sexes.expected_payoffs(np.array([0.5, 0.5]), np.array([0.25, 0.75]))
    np.testing.assert_allclose(payoffs[1], [0.75, 1.5])
    np.testing.assert_allclose(payoffs[2], [1.0, 1.5])
    assert battle_of_sexes[1].expected_payoff(1, np.array([0.25, 0.75])) == pytest.approx(1.5)


def test_sampled_payoff_is_mean_over_counterparts():
    m = PayoffMatrix([[1, -1, 4], [0, 2, 2]])
    assert m.sampled_payoff(0, np.array([0, 0, 2, 1])) == pytest.approx((1 + 1 + 4 - 1) / 4)
    assert m.sampled_payoff(1, np.array([2])) == pytest.approx(2.0)


def test_row_column_accessors():
    m = PayoffMatrix([[1, 2], [3, 4], [5, 6]])
    np.testing.assert_array_equal(m.row(1), [3, 4])
    np.testing.assert_array_equal(m.column(1), [2, 4, 6])


def test_rate_scaling():
    assert PayoffMatrix([[0, 0], [1, -1]]).rate_scaling == pytest.approx(2.0)
    assert PayoffMatrix([[3, 3], [3, 3]]).rate_scaling == 0.0
    assert PayoffMatrix([[0, 1], [0, 1]]).rate_scaling > 0


def test_full_sample_without_replacement_equals_complete_matching(battle_of_sexes):
    rng = np.random.default_rng(3)
    pops = {1: Population.from_counts(1, [7, 13], rng), 2: Population.from_counts(2, [11, 9], rng)}
    snapshot = TickSnapshot.take(pops, battle_of_sexes)
    evaluator = PayoffEvaluator(battle_of_sexes, Sampler(20, False, RESAMPLED, rng))
    evaluator.begin_tick(snapshot)
    for pid in (1, 2):
        price = evaluator.strategy_pricer(pid)
        for s in range(2):
            assert price(s) == pytest.approx(snapshot.expected_payoffs[pid][s])


class TestValidation:
    def test_count_vector_length_must_match_rows(self, battle_of_sexes):
        with pytest.raises(ConfigurationError, match="population 1"):
            battle_of_sexes.validate([1, 2, 3], None)

    def test_negative_counts_rejected(self, battle_of_sexes):
        with pytest.raises(ConfigurationError, match="non-negative"):
            battle_of_sexes.validate([5, 5], [3, -1])

    def test_all_zero_counts_rejected(self, battle_of_sexes):
        with pytest.raises(ConfigurationError):
            battle_of_sexes.validate([0, 0], [1, 1])

    def test_valid_counts_pass(self, battle_of_sexes):
        battle_of_sexes.validate([5, 0], [2, 2])
        battle_of_sexes.validate(None, None)

    def test_ragged_bimatrix_rejected(self):
        with pytest.raises((ConfigurationError, ValueError)):
            PayoffModel.from_bimatrix([[[1, 1], [0, 0]], [[0, 0]]])

    def test_scalar_table_is_not_a_bimatrix(self):
        with pytest.raises(ConfigurationError):
            PayoffModel.from_bimatrix([[1, 0], [0, 1]])

    def test_nonconforming_matrices_rejected(self):
        with pytest.raises(ConfigurationError, match="do not conform"):
            PayoffModel.from_matrices([[1, 0], [0, 1]], [[1, 0, 2], [0, 1, 2]])
