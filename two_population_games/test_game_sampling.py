"""
Tests for game_sampling.py: counterpart draws and sample reuse
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import numpy as np
import pytest

from game_sampling import (
    FIXED, RESAMPLED, Sampler, sample_with_replacement, sample_without_replacement,
)


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


def test_without_replacement_has_no_duplicates(rng):
    # distinct values stand in for distinct agents
    opponents = np.arange(25)
    for n in (1, 5, 25):
        sample = sample_without_replacement(opponents, n, rng)
        assert len(sample) == n
        assert len(set(sample.tolist())) == n


def test_without_replacement_is_clamped_to_population(rng):
    opponents = np.arange(4)
    sample = sample_without_replacement(opponents, 10, rng)
    assert sorted(sample.tolist()) == [0, 1, 2, 3]


def test_with_replacement_allows_duplicates(rng):
    opponents = np.arange(3)
    sample = sample_with_replacement(opponents, 50, rng)
    assert len(sample) == 50
    assert set(sample.tolist()) <= {0, 1, 2}
    assert len(set(sample.tolist())) < 50


def test_empty_opponent_population(rng):
    empty = np.empty(0, dtype=int)
    assert len(sample_with_replacement(empty, 3, rng)) == 0
    assert len(sample_without_replacement(empty, 3, rng)) == 0


def test_fixed_reuses_one_sample(rng):
    sampler = Sampler(5, True, FIXED, rng)
    draw = sampler.for_revision(np.arange(1000))
    first = draw()
    for _ in range(10):
        np.testing.assert_array_equal(draw(), first)


def test_resampled_draws_afresh(rng):
    sampler = Sampler(5, True, RESAMPLED, rng)
    draw = sampler.for_revision(np.arange(1000))
    samples = [tuple(draw().tolist()) for _ in range(10)]
    assert len(set(samples)) > 1

