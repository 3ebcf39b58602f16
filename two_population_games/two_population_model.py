"""
Two-population games (NetLogo -> Python/NumPy)

Two populations of agents play a bimatrix game. Every tick some agents
revise their strategy: they build a set of candidates (strategies or
other agents), price them by complete matching or by sampling opponents,
and pick a next strategy with a decision rule (best / logit /
proportional), occasionally mutating instead.

A tick is two-phase:
- compute: the composition is frozen, revisers write `next_strategy` only
- commit: every agent's `strategy` becomes its `next_strategy` at once
so the order in which revisers are processed never matters.

Usage
-----
$ python two_population_model.py                   # runs a small demo
$ python two_population_model.py --steps 200 --seed 42 --decision-method logit --eta 0.1
$ python two_population_model.py --payoffs '[[[1,1],[0,0]],[[0,0],[2,2]]]' --matching sampled --n-trials 3

Strategy i of the game is index i-1 in every array.
"""

from __future__ import annotations
import argparse
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np

from game_candidates import (
    CANDIDATE_SELECTION, COMPLETE, DIRECT, IMITATIVE, MATCHING, SAMPLED,
    DirectCandidates, ImitativeCandidates, PayoffEvaluator, TickSnapshot,
)
from game_decisions import (
    BEST, DECISION_METHODS, LOGIT, PROPORTIONAL, RANDOM_WALK, TIE_BREAKERS,
    LogitOverflowError, RandomWalkState, make_decision_rule,
)
from game_payoffs import ConfigurationError, PayoffModel
from game_population import Population
from game_sampling import FIXED, SAMPLE_REUSE, Sampler

logger = logging.getLogger(__name__)

PROBABILISTIC = "probabilistic"
FIXED_COUNT = "fixed-count"
REVISION_PROTOCOLS = (PROBABILISTIC, FIXED_COUNT)


def _coordination_game():
    return [[[1, 1], [0, 0]],
            [[0, 0], [2, 2]]]


@dataclass
class Params:
    # bimatrix of (payoff to population 1, payoff to population 2); row = pop 1 strategy
    payoffs: list = field(default_factory=_coordination_game)
    n_players_1: int = 200
    n_players_2: int = 200
    # explicit per-strategy counts; None -> random initial distribution of n_players_i agents
    initial_counts_1: list | None = None
    initial_counts_2: list | None = None

    candidate_selection: str = IMITATIVE
    decision_method: str = BEST
    tie_breaker: str = "stick-uniform"

    matching: str = COMPLETE
    n_trials: int = 1
    trials_with_replacement: bool = True
    sample_reuse: str = FIXED

    # imitative only
    n_imitatees: int = 1
    imitatees_with_replacement: bool = False
    consider_imitating_self: bool = False
    # direct only
    test_set_size: int = 2

    revision_protocol: str = PROBABILISTIC
    prob_revision: float = 0.1
    n_revisions: int = 1

    prob_mutation: float = 0.01
    eta: float = 0.1
    random_walk_speed: float = 0.1
    seed: int | None = None


@dataclass
class TickReport:
    ticks: int
    frequencies: Dict[int, np.ndarray]
    expected_payoffs: Dict[int, np.ndarray]


def _check_choice(name, value, allowed):
    if value not in allowed:
        raise ConfigurationError(f"{name} must be one of {allowed}, got {value!r}")


def _check_probability(name, value):
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must be in [0, 1], got {value}")


def check_params(p: Params):
    """Reject option values the model cannot run with."""
    _check_choice("candidate_selection", p.candidate_selection, CANDIDATE_SELECTION)
    _check_choice("decision_method", p.decision_method, DECISION_METHODS)
    _check_choice("tie_breaker", p.tie_breaker, TIE_BREAKERS)
    _check_choice("matching", p.matching, MATCHING)
    _check_choice("sample_reuse", p.sample_reuse, SAMPLE_REUSE)
    _check_choice("revision_protocol", p.revision_protocol, REVISION_PROTOCOLS)
    _check_probability("prob_revision", p.prob_revision)
    _check_probability("prob_mutation", p.prob_mutation)
    _check_probability("random_walk_speed", p.random_walk_speed)
    if p.decision_method == LOGIT and not p.eta > 0:
        raise ConfigurationError(f"eta must be > 0, got {p.eta}")
    for name in ("n_trials", "n_imitatees", "test_set_size"):
        if getattr(p, name) < 1:
            raise ConfigurationError(f"{name} must be >= 1, got {getattr(p, name)}")
    if p.n_revisions < 0:
        raise ConfigurationError(f"n_revisions must be >= 0, got {p.n_revisions}")
    for pid, n, counts in ((1, p.n_players_1, p.initial_counts_1), (2, p.n_players_2, p.initial_counts_2)):
        if counts is None and n < 1:
            raise ConfigurationError(f"population {pid} needs at least one player, got {n}")


class TwoPopulationModel:
    def __init__(self, params: Params):
        self.p = params
        check_params(self.p)
        self.payoffs = PayoffModel.from_bimatrix(self.p.payoffs)
        self.payoffs.validate(self.p.initial_counts_1, self.p.initial_counts_2)

        self.rng = np.random.default_rng(self.p.seed)
        self.logit_overflow_warned = False
        self.ticks = 0
        self.setup()

    # ---- setup ----

    def setup(self):
        """Create both populations and resolve the protocol into concrete objects."""
        self.populations: Dict[int, Population] = {}
        for pid, n, counts in ((1, self.p.n_players_1, self.p.initial_counts_1),
                               (2, self.p.n_players_2, self.p.initial_counts_2)):
            k = self.payoffs.n_strategies(pid)
            if counts is None:
                self.populations[pid] = Population.random(pid, k, n, self.rng)
            else:
                self.populations[pid] = Population.from_counts(pid, counts, self.rng)

        self.walks = {pid: RandomWalkState(pop.n_strategies) for pid, pop in self.populations.items()}
        for pid, walk in self.walks.items():
            walk.reset(len(self.populations[pid]), self.rng)

        sampler = None
        if self.p.matching == SAMPLED:
            sampler = Sampler(self.p.n_trials, self.p.trials_with_replacement, self.p.sample_reuse, self.rng)
        self.evaluator = PayoffEvaluator(self.payoffs, sampler)

        proportional = self.p.decision_method == PROPORTIONAL
        if self.p.candidate_selection == DIRECT:
            size = 2 if proportional else self.p.test_set_size
            self.candidate_generator = DirectCandidates(size, self.evaluator, self.rng)
        else:
            n = 1 if proportional else self.p.n_imitatees
            self.candidate_generator = ImitativeCandidates(
                n, self.p.imitatees_with_replacement, self.p.consider_imitating_self, self.evaluator, self.rng
            )

        self.rules = {
            pid: make_decision_rule(self.p.decision_method, self.p.tie_breaker, self.p.eta,
                                    self.payoffs[pid].rate_scaling, self.walks[pid])
            for pid in self.populations
        }
        self.snapshot = TickSnapshot.take(self.populations, self.payoffs)
        self.ticks = 0

    @property
    def random_walk_active(self) -> bool:
        return self.p.decision_method == BEST and self.p.tie_breaker == RANDOM_WALK

    # ---- between ticks ----

    def set_population_sizes(self, n_players_1: int, n_players_2: int):
        """Resize the populations before the next tick (birth/death of agents)."""
        for pid, n in ((1, n_players_1), (2, n_players_2)):
            if n < 1:
                raise ConfigurationError(f"population {pid} needs at least one player, got {n}")
            if self.populations[pid].resize(n, self.rng):
                self.walks[pid].reset(n, self.rng)
        self.snapshot = TickSnapshot.take(self.populations, self.payoffs)

    # ---- tick ----

    def go(self) -> TickReport:
        self.snapshot = TickSnapshot.take(self.populations, self.payoffs)
        self.evaluator.begin_tick(self.snapshot)
        for pop in self.populations.values():
            pop.reset_tick()

        if self.random_walk_active:
            for pid, walk in self.walks.items():
                walk.advance(int(self.p.random_walk_speed * len(self.populations[pid])), self.rng)

        for pid, index in self._select_revisers():
            self._revise(self.populations[pid], index)

        for pop in self.populations.values():
            pop.commit()
        self.ticks += 1
        return self.report()

    def _select_revisers(self) -> List[Tuple[int, int]]:
        if self.p.revision_protocol == PROBABILISTIC:
            revisers = []
            for pid, pop in self.populations.items():
                chosen = np.flatnonzero(self.rng.random(len(pop)) < self.p.prob_revision)
                revisers.extend((pid, int(i)) for i in chosen)
            return revisers
        n1 = len(self.populations[1])
        total = n1 + len(self.populations[2])
        k = min(self.p.n_revisions, total)
        picks = self.rng.choice(total, size=k, replace=False)
        return [(1, int(i)) if i < n1 else (2, int(i - n1)) for i in picks]

    def _revise(self, pop: Population, index: int):
        agent = pop.agents[index]
        if self.p.prob_mutation > 0 and self.rng.random() < self.p.prob_mutation:
            agent.next_strategy = int(self.rng.integers(pop.n_strategies))
            return
        candidates = self.candidate_generator.candidates(pop, index)
        try:
            agent.next_strategy = self.rules[pop.population_id].decide(agent.strategy, candidates, self.rng)
        except LogitOverflowError as e:
            if not self.logit_overflow_warned:
                logger.warning("%s; affected agents keep their strategy this tick (try a larger eta)", e)
                self.logit_overflow_warned = True

    # ---- outputs ----

    def strategy_frequencies(self) -> Dict[int, np.ndarray]:
        return {pid: pop.strategy_frequencies() for pid, pop in self.populations.items()}

    def expected_payoffs(self) -> Dict[int, np.ndarray]:
        freqs = self.strategy_frequencies()
        return self.payoffs.expected_payoffs(freqs[1], freqs[2])

    def report(self) -> TickReport:
        return TickReport(self.ticks, self.strategy_frequencies(), self.expected_payoffs())

    def counts(self) -> Dict[int, np.ndarray]:
        return {pid: pop.strategy_counts() for pid, pop in self.populations.items()}

    @property
    def ticks_per_second(self) -> float:
        """Ticks per unit of simulated time, for scaling a time axis."""
        if self.p.revision_protocol == PROBABILISTIC:
            return 1.0 / self.p.prob_revision if self.p.prob_revision > 0 else math.inf
        if self.p.n_revisions == 0:
            return math.inf
        return sum(len(pop) for pop in self.populations.values()) / self.p.n_revisions

    def run(self, steps: int = 100) -> List[TickReport]:
        return [self.go() for _ in range(steps)]


def _format_freqs(freqs: np.ndarray) -> str:
    return "[" + " ".join(f"{f:.3f}" for f in freqs) + "]"


def main(argv=None):
    ap = argparse.ArgumentParser(description="Evolutionary dynamics of a two-population bimatrix game")
    ap.add_argument("--steps", type=int, default=200)
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--payoffs", type=json.loads, default=_coordination_game(),
                    help="JSON bimatrix of [pop1 payoff, pop2 payoff] pairs, row = pop 1 strategy")
    ap.add_argument("--n-players-1", type=int, default=200)
    ap.add_argument("--n-players-2", type=int, default=200)
    ap.add_argument("--initial-counts-1", type=int, nargs="+", default=None)
    ap.add_argument("--initial-counts-2", type=int, nargs="+", default=None)
    ap.add_argument("--candidate-selection", choices=CANDIDATE_SELECTION, default=IMITATIVE)
    ap.add_argument("--decision-method", choices=DECISION_METHODS, default=BEST)
    ap.add_argument("--tie-breaker", choices=TIE_BREAKERS, default="stick-uniform")
    ap.add_argument("--matching", choices=MATCHING, default=COMPLETE)
    ap.add_argument("--n-trials", type=int, default=1)
    ap.add_argument("--trials-without-replacement", dest="trials_with_replacement", action="store_false")
    ap.add_argument("--sample-reuse", choices=SAMPLE_REUSE, default=FIXED)
    ap.add_argument("--n-imitatees", type=int, default=1)
    ap.add_argument("--imitatees-with-replacement", action="store_true")
    ap.add_argument("--consider-imitating-self", action="store_true")
    ap.add_argument("--test-set-size", type=int, default=2)
    ap.add_argument("--revision-protocol", choices=REVISION_PROTOCOLS, default=PROBABILISTIC)
    ap.add_argument("--prob-revision", type=float, default=0.1)
    ap.add_argument("--n-revisions", type=int, default=1)
    ap.add_argument("--prob-mutation", type=float, default=0.01)
    ap.add_argument("--eta", type=float, default=0.1)
    ap.add_argument("--random-walk-speed", type=float, default=0.1)
    ap.add_argument("--report-every", type=int, default=10)
    ap.add_argument("--log-level", default="WARNING")
    args = ap.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")

    params = Params(
        payoffs=args.payoffs,
        n_players_1=args.n_players_1,
        n_players_2=args.n_players_2,
        initial_counts_1=args.initial_counts_1,
        initial_counts_2=args.initial_counts_2,
        candidate_selection=args.candidate_selection,
        decision_method=args.decision_method,
        tie_breaker=args.tie_breaker,
        matching=args.matching,
        n_trials=args.n_trials,
        trials_with_replacement=args.trials_with_replacement,
        sample_reuse=args.sample_reuse,
        n_imitatees=args.n_imitatees,
        imitatees_with_replacement=args.imitatees_with_replacement,
        consider_imitating_self=args.consider_imitating_self,
        test_set_size=args.test_set_size,
        revision_protocol=args.revision_protocol,
        prob_revision=args.prob_revision,
        n_revisions=args.n_revisions,
        prob_mutation=args.prob_mutation,
        eta=args.eta,
        random_walk_speed=args.random_walk_speed,
        seed=args.seed,
    )
    try:
        model = TwoPopulationModel(params)
    except ConfigurationError as e:
        ap.error(str(e))

    print(f"ticks per second: {model.ticks_per_second:g}")
    for report in model.run(steps=args.steps):
        if report.ticks % args.report_every == 0 or report.ticks == args.steps:
            print(f"t={report.ticks:04d}  pop1={_format_freqs(report.frequencies[1])}"
                  f"  pop2={_format_freqs(report.frequencies[2])}")


if __name__ == "__main__":
    main()
