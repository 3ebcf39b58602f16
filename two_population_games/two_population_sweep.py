"""
Parameter sweep over the two-population model.

Every combination of the grid is run `n_reps` times in a process pool;
each replicate reports the final strategy frequencies of both
populations. The summary DataFrame has one row per combination with the
mean final frequency of every strategy and the share of replicates that
ended monomorphic in both populations.

$ python two_population_sweep.py --steps 500 --reps 5 --out sweep.csv
"""

import argparse
import itertools
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import replace

import numpy as np
import pandas as pd

from two_population_model import Params, TwoPopulationModel


def run_replicate(params: Params, steps: int):
    model = TwoPopulationModel(params)
    model.run(steps=steps)
    return model.strategy_frequencies()


def simulate_param_set(base: Params, combo, param_names, n_reps, steps):
    param_dict = dict(zip(param_names, combo))
    finals = []
    for rep in range(n_reps):
        seed = None if base.seed is None else base.seed + rep
        finals.append(run_replicate(replace(base, seed=seed, **param_dict), steps))

    row = dict(param_dict)
    for pid in (1, 2):
        mean = np.mean([f[pid] for f in finals], axis=0)
        for s, v in enumerate(mean, start=1):
            row[f"pop{pid}_s{s}"] = float(v)
    monomorphic = sum(1 for f in finals if f[1].max() == 1.0 and f[2].max() == 1.0)
    row["monomorphic_prob"] = monomorphic / n_reps
    return row


def sweep(base: Params, grid: dict, n_reps: int = 5, steps: int = 500, max_workers: int | None = None) -> pd.DataFrame:
    param_names = list(grid.keys())
    param_combos = list(itertools.product(*[grid[k] for k in param_names]))
    rows = []
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(simulate_param_set, base, combo, param_names, n_reps, steps)
                   for combo in param_combos]
        for done, future in enumerate(as_completed(futures), start=1):
            rows.append(future.result())
            print(f"Progress: {done} / {len(futures)} parameter sets completed ({done / len(futures):.1%})")
    return pd.DataFrame(rows).sort_values(param_names).reset_index(drop=True)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--steps", type=int, default=500)
    ap.add_argument("--reps", type=int, default=5)
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--workers", type=int, default=None)
    ap.add_argument("--out", default=None, help="CSV path for the summary")
    args = ap.parse_args()

    base = Params(n_players_1=100, n_players_2=100, seed=args.seed)
    grid = {
        'decision_method': ['best', 'logit', 'proportional'],
        'prob_mutation': [0.0, 0.01, 0.05],
        'candidate_selection': ['direct', 'imitative'],
    }
    print(f"Grid search: {np.prod([len(v) for v in grid.values()])} combinations\n")
    df = sweep(base, grid, n_reps=args.reps, steps=args.steps, max_workers=args.workers)
    print(df.to_string(index=False))
    if args.out:
        df.to_csv(args.out, index=False)
        print(f"\nResults written to {args.out}")


if __name__ == "__main__":
    main()
