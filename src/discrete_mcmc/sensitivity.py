"""
Sensitivity studies for the discrete Metropolis sampler.

- ChainLengthSensitivity: vary the chain length N and measure how far the
  visitation frequencies are from the exact posterior.
- scale_invariance_check: rescale the prior (or likelihood) by a constant
  and test that the visitation histogram does not change.
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from typing import Dict, List, Optional

from .analysis import compare_histograms, compute_state_metrics
from .errors import ConfigurationError
from .model import DiscreteBayesModel
from .samplers import metropolis_chain


class ChainLengthSensitivity:
    """Chain-length sensitivity analysis.

    Runs independent single chains for each N and compares their visitation
    frequencies with the closed-form posterior.
    """

    def __init__(self, n_replications: int = 10, seed: int = 0, use_numba: bool = True):
        self.n_replications = n_replications
        self.seed = seed
        self.use_numba = use_numba

    def run_single_replication(self, model: DiscreteBayesModel, N: int, rep_id: int,
                               initial_state: Optional[str] = None,
                               burn_in: int = 0) -> Dict:
        """Run one replication and return metrics."""
        rng = np.random.default_rng([int(self.seed), int(N), int(rep_id)])
        initial = initial_state if initial_state is not None else model.states[0]
        chain = metropolis_chain(model, initial, int(N), rng, chain_id=rep_id, use_numba=self.use_numba)

        frequencies = chain.frequencies(burn_in=min(int(burn_in), int(N) - 1))
        metrics = compute_state_metrics(frequencies, model.exact_posterior())

        row = {
            'N': int(N),
            'rep_id': int(rep_id),
            'acceptance_rate': chain.acceptance_rate,
            'max_abs_error': metrics['max_abs_error'],
            'tvd': metrics['tvd'],
            'map_correct': metrics['map_estimate'] == metrics['map_exact'],
        }
        row.update({f"freq_{state}": float(v) for state, v in frequencies.items()})
        return row

    def run(self, model: DiscreteBayesModel, N_values: List[int] = None,
            initial_state: Optional[str] = None, burn_in: int = 0) -> pd.DataFrame:
        """Run chain-length sensitivity analysis.

        Args:
            model: Model to sample
            N_values: Chain lengths to test
            initial_state: Starting state of every chain
            burn_in: Steps dropped from each chain before computing frequencies

        Returns:
            DataFrame with results from all replications
        """
        if N_values is None:
            N_values = [100, 1000, 10000, 100000]

        print("\n" + "="*70)
        print("CHAIN LENGTH SENSITIVITY ANALYSIS")
        print("="*70)
        print(f"Replications per N: {self.n_replications}")
        print(f"Chain lengths: {N_values}")
        print()

        rows = []
        for N in N_values:
            for rep in range(self.n_replications):
                rows.append(self.run_single_replication(model, N, rep, initial_state, burn_in))
            recent = pd.DataFrame(rows[-self.n_replications:])
            print(f"  N={N:>8d}: mean max|error|={recent['max_abs_error'].mean():.4f}, "
                  f"mean TVD={recent['tvd'].mean():.4f}", flush=True)

        return pd.DataFrame(rows)

    @staticmethod
    def summarize(df: pd.DataFrame) -> pd.DataFrame:
        """Mean and spread of the error metrics per chain length."""
        return df.groupby('N').agg(
            max_abs_error_mean=('max_abs_error', 'mean'),
            max_abs_error_sd=('max_abs_error', 'std'),
            tvd_mean=('tvd', 'mean'),
            tvd_sd=('tvd', 'std'),
            acceptance_rate=('acceptance_rate', 'mean'),
            map_correct_pct=('map_correct', lambda x: 100.0 * float(np.mean(x))),
        ).reset_index()

    @staticmethod
    def plot_results(df: pd.DataFrame, save_path: str):
        """Plot error vs chain length on log-log axes."""
        summary = ChainLengthSensitivity.summarize(df)

        fig, axes = plt.subplots(1, 2, figsize=(12, 4.5))

        ax = axes[0]
        ax.errorbar(summary['N'], summary['tvd_mean'], yerr=summary['tvd_sd'].fillna(0.0),
                    marker='o', capsize=4, linewidth=1.5, color='steelblue', label='TVD')
        ref = summary['tvd_mean'].iloc[0] * np.sqrt(summary['N'].iloc[0] / summary['N'])
        ax.plot(summary['N'], ref, linestyle='--', color='gray', linewidth=1.0, label=r'$\propto N^{-1/2}$')
        ax.set_xscale('log')
        ax.set_yscale('log')
        ax.set_xlabel('Chain length N')
        ax.set_ylabel('Total variation distance')
        ax.set_title('(A) Distance to Exact Posterior')
        ax.legend(frameon=True, framealpha=0.9)
        ax.grid(True, alpha=0.3)

        ax = axes[1]
        ax.plot(summary['N'], summary['map_correct_pct'], marker='s', linewidth=1.5, color='seagreen')
        ax.set_xscale('log')
        ax.set_ylim(0, 105)
        ax.set_xlabel('Chain length N')
        ax.set_ylabel('MAP state correct (%)')
        ax.set_title('(B) MAP Recovery')
        ax.grid(True, alpha=0.3)

        plt.tight_layout()
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Sensitivity plot saved to {save_path}")
        plt.close()


def scale_invariance_check(
    model: DiscreteBayesModel,
    factor: float,
    *,
    target: str = "prior",
    n_iterations: int = 200000,
    thinning: int = 100,
    seed: int = 0,
    initial_state: Optional[str] = None,
    use_numba: bool = True,
) -> Dict:
    """Rescale the prior or likelihood and compare visitation histograms.

    Both chains use independent generators. Thinning is applied before the
    chi-square test so the retained steps are close to independent.

    Returns:
        Dictionary with both histograms and the chi-square comparison
    """
    if target == "prior":
        scaled = model.rescaled(prior_factor=factor)
    elif target == "likelihood":
        scaled = model.rescaled(likelihood_factor=factor)
    else:
        raise ConfigurationError(f"target must be 'prior' or 'likelihood', got {target!r}")

    initial = initial_state if initial_state is not None else model.states[0]
    seeds = np.random.SeedSequence(seed).spawn(2)
    base_chain = metropolis_chain(model, initial, n_iterations, np.random.default_rng(seeds[0]),
                                  use_numba=use_numba)
    scaled_chain = metropolis_chain(scaled, initial, n_iterations, np.random.default_rng(seeds[1]),
                                    chain_id=1, use_numba=use_numba)

    base_hist = base_chain.histogram(thinning=thinning)
    scaled_hist = scaled_chain.histogram(thinning=thinning)
    test = compare_histograms(base_hist, scaled_hist)

    return {
        'target': target,
        'factor': float(factor),
        'base_histogram': base_hist,
        'scaled_histogram': scaled_hist,
        'base_frequencies': base_chain.frequencies(thinning=thinning),
        'scaled_frequencies': scaled_chain.frequencies(thinning=thinning),
        **test,
    }
