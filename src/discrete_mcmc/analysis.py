"""
Results analysis and metrics computation.

This module contains helpers for comparing sampled posterior frequencies
with the closed-form posterior, and for testing whether two visitation
histograms come from the same distribution.
"""

import numpy as np
import pandas as pd
from scipy.stats import chi2_contingency
from typing import Dict


def compute_state_metrics(frequencies: pd.Series, exact: pd.Series) -> Dict:
    """Compare estimated state frequencies with the exact posterior.

    Args:
        frequencies: Estimated posterior (visit count / N), indexed by state
        exact: Closed-form posterior, indexed by state

    Returns:
        Dictionary with a per-state table, max absolute error, total variation
        distance and the MAP state under each distribution
    """
    exact = exact.reindex(frequencies.index)
    abs_error = (frequencies - exact).abs()
    table = pd.DataFrame({
        'estimate': frequencies.astype(float),
        'exact': exact.astype(float),
        'abs_error': abs_error.astype(float),
    })
    return {
        'table': table,
        'max_abs_error': float(abs_error.max()),
        'tvd': float(0.5 * abs_error.sum()),
        'map_estimate': str(frequencies.idxmax()),
        'map_exact': str(exact.idxmax()),
    }


def compare_histograms(counts_a: pd.Series, counts_b: pd.Series) -> Dict:
    """Chi-square test of homogeneity between two visitation histograms.

    States with zero visits in both histograms are dropped first (they carry
    no information and would give zero expected counts).

    Returns:
        Dictionary with statistic, p_value, dof and the states compared
    """
    counts_b = counts_b.reindex(counts_a.index, fill_value=0)
    table = np.vstack([counts_a.to_numpy(dtype=float), counts_b.to_numpy(dtype=float)])
    keep = table.sum(axis=0) > 0
    states = [s for s, k in zip(counts_a.index, keep) if k]
    if int(np.sum(keep)) < 2:
        # A single visited state: the histograms are trivially identical.
        return {'statistic': 0.0, 'p_value': 1.0, 'dof': 0, 'states': states}

    statistic, p_value, dof, _ = chi2_contingency(table[:, keep], correction=False)
    return {
        'statistic': float(statistic),
        'p_value': float(p_value),
        'dof': int(dof),
        'states': states,
    }


class PosteriorResultsAnalyzer:
    """Analyze DiscreteMetropolisSampler results."""

    def __init__(self, mcmc_results: Dict):
        """Initialize analyzer.

        Args:
            mcmc_results: Output from DiscreteMetropolisSampler.run()
        """
        self.results = mcmc_results

    def compute_metrics(self) -> Dict:
        metrics = compute_state_metrics(self.results['frequencies'], self.results['exact_posterior'])
        rhat = self.results['rhat']
        finite_rhat = rhat[np.isfinite(rhat)]
        metrics.update({
            'rhat': rhat,
            'rhat_max': float(finite_rhat.max()) if finite_rhat.size else np.nan,
            'ess': self.results['ess'],
            'acceptance_rate': self.results['acceptance_rate'],
            'n_samples': self.results['n_samples'],
            'chain_spread': self.results['chain_frequencies'].std(axis=0, ddof=0),
        })
        return metrics

    def print_summary(self, metrics: Dict):
        """Print formatted summary."""
        print("\n" + "="*60)
        print("DISCRETE METROPOLIS: POSTERIOR ESTIMATES")
        print("="*60)
        print(f"Pooled samples:           {metrics['n_samples']}")
        print(f"Acceptance rate:          {metrics['acceptance_rate']:.3f}")
        print()
        print(f"  {'state':<14s}{'estimate':>10s}{'exact':>10s}{'|error|':>10s}{'R-hat':>9s}{'ESS':>10s}")
        for state, row in metrics['table'].iterrows():
            rhat = metrics['rhat'].get(state, np.nan)
            ess = metrics['ess'].get(state, np.nan)
            print(
                f"  {str(state):<14s}{row['estimate']:>10.4f}{row['exact']:>10.4f}"
                f"{row['abs_error']:>10.4f}{rhat:>9.4f}{ess:>10.0f}"
            )
        print()
        print(f"Max |error|:              {metrics['max_abs_error']:.4f}")
        print(f"Total variation distance: {metrics['tvd']:.4f}")
        map_ok = metrics['map_estimate'] == metrics['map_exact']
        print(f"MAP state:                {metrics['map_estimate']} {'OK' if map_ok else 'WARNING (exact: ' + metrics['map_exact'] + ')'}")
        rhat_max = metrics['rhat_max']
        if np.isfinite(rhat_max):
            print(f"Max R-hat:                {rhat_max:.4f} {'OK' if rhat_max < 1.1 else 'WARNING'}")
        else:
            print("Max R-hat:                n/a (needs >= 2 chains)")
        print("="*60 + "\n")
