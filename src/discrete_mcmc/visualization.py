"""
Diagnostic plots for discrete Metropolis runs.
"""

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from typing import Dict


class PosteriorVisualizer:
    """Create diagnostic plots for DiscreteMetropolisSampler results."""

    @staticmethod
    def plot_diagnostics(results: Dict, save_path: str, max_trace: int = 2000):
        """Create diagnostic plots.

        Args:
            results: Output from DiscreteMetropolisSampler.run()
            save_path: Path to save the figure
            max_trace: Number of leading steps shown in the trace panel
        """
        states = results['states']
        chains = results['all_chains']
        frequencies = results['frequencies']
        exact = results['exact_posterior']
        burn = int(results['config'].burn_in)

        fig = plt.figure(figsize=(14, 7))
        gs = fig.add_gridspec(2, 2, hspace=0.35, wspace=0.25)

        # 1. Trace of the state index (all chains)
        ax = fig.add_subplot(gs[0, :])
        colors = sns.color_palette("husl", len(chains))
        for i, chain in enumerate(chains):
            ax.step(np.arange(min(len(chain), max_trace)), chain.indices[:max_trace],
                    where='post', alpha=0.6, linewidth=0.8, color=colors[i],
                    label=f'Chain {i+1}')
        if burn > 0:
            ax.axvline(burn, color='black', linestyle=':', linewidth=1.0, label='Burn-in')
        ax.set_yticks(range(len(states)))
        ax.set_yticklabels(states)
        ax.set_xlabel('Iteration')
        ax.set_title(f'(A) Trace Plot (first {max_trace} steps)')
        ax.legend(loc='upper right', frameon=True, framealpha=0.9)
        ax.grid(True, alpha=0.3)

        # 2. Estimated vs exact posterior
        ax = fig.add_subplot(gs[1, 0])
        x = np.arange(len(states))
        width = 0.38
        ax.bar(x - width / 2, frequencies.to_numpy(), width, color='steelblue',
               edgecolor='black', linewidth=0.5, label='MCMC frequency')
        ax.bar(x + width / 2, exact.reindex(states).to_numpy(), width, color='lightcoral',
               edgecolor='black', linewidth=0.5, label='Exact posterior')
        ax.set_xticks(x)
        ax.set_xticklabels(states)
        ax.set_ylabel('Probability')
        ax.set_title('(B) Posterior: Estimated vs Exact')
        ax.legend(frameon=True, framealpha=0.9)
        ax.grid(True, alpha=0.3, axis='y')

        # 3. Running frequency of the exact MAP state
        ax = fig.add_subplot(gs[1, 1])
        target = exact.idxmax() if np.all(np.isfinite(exact.to_numpy())) else frequencies.idxmax()
        k = states.index(target)
        for i, chain in enumerate(chains):
            hits = (chain.indices == k).astype(float)
            steps = np.arange(1, hits.size + 1)
            ax.plot(steps, np.cumsum(hits) / steps, linewidth=1.2, alpha=0.8, color=colors[i])
        if np.isfinite(exact.get(target, np.nan)):
            ax.axhline(float(exact[target]), color='red', linestyle='--', linewidth=1.5,
                       label=f'Exact P({target})')
            ax.legend(frameon=True, framealpha=0.9)
        ax.set_xscale('log')
        ax.set_xlabel('Iteration')
        ax.set_ylabel('Running frequency')
        ax.set_title(f'(C) Convergence: Running Frequency of {target}')
        ax.grid(True, alpha=0.3)

        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Diagnostics saved to {save_path}")
        plt.close()
