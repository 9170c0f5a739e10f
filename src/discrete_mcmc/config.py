"""
Global configuration for plotting, paths, and constants.
"""

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path


def configure_plotting():
    """Set up publication-quality plotting defaults.

    Call this function at the start of any script that generates plots.
    """
    sns.set_style("whitegrid")
    sns.set_context("paper", font_scale=1.2)
    plt.rcParams.update({
        'figure.dpi': 100,
        'savefig.dpi': 300,
        'axes.labelsize': 11,
        'axes.titlesize': 12,
        'xtick.labelsize': 10,
        'ytick.labelsize': 10,
        'legend.fontsize': 10,
        'figure.titlesize': 13,
    })


# Likelihood values up to 1 + LIKELIHOOD_ATOL (rounding in CSV inputs) are stored as 1.0.
LIKELIHOOD_ATOL = 1e-12

# Path constants
REPO_ROOT = Path(__file__).resolve().parents[2]
OUTPUTS_DIR = REPO_ROOT / "outputs"
BASELINE_DIR = OUTPUTS_DIR / "baseline"
SENSITIVITY_DIR = OUTPUTS_DIR / "sensitivity"
