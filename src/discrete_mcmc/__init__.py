"""
Discrete MCMC: Metropolis Sampling over Categorical States

Tools for estimating the posterior of a finite, labelled state space
(e.g. "which state does a cowboy-hat wearer come from?") with a Metropolis
random walk that only ever uses prior * likelihood, never the normalizing
sum.

Modules live under src/discrete_mcmc/:
- types.py: Validated probability tables and the Chain record
- model.py: Prior/likelihood models and the cowboy-hat example
- samplers.py: Metropolis sampler implementation
- kernels.py: Numba-compiled walk
- analysis.py: Posterior metrics and histogram comparison
- sensitivity.py: Chain-length and scale-invariance studies
- visualization.py: Diagnostic plots
- data_io.py: CSV loading and export
- cli.py: Command-line entry points
- config.py: Configuration and path constants
- utils.py: Statistical utilities
- errors.py: Exception types
"""

from .errors import ConfigurationError, DegenerateRatioError

from .types import ProbabilityTable, Chain

from .model import (
    DiscreteBayesModel,
    cowboy_hat_model,
    COWBOY_HAT_PRIOR,
    COWBOY_HAT_LIKELIHOOD,
)

from .samplers import MCMCConfig, DiscreteMetropolisSampler, metropolis_chain

from .analysis import PosteriorResultsAnalyzer, compute_state_metrics, compare_histograms

from .sensitivity import ChainLengthSensitivity, scale_invariance_check

from .visualization import PosteriorVisualizer

from .data_io import load_model_csv, save_chain_csv, save_results_csv

from .config import configure_plotting

__version__ = "0.1.0"

__all__ = [
    # Errors
    "ConfigurationError",
    "DegenerateRatioError",
    # Data classes
    "ProbabilityTable",
    "Chain",
    "DiscreteBayesModel",
    "cowboy_hat_model",
    "COWBOY_HAT_PRIOR",
    "COWBOY_HAT_LIKELIHOOD",
    # Samplers
    "MCMCConfig",
    "DiscreteMetropolisSampler",
    "metropolis_chain",
    # Analysis
    "PosteriorResultsAnalyzer",
    "compute_state_metrics",
    "compare_histograms",
    # Sensitivity
    "ChainLengthSensitivity",
    "scale_invariance_check",
    # Visualization
    "PosteriorVisualizer",
    # I/O
    "load_model_csv",
    "save_chain_csv",
    "save_results_csv",
    # Config
    "configure_plotting",
]
