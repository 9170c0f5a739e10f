"""
Data I/O for prior/likelihood tables and sampler output.

Tables are read from CSV into the same DiscreteBayesModel objects the
presets in model.py produce, so the sampler does not care where a model
came from.

Example CSV format:
    state,prior,likelihood
    Texas,0.7,0.10
    Montana,0.1,0.09
    California,0.15,0.01
    Virginia,0.05,0.0001
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Dict, Tuple, Union

from .errors import ConfigurationError
from .model import DiscreteBayesModel
from .types import Chain, ProbabilityTable


def load_model_csv(
    filepath: Union[str, Path],
    state_col: str = 'state',
    prior_col: str = 'prior',
    likelihood_col: str = 'likelihood',
) -> Tuple[DiscreteBayesModel, Dict]:
    """Load a prior/likelihood table from CSV.

    Args:
        filepath: Path to CSV file
        state_col: Column holding the state labels
        prior_col: Column holding prior masses
        likelihood_col: Column holding P(evidence | state)

    Returns:
        Tuple of (DiscreteBayesModel, summary dict)
    """
    df = pd.read_csv(filepath)

    missing = [c for c in (state_col, prior_col, likelihood_col) if c not in df.columns]
    if missing:
        raise ConfigurationError(f"{filepath}: missing columns {missing}, found {list(df.columns)}")
    if df[[prior_col, likelihood_col]].isna().any().any():
        bad = df.loc[df[[prior_col, likelihood_col]].isna().any(axis=1), state_col].tolist()
        raise ConfigurationError(f"{filepath}: missing prior/likelihood values for states {bad}")

    try:
        prior = df[prior_col].to_numpy(dtype=float)
        likelihood = df[likelihood_col].to_numpy(dtype=float)
    except ValueError as exc:
        raise ConfigurationError(f"{filepath}: prior/likelihood columns must be numeric ({exc})") from exc

    states = tuple(str(s) for s in df[state_col])
    model = DiscreteBayesModel(
        prior=ProbabilityTable(states=states, values=prior, kind="prior"),
        likelihood=ProbabilityTable(states=states, values=likelihood, kind="likelihood"),
    )

    prior_total = float(np.sum(model.prior.values))
    summary = {
        'n_states': model.n_states,
        'prior_total': prior_total,
        'prior_normalized': bool(np.isclose(prior_total, 1.0)),
        'n_zero_numerator': int(np.sum(model.log_numerators() == -np.inf)),
    }
    return model, summary


def save_chain_csv(chain: Chain, filepath: Union[str, Path]) -> Path:
    """Write one chain as step,state,proposal,accepted,prior,likelihood rows."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    chain.to_frame().to_csv(filepath, index=False)
    return filepath


def save_results_csv(results: Dict, filepath: Union[str, Path]) -> Path:
    """Write the per-state summary of DiscreteMetropolisSampler.run()."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame({
        'count': results['histogram'],
        'frequency': results['frequencies'],
        'exact_posterior': results['exact_posterior'],
        'rhat': results['rhat'],
        'ess': results['ess'],
    })
    df.index.name = 'state'
    df.to_csv(filepath)
    return filepath
