"""
Shared statistical utilities.

This module contains the post-processing helpers used by the samplers,
the analyzers and the sensitivity studies:
- Visitation histograms over a labelled state space
- Gelman-Rubin convergence diagnostic
- Autocorrelation and effective sample size
"""

import numpy as np
import pandas as pd
from typing import List, Sequence


def visitation_histogram(indices: np.ndarray, states: Sequence[str]) -> pd.Series:
    """Count chain steps at each state.

    Args:
        indices: State index per chain step
        states: State labels, in index order

    Returns:
        Series of counts indexed by state label (states never visited get 0)
    """
    indices = np.asarray(indices, dtype=np.int64)
    counts = np.bincount(indices, minlength=len(states)) if indices.size else np.zeros(len(states), dtype=np.int64)
    return pd.Series(counts.astype(np.int64), index=list(states), name="count")


def normalized_histogram(indices: np.ndarray, states: Sequence[str]) -> pd.Series:
    """Visitation frequencies count / N (NaN for an empty chain)."""
    counts = visitation_histogram(indices, states)
    total = int(counts.sum())
    if total == 0:
        return pd.Series(np.nan, index=counts.index, name="frequency")
    return (counts / float(total)).rename("frequency")


def state_indicators(indices: np.ndarray, n_states: int) -> np.ndarray:
    """One-hot encode a chain of state indices, shape (n_steps, n_states)."""
    indices = np.asarray(indices, dtype=np.int64)
    out = np.zeros((indices.size, int(n_states)), dtype=float)
    out[np.arange(indices.size), indices] = 1.0
    return out


def gelman_rubin(chains: List[np.ndarray]) -> np.ndarray:
    """Gelman-Rubin R-hat for chains shaped (n_iter, d).

    Returns one R-hat per column. Columns with zero within-chain variance
    (e.g. an indicator for a state no chain ever visited) give NaN, as does
    a single chain.
    """
    chains = [np.asarray(c, dtype=float) for c in chains]
    chains = [c.reshape(-1, 1) if c.ndim == 1 else c for c in chains]
    if len(chains) < 2:
        return np.full((chains[0].shape[1],), np.nan, dtype=float)
    m = len(chains)
    n = min(c.shape[0] for c in chains)
    if n < 2:
        return np.full((chains[0].shape[1],), np.nan, dtype=float)
    xs = np.stack([c[:n] for c in chains], axis=0)  # (m,n,d)
    chain_means = xs.mean(axis=1)  # (m,d)
    grand_mean = chain_means.mean(axis=0)  # (d,)
    B = n * ((chain_means - grand_mean) ** 2).sum(axis=0) / (m - 1)
    W = xs.var(axis=1, ddof=1).mean(axis=0)
    var_hat = ((n - 1) / n) * W + (1 / n) * B
    with np.errstate(divide="ignore", invalid="ignore"):
        rhat = np.sqrt(var_hat / W)
    rhat[~np.isfinite(rhat)] = np.nan
    return rhat


def autocorrelation(x: np.ndarray, max_lag: int) -> np.ndarray:
    """Sample autocorrelation for lags 0..max_lag (NaN for a constant series)."""
    x = np.asarray(x, dtype=float)
    n = x.size
    max_lag = int(min(max_lag, n - 1)) if n > 0 else -1
    if max_lag < 0:
        return np.empty((0,), dtype=float)
    xc = x - x.mean()
    denom = float(np.dot(xc, xc))
    if denom == 0.0:
        return np.full(max_lag + 1, np.nan, dtype=float)
    return np.array([float(np.dot(xc[: n - lag], xc[lag:])) / denom for lag in range(max_lag + 1)])


def effective_sample_size(x: np.ndarray, max_lag: int = 1000) -> float:
    """Effective sample size using the initial positive sequence of autocorrelations."""
    x = np.asarray(x, dtype=float)
    n = x.size
    if n < 2:
        return float(n)
    rho = autocorrelation(x, max_lag)
    if not np.all(np.isfinite(rho)):
        return float("nan")
    tau = 1.0
    for lag in range(1, rho.size):
        if rho[lag] <= 0.0:
            break
        tau += 2.0 * rho[lag]
    return float(n / tau)
