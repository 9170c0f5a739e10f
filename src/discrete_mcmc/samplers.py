"""
Metropolis sampler over a finite, labelled state space.

The target is the unnormalized posterior prior[s] * likelihood[s]; the
normalizing sum is never computed. Proposals are drawn uniformly from the
whole state space, independent of the current state (an independence-chain
proposal). A uniform proposal is symmetric, so the Metropolis-Hastings ratio
reduces to the plain Metropolis rule:

    accept if num_new > num_old, else accept with probability num_new / num_old

The comparison runs on log(prior) + log(likelihood), so tiny positive
values never underflow to a zero numerator. A 0/0 ratio (both numerators
exactly zero) raises DegenerateRatioError.

The walk itself keeps no burn-in or thinning; `DiscreteMetropolisSampler.run`
applies them when pooling chains.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import ConfigurationError, DegenerateRatioError
from .kernels import WALK_OK, metropolis_walk
from .model import DiscreteBayesModel
from .types import Chain
from .utils import (
    effective_sample_size,
    gelman_rubin,
    normalized_histogram,
    state_indicators,
    visitation_histogram,
)


def _is_integer(x) -> bool:
    return isinstance(x, (int, np.integer)) and not isinstance(x, (bool, np.bool_))


@dataclass
class MCMCConfig:
    """Run settings for DiscreteMetropolisSampler.

    Attributes:
        n_iterations: Chain length N (step 1 is the initial state)
        burn_in: Steps dropped from the start of each chain when pooling
        thinning: Keep every k-th retained step when pooling
        n_chains: Number of independent chains
        seed: Seed for numpy.random.SeedSequence; each chain gets a spawned child
        initial_state: Starting state; defaults to the first state of the model
        use_numba: Run the compiled walk (False: pure-Python walk, same chain)
        log_every: Progress line every k iterations (pure-Python walk only)
        verbose: Print chain start/finish lines
    """
    n_iterations: int = 50000
    burn_in: int = 0
    thinning: int = 1
    n_chains: int = 4
    seed: Optional[int] = None
    initial_state: Optional[str] = None
    use_numba: bool = True
    log_every: int = 0
    verbose: bool = True

    def __post_init__(self):
        validate_n_iterations(self.n_iterations)
        if not _is_integer(self.burn_in) or self.burn_in < 0:
            raise ConfigurationError(f"burn_in must be an integer >= 0, got {self.burn_in!r}")
        if self.burn_in >= self.n_iterations:
            raise ConfigurationError(
                f"burn_in ({self.burn_in}) must be smaller than n_iterations ({self.n_iterations})"
            )
        if not _is_integer(self.thinning) or self.thinning < 1:
            raise ConfigurationError(f"thinning must be an integer >= 1, got {self.thinning!r}")
        if not _is_integer(self.n_chains) or self.n_chains < 1:
            raise ConfigurationError(f"n_chains must be an integer >= 1, got {self.n_chains!r}")
        if not _is_integer(self.log_every) or self.log_every < 0:
            raise ConfigurationError(f"log_every must be an integer >= 0, got {self.log_every!r}")


def validate_n_iterations(n_iterations) -> int:
    if not _is_integer(n_iterations) or n_iterations < 1:
        raise ConfigurationError(f"n_iterations must be an integer >= 1, got {n_iterations!r}")
    return int(n_iterations)


def as_generator(rng):
    """Return a random source exposing integers()/random().

    Accepts a numpy Generator (or any object with those two methods), an int
    seed, or None for fresh OS entropy. The global numpy state is never used.
    """
    if rng is None or _is_integer(rng):
        return np.random.default_rng(rng)
    if hasattr(rng, "integers") and hasattr(rng, "random"):
        return rng
    raise TypeError(f"rng must be a numpy Generator, an int seed or None, got {type(rng).__name__}")


def draw_proposals(rng, n_states: int, n_iterations: int) -> Tuple[np.ndarray, np.ndarray]:
    """Draw the N-1 uniform proposal indices, then the N-1 acceptance uniforms."""
    n_steps = int(n_iterations) - 1
    proposals = np.asarray(rng.integers(0, n_states, size=n_steps), dtype=np.int64).reshape(-1)
    uniforms = np.asarray(rng.random(n_steps), dtype=np.float64).reshape(-1)
    if proposals.size != n_steps or uniforms.size != n_steps:
        raise ConfigurationError(
            f"random source returned {proposals.size} proposals and {uniforms.size} uniforms, "
            f"expected {n_steps} of each"
        )
    if n_steps and (proposals.min() < 0 or proposals.max() >= n_states):
        raise ConfigurationError(f"random source returned proposal indices outside [0, {n_states})")
    return proposals, uniforms


def walk_python(
    log_numerators: np.ndarray,
    start: int,
    proposals: np.ndarray,
    log_uniforms: np.ndarray,
    out_indices: np.ndarray,
    out_accepted: np.ndarray,
    *,
    log_every: int = 0,
    states: Optional[Tuple[str, ...]] = None,
) -> int:
    """Pure-Python twin of kernels.metropolis_walk (same draws, same chain)."""
    log_num = log_numerators.tolist()
    props = proposals.tolist()
    log_us = log_uniforms.tolist()
    n = int(out_indices.size)

    current = int(start)
    out_indices[0] = current
    out_accepted[0] = False
    n_accept = 0
    for i in range(1, n):
        prop = props[i - 1]
        log_old = log_num[current]
        log_new = log_num[prop]
        if log_new > log_old:
            accept = True
        elif log_old == -np.inf:
            return i
        else:
            accept = log_us[i - 1] < log_new - log_old
        if accept:
            current = prop
            n_accept += 1
        out_indices[i] = current
        out_accepted[i] = accept

        if log_every > 0 and (i + 1) % log_every == 0:
            label = states[current] if states is not None else current
            print(f"  Iter {i+1}/{n}: state={label}, acc={n_accept / float(i):.3f}", flush=True)
    return WALK_OK


def metropolis_chain(
    model: DiscreteBayesModel,
    initial_state: str,
    n_iterations: int,
    rng=None,
    *,
    chain_id: int = 0,
    use_numba: bool = True,
    log_every: int = 0,
) -> Chain:
    """Run one Metropolis walk of exactly n_iterations steps.

    Args:
        model: States, prior and likelihood (validated at construction)
        initial_state: State of step 1
        n_iterations: Chain length N >= 1
        rng: numpy Generator, int seed, or None
        chain_id: Stored on the returned Chain
        use_numba: Compiled walk (True) or pure-Python walk (False)
        log_every: Progress line every k steps (pure-Python walk only)

    Returns:
        Chain of length n_iterations

    Raises:
        ConfigurationError: before sampling, for an invalid chain length or
            an initial state outside the state space
        DegenerateRatioError: at the first step with a 0/0 acceptance ratio;
            its ``partial_chain`` holds the steps before it
    """
    n = validate_n_iterations(n_iterations)
    start = model.index_of(initial_state)
    log_numerators = np.ascontiguousarray(model.log_numerators(), dtype=np.float64)

    generator = as_generator(rng)
    proposals, uniforms = draw_proposals(generator, model.n_states, n)
    with np.errstate(divide="ignore"):
        log_uniforms = np.log(uniforms)

    out_indices = np.empty(n, dtype=np.int64)
    out_accepted = np.zeros(n, dtype=np.bool_)
    if use_numba:
        status = int(metropolis_walk(log_numerators, np.int64(start), proposals, log_uniforms, out_indices, out_accepted))
    else:
        status = walk_python(
            log_numerators, start, proposals, log_uniforms, out_indices, out_accepted,
            log_every=int(log_every), states=model.states,
        )

    n_filled = n if status == WALK_OK else status
    all_proposals = np.concatenate(([start], proposals)).astype(np.int64)
    indices = out_indices[:n_filled].copy()
    chain = Chain(
        states=model.states,
        indices=indices,
        proposals=all_proposals[:n_filled].copy(),
        accepted=out_accepted[:n_filled].copy(),
        prior_values=model.prior.values[indices],
        likelihood_values=model.likelihood.values[indices],
        chain_id=int(chain_id),
    )

    if status != WALK_OK:
        raise DegenerateRatioError(
            step=status,
            state=model.states[int(out_indices[status - 1])],
            proposal=model.states[int(proposals[status - 1])],
            partial_chain=chain,
        )
    return chain


class DiscreteMetropolisSampler:
    """Multi-chain Metropolis sampler for a DiscreteBayesModel.

    Each chain owns a Generator spawned from SeedSequence(config.seed); chains
    share only the read-only model.
    """

    def __init__(self, model: DiscreteBayesModel, config: Optional[MCMCConfig] = None):
        self.model = model
        self.config = config if config is not None else MCMCConfig()

        self.initial_state = (
            self.config.initial_state
            if self.config.initial_state is not None
            else model.states[0]
        )
        self.start = model.index_of(self.initial_state)

        if self.config.verbose:
            print(
                f"Metropolis sampler over {model.n_states} states {list(model.states)}; "
                f"initial state {self.initial_state!r}; "
                f"{self.config.n_chains} chain(s) x {self.config.n_iterations} iterations "
                f"(burn-in {self.config.burn_in}, thinning {self.config.thinning})"
            )

    def chain_generators(self) -> List[np.random.Generator]:
        children = np.random.SeedSequence(self.config.seed).spawn(int(self.config.n_chains))
        return [np.random.default_rng(child) for child in children]

    def run_chain(self, chain_id: int = 0, rng=None) -> Chain:
        """Run a single chain.

        Without ``rng`` the chain uses the generator spawned for ``chain_id``,
        so run_chain(k) reproduces chain k of run() for a fixed seed.
        """
        if rng is None:
            if not 0 <= int(chain_id) < int(self.config.n_chains):
                raise ConfigurationError(
                    f"chain_id must be in [0, {self.config.n_chains}), got {chain_id!r}"
                )
            rng = self.chain_generators()[int(chain_id)]

        if self.config.verbose:
            print(f"\nRunning chain {chain_id}...", flush=True)

        chain = metropolis_chain(
            self.model,
            self.initial_state,
            self.config.n_iterations,
            rng,
            chain_id=chain_id,
            use_numba=self.config.use_numba,
            log_every=self.config.log_every if self.config.verbose else 0,
        )

        if self.config.verbose:
            print(f"Chain {chain_id} complete! (acceptance rate {chain.acceptance_rate:.3f})", flush=True)
        return chain

    def run(self) -> Dict:
        """Run all chains and pool them after burn-in and thinning.

        Returns:
            Dictionary with pooled frequencies, per-chain frequencies,
            per-state R-hat and effective sample size, and the raw chains
        """
        generators = self.chain_generators()
        all_chains = [self.run_chain(chain_id, gen) for chain_id, gen in enumerate(generators)]

        burn = int(self.config.burn_in)
        thin = int(self.config.thinning)
        states = self.model.states
        k = self.model.n_states

        pooled = np.concatenate([c.retained_indices(burn, thin) for c in all_chains])
        histogram = visitation_histogram(pooled, states)
        frequencies = normalized_histogram(pooled, states)

        chain_frequencies = pd.DataFrame(
            [c.frequencies(burn, thin) for c in all_chains],
            index=pd.RangeIndex(len(all_chains), name="chain"),
        )

        indicators = [state_indicators(c.indices[burn:], k) for c in all_chains]
        rhat = pd.Series(gelman_rubin(indicators), index=list(states), name="rhat")

        max_lag = min(1000, max(1, self.config.n_iterations - burn - 1))
        ess = pd.Series(
            [
                float(np.sum([effective_sample_size(ind[:, j], max_lag=max_lag) for ind in indicators]))
                for j in range(k)
            ],
            index=list(states),
            name="ess",
        )

        # Every chain reached this point, so some numerator is positive.
        exact = self.model.exact_posterior()

        return {
            'states': list(states),
            'initial_state': self.initial_state,
            'frequencies': frequencies,
            'histogram': histogram,
            'exact_posterior': exact,
            'chain_frequencies': chain_frequencies,
            'rhat': rhat,
            'ess': ess,
            'acceptance_rate': float(np.mean([c.acceptance_rate for c in all_chains])),
            'n_samples': int(pooled.size),
            'all_chains': all_chains,
            'config': self.config,
        }
