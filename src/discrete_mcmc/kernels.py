"""Numba-compiled Metropolis walk over a discrete state space.

The kernel consumes pre-drawn proposal indices and log-uniforms, so it never
touches a random number generator and gives exactly the same chain as the
pure-Python walk in `samplers.py` for the same draws.
"""

from __future__ import annotations

import numpy as np

try:
    from numba import config as numba_config
    from numba import njit
except Exception as exc:  # pragma: no cover
    raise RuntimeError(
        "Numba is required for the compiled Metropolis walk. "
        "Install numba to use discrete_mcmc."
    ) from exc


NUMBA_JIT_ENABLED = not bool(getattr(numba_config, "DISABLE_JIT", 0))

# Return value of metropolis_walk when the whole chain was filled.
WALK_OK = -1
@njit(cache=True)
def metropolis_walk(
    log_numerators: np.ndarray,
    start: int,
    proposals: np.ndarray,
    log_uniforms: np.ndarray,
    out_indices: np.ndarray,
    out_accepted: np.ndarray,
) -> int:
    """Fill out_indices / out_accepted in place.

    log_numerators[k] is log(prior) + log(likelihood) of state k, -inf for a
    zero numerator. proposals[i-1] and log_uniforms[i-1] are the draws for
    step i (i >= 1).

    Returns WALK_OK, or the step at which a 0/0 ratio was hit; steps before
    it are filled.
    """
    n = out_indices.size
    current = start
    out_indices[0] = start
    out_accepted[0] = False
    for i in range(1, n):
        prop = proposals[i - 1]
        log_old = log_numerators[current]
        log_new = log_numerators[prop]
        accept = False
        if log_new > log_old:
            accept = True
        elif log_old == -np.inf:
            # log_new <= log_old == -inf
            return i
        elif log_uniforms[i - 1] < log_new - log_old:
            accept = True
        if accept:
            current = prop
        out_indices[i] = current
        out_accepted[i] = accept
    return WALK_OK
