"""
Categorical Bayesian models for the sampler.

This module contains:
- DiscreteBayesModel: a finite state space with a prior and a likelihood
- The cowboy-hat example (which state does a hat-wearer come from?)

The closed-form posterior is available for checking sampler output; the
sampler itself only ever uses the unnormalized numerators.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import ConfigurationError
from .types import ProbabilityTable


# =============================================================================
# Cowboy-hat example
# =============================================================================

COWBOY_HAT_PRIOR: Dict[str, float] = {
    "Texas": 0.7,
    "Montana": 0.1,
    "California": 0.15,
    "Virginia": 0.05,
}

# P(wears a cowboy hat | from state)
COWBOY_HAT_LIKELIHOOD: Dict[str, float] = {
    "Texas": 0.10,
    "Montana": 0.09,
    "California": 0.01,
    "Virginia": 0.0001,
}


@dataclass(frozen=True, eq=False)
class DiscreteBayesModel:
    """Prior and likelihood over a shared, ordered, finite state space.

    Attributes:
        prior: Non-negative prior masses (need not sum to 1)
        likelihood: P(evidence | state), each in [0, 1]
    """

    prior: ProbabilityTable
    likelihood: ProbabilityTable

    def __post_init__(self):
        if self.prior.kind != "prior":
            raise ConfigurationError(f"prior table has kind {self.prior.kind!r}")
        if self.likelihood.kind != "likelihood":
            raise ConfigurationError(f"likelihood table has kind {self.likelihood.kind!r}")
        if len(self.prior) < 2:
            raise ConfigurationError(
                f"state space needs at least 2 states, got {list(self.prior.states)!r}"
            )
        if self.likelihood.states != self.prior.states:
            # Same states in a different order are fine; align to the prior.
            object.__setattr__(self, "likelihood", self.likelihood.reordered(self.prior.states))

    @classmethod
    def from_dicts(
        cls,
        prior: Mapping[str, float],
        likelihood: Mapping[str, float],
    ) -> "DiscreteBayesModel":
        return cls(
            prior=ProbabilityTable.prior(prior),
            likelihood=ProbabilityTable.likelihood(likelihood),
        )

    @property
    def states(self) -> Tuple[str, ...]:
        return self.prior.states

    @property
    def n_states(self) -> int:
        return len(self.states)

    def index_of(self, state: str) -> int:
        try:
            return self.states.index(state)
        except ValueError:
            raise ConfigurationError(
                f"state {state!r} is not in the state space {list(self.states)!r}"
            ) from None

    def numerators(self) -> np.ndarray:
        """prior[s] * likelihood[s] for every state, in state order."""
        return self.prior.values * self.likelihood.values

    def log_numerators(self) -> np.ndarray:
        """log(prior[s]) + log(likelihood[s]); -inf exactly where a value is 0.

        Unlike numerators(), tiny positive values never collapse to zero.
        """
        with np.errstate(divide="ignore"):
            return np.log(self.prior.values) + np.log(self.likelihood.values)

    def exact_posterior(self) -> pd.Series:
        """Closed-form posterior, prior*likelihood / sum(prior*likelihood)."""
        log_num = self.log_numerators()
        top = float(np.max(log_num))
        if top == -np.inf:
            raise ConfigurationError("every state has prior * likelihood == 0; posterior is undefined")
        weights = np.exp(log_num - top)
        return pd.Series(weights / weights.sum(), index=list(self.states), name="posterior")

    def with_likelihood(self, updates: Mapping[str, float]) -> "DiscreteBayesModel":
        """Model with some likelihood values replaced (updated evidence)."""
        return DiscreteBayesModel(prior=self.prior, likelihood=self.likelihood.replace(updates))

    def with_prior(self, updates: Mapping[str, float]) -> "DiscreteBayesModel":
        return DiscreteBayesModel(prior=self.prior.replace(updates), likelihood=self.likelihood)

    def rescaled(self, prior_factor: float = 1.0, likelihood_factor: float = 1.0) -> "DiscreteBayesModel":
        """Multiply every prior and/or likelihood value by a positive constant."""
        return DiscreteBayesModel(
            prior=self.prior.scaled(prior_factor),
            likelihood=self.likelihood.scaled(likelihood_factor),
        )

    def to_frame(self) -> pd.DataFrame:
        num = self.numerators()
        return pd.DataFrame(
            {
                "prior": self.prior.values,
                "likelihood": self.likelihood.values,
                "numerator": num,
            },
            index=pd.Index(list(self.states), name="state"),
        )

    def __repr__(self):
        return f"DiscreteBayesModel(states={list(self.states)}, prior={self.prior.as_dict()}, likelihood={self.likelihood.as_dict()})"


def cowboy_hat_model(
    all_montanans_wear_hats: bool = False,
    *,
    prior: Optional[Mapping[str, float]] = None,
    likelihood: Optional[Mapping[str, float]] = None,
) -> DiscreteBayesModel:
    """Build the cowboy-hat model.

    Args:
        all_montanans_wear_hats: If True, P(hat | Montana) becomes 1.0
        prior: Override for COWBOY_HAT_PRIOR
        likelihood: Override for COWBOY_HAT_LIKELIHOOD

    Returns:
        DiscreteBayesModel over Texas, Montana, California, Virginia
    """
    model = DiscreteBayesModel.from_dicts(
        prior if prior is not None else COWBOY_HAT_PRIOR,
        likelihood if likelihood is not None else COWBOY_HAT_LIKELIHOOD,
    )
    if all_montanans_wear_hats:
        model = model.with_likelihood({"Montana": 1.0})
    return model
