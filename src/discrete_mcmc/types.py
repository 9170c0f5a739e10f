from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import LIKELIHOOD_ATOL
from .errors import ConfigurationError
from .utils import normalized_histogram, visitation_histogram


TABLE_KINDS = ("prior", "likelihood")


def _validate_table_values(states: Sequence[str], values: np.ndarray, kind: str) -> None:
    for state, v in zip(states, values):
        if not np.isfinite(v) or v < 0.0:
            raise ConfigurationError(
                f"{kind} value for state {state!r} must be finite and >= 0, got {float(v)!r}"
            )
        if kind == "likelihood" and v > 1.0 + LIKELIHOOD_ATOL:
            raise ConfigurationError(
                f"likelihood value for state {state!r} must be in [0, 1], got {float(v)!r}"
            )


@dataclass(frozen=True, eq=False)
class ProbabilityTable:
    """Validated mapping state -> value for a prior or a likelihood.

    Priors are non-negative (not necessarily normalized); likelihoods are
    probabilities in [0, 1]. Values are stored as a read-only float64 array in
    the order of ``states``.
    """

    states: Tuple[str, ...]
    values: np.ndarray
    kind: str = "prior"

    def __post_init__(self):
        if self.kind not in TABLE_KINDS:
            raise ConfigurationError(f"kind must be 'prior' or 'likelihood', got {self.kind!r}")

        states = tuple(self.states)
        if len(set(states)) != len(states):
            raise ConfigurationError(f"state labels must be unique, got {list(states)!r}")

        try:
            values = np.array(self.values, dtype=np.float64).reshape(-1)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"{self.kind} values must be numeric, got {self.values!r}") from exc
        if values.size != len(states):
            raise ConfigurationError(
                f"{self.kind} has {values.size} values for {len(states)} states"
            )
        _validate_table_values(states, values, self.kind)
        if self.kind == "likelihood":
            values = np.minimum(values, 1.0)
        values.setflags(write=False)

        object.__setattr__(self, "states", states)
        object.__setattr__(self, "values", values)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, float], kind: str) -> "ProbabilityTable":
        states = tuple(mapping.keys())
        try:
            values = [float(mapping[s]) for s in states]
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"{kind} values must be numeric, got {dict(mapping)!r}") from exc
        return cls(states=states, values=np.asarray(values, dtype=np.float64), kind=kind)

    @classmethod
    def prior(cls, mapping: Mapping[str, float]) -> "ProbabilityTable":
        return cls.from_mapping(mapping, "prior")

    @classmethod
    def likelihood(cls, mapping: Mapping[str, float]) -> "ProbabilityTable":
        return cls.from_mapping(mapping, "likelihood")

    def __len__(self) -> int:
        return len(self.states)

    def __iter__(self) -> Iterator[str]:
        return iter(self.states)

    def __contains__(self, state) -> bool:
        return state in self.states

    def __getitem__(self, state: str) -> float:
        try:
            return float(self.values[self.states.index(state)])
        except ValueError:
            raise KeyError(state) from None

    def __repr__(self):
        body = ", ".join(f"{s!r}: {float(v):g}" for s, v in zip(self.states, self.values))
        return f"ProbabilityTable({self.kind}, {{{body}}})"

    def as_dict(self) -> Dict[str, float]:
        return {s: float(v) for s, v in zip(self.states, self.values)}

    def reordered(self, states: Sequence[str]) -> "ProbabilityTable":
        """Return the same table with values laid out in the order of ``states``."""
        if set(states) != set(self.states) or len(states) != len(self.states):
            raise ConfigurationError(
                f"{self.kind} states {list(self.states)!r} do not match {list(states)!r}"
            )
        return ProbabilityTable(
            states=tuple(states),
            values=np.array([self[s] for s in states], dtype=np.float64),
            kind=self.kind,
        )

    def scaled(self, factor: float) -> "ProbabilityTable":
        """Multiply every value by ``factor`` (> 0).

        A scaled likelihood is re-validated, so the factor must keep every
        value inside [0, 1]. Positive values must stay positive.
        """
        factor = float(factor)
        if not np.isfinite(factor) or factor <= 0.0:
            raise ConfigurationError(f"scale factor must be finite and > 0, got {factor!r}")
        values = self.values * factor
        lost = [s for s, old, new in zip(self.states, self.values, values) if old > 0.0 and new == 0.0]
        if lost:
            raise ConfigurationError(
                f"scaling {self.kind} by {factor!r} underflows states {lost!r} to 0"
            )
        return ProbabilityTable(states=self.states, values=values, kind=self.kind)

    def replace(self, updates: Mapping[str, float]) -> "ProbabilityTable":
        """Return a copy with some values replaced (e.g. updated evidence)."""
        unknown = [s for s in updates if s not in self.states]
        if unknown:
            raise ConfigurationError(f"unknown states in {self.kind} update: {unknown!r}")
        values = self.values.copy()
        for s, v in updates.items():
            values[self.states.index(s)] = v
        return ProbabilityTable(states=self.states, values=values, kind=self.kind)


@dataclass(frozen=True, eq=False)
class Chain:
    """Output of one Metropolis walk.

    Step ``i`` is the triple ``(states[indices[i]], prior_values[i],
    likelihood_values[i])``. ``proposals[i]`` is the state index drawn at step
    ``i`` and ``accepted[i]`` whether it was taken; step 0 holds the initial
    state and is never marked accepted.
    """

    states: Tuple[str, ...]
    indices: np.ndarray
    proposals: np.ndarray
    accepted: np.ndarray
    prior_values: np.ndarray
    likelihood_values: np.ndarray
    chain_id: int = 0

    def __post_init__(self):
        for name in ("indices", "proposals", "accepted", "prior_values", "likelihood_values"):
            arr = np.array(getattr(self, name), copy=True)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    def __len__(self) -> int:
        return int(self.indices.size)

    def __getitem__(self, i: int) -> Tuple[str, float, float]:
        return (
            self.states[int(self.indices[i])],
            float(self.prior_values[i]),
            float(self.likelihood_values[i]),
        )

    def __iter__(self) -> Iterator[Tuple[str, float, float]]:
        for i in range(len(self)):
            yield self[i]

    def labels(self) -> List[str]:
        return [self.states[int(k)] for k in self.indices]

    @property
    def n_states(self) -> int:
        return len(self.states)

    @property
    def acceptance_rate(self) -> float:
        if self.accepted.size <= 1:
            return float("nan")
        return float(np.mean(self.accepted[1:]))

    def retained_indices(self, burn_in: int = 0, thinning: int = 1) -> np.ndarray:
        return self.indices[int(burn_in)::int(thinning)]

    def histogram(self, burn_in: int = 0, thinning: int = 1) -> pd.Series:
        """Visit counts for every state, zero-filled."""
        return visitation_histogram(self.retained_indices(burn_in, thinning), self.states)

    def frequencies(self, burn_in: int = 0, thinning: int = 1) -> pd.Series:
        return normalized_histogram(self.retained_indices(burn_in, thinning), self.states)

    def to_frame(self) -> pd.DataFrame:
        states = np.asarray(self.states, dtype=object)
        return pd.DataFrame({
            "step": np.arange(len(self), dtype=np.int64),
            "state": states[self.indices],
            "proposal": states[self.proposals],
            "accepted": self.accepted,
            "prior": self.prior_values,
            "likelihood": self.likelihood_values,
        })
