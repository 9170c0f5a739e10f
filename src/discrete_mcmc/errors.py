"""
Exception types raised by the sampler.

- ConfigurationError: invalid state space, probability table, or run settings.
  Always raised before any sampling begins.
- DegenerateRatioError: a 0/0 acceptance ratio reached during the walk.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .types import Chain


class ConfigurationError(ValueError):
    """Invalid model or sampler configuration."""


class DegenerateRatioError(ArithmeticError):
    """Both the current and the proposed state have a zero posterior numerator.

    The walk is aborted at ``step``. ``partial_chain`` holds steps
    ``0..step-1`` so callers that want the truncated chain can still read it.
    """

    def __init__(
        self,
        *,
        step: int,
        state: str,
        proposal: str,
        partial_chain: Optional["Chain"] = None,
    ):
        self.step = int(step)
        self.state = state
        self.proposal = proposal
        self.partial_chain = partial_chain
        super().__init__(
            f"0/0 acceptance ratio at step {self.step}: current state {state!r} and "
            f"proposed state {proposal!r} both have prior * likelihood == 0"
        )
