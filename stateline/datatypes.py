"""Core data types shared by the MCMC machinery."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np


def _as_vector(values) -> np.ndarray:
    return np.array(values, dtype=float).reshape(-1)


@dataclass
class ProposalBounds:
    """Hard lower and upper limits on the samples a proposal may produce."""

    lower: np.ndarray
    upper: np.ndarray

    def __post_init__(self) -> None:
        self.lower = _as_vector(self.lower)
        self.upper = _as_vector(self.upper)


class SwapType(Enum):
    """What happened to a chain's state during a swap attempt."""

    NO_ATTEMPT = 0
    ACCEPT = 1
    REJECT = 2


@dataclass
class State:
    """One state of a Markov chain."""

    sample: np.ndarray
    energy: float = 0.0
    sigma: float = 1.0
    beta: float = 1.0
    accepted: bool = False
    swap_type: SwapType = field(default=SwapType.NO_ATTEMPT)

    def __post_init__(self) -> None:
        self.sample = _as_vector(self.sample)

    def copy(self) -> "State":
        """Return an independent copy, including the sample array."""
        return State(
            sample=self.sample.copy(),
            energy=self.energy,
            sigma=self.sigma,
            beta=self.beta,
            accepted=self.accepted,
            swap_type=self.swap_type,
        )