"""Convergence diagnostics for MCMC chains."""

from __future__ import annotations

import numpy as np

from .datatypes import State


class EPSRDiagnostic:
    """Estimated potential scale reduction over the coldest chain of each stack."""

    def __init__(self, n_stacks: int, n_chains: int, n_dims: int,
                 threshold: float = 1.1) -> None:
        self._n_stacks = n_stacks
        self._n_chains = n_chains
        self._means = np.zeros((n_dims, n_stacks))
        self._sq_sums = np.zeros((n_dims, n_stacks))
        self._counts = np.zeros(n_stacks, dtype=int)
        self._threshold = threshold

    def update(self, chain_id: int, state: State) -> None:
        """Fold a new sample into the running statistics of a coldest chain."""
        if chain_id % self._n_chains != 0:
            return
        stack = chain_id // self._n_chains
        n = self._counts[stack] + 1
        x = np.asarray(state.sample, dtype=float)
        old_mean = self._means[:, stack].copy()
        new_mean = old_mean + (x - old_mean) / n
        self._sq_sums[:, stack] += (x - old_mean) * (x - new_mean)
        self._means[:, stack] = new_mean
        self._counts[stack] = n

    def r_hat(self) -> np.ndarray:
        """Return the potential scale reduction factor for each dimension."""
        n = float(self._counts.min())
        m = float(self._n_stacks)
        with np.errstate(divide="ignore", invalid="ignore"):
            overall = self._means.mean(axis=1, keepdims=True)
            between = (n / (m - 1.0)) * ((self._means - overall) ** 2).sum(axis=1)
            within = ((1.0 / m) * self._sq_sums / (n - 1.0)).sum(axis=1)
            v_hat = ((n - 1.0) / n) * within + (1.0 / n) * between
            return np.sqrt(v_hat / (within + 1e-30))

    def has_converged(self) -> bool:
        """True when every dimension's factor is below the threshold."""
        return bool(np.all(self.r_hat() < self._threshold))