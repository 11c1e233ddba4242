"""Online adaptation of proposal widths, temperatures and proposal shapes."""

from __future__ import annotations

import math
from collections import deque
from typing import Sequence

import numpy as np

from .datatypes import ProposalBounds

# Internal tuning constants; users are not expected to change these.
_INITIAL_COUNT = 10.0  # pseudo-observations backing the initial model
_TEMP_VARIANCE = 10.0  # initial guess of the side data's variance
_WINDOW_LENGTH = 1000  # accept-rate logging window (does not affect adaption)
_MIN_GRADIENT = 1e-3  # smallest slope of accept rate against the parameter
_SHAPER_EPS = 1e-18
_MIN_RANK = 1e-4


class RegressionAdapter:
    """Adapts a log-scale parameter by regressing acceptance on it.

    One linear model ``accept ~ w0 * (-logx) + w1 * side_data + w2`` is kept
    per temperature and shared by every stack; it is inverted to find the
    parameter that should give the optimal accept rate.
    """

    def __init__(self, n_stacks: int, n_temps: int, optimal_rate: float,
                 min_cap: float, max_cap: float) -> None:
        self._n_stacks = n_stacks
        self._n_temps = n_temps
        self._optimal_rate = optimal_rate
        self._min_cap = min_cap
        self._max_cap = max_cap

        bound_rej = np.array([min_cap, 0.0, 1.0])
        bound_acc = np.array([max_cap, 0.0, 1.0])
        mu_xx = 0.5 * np.outer(bound_rej, bound_rej) + 0.5 * np.outer(bound_acc, bound_acc)
        mu_xx[1, 1] = _TEMP_VARIANCE
        mu_xy = 0.5 * bound_acc

        self._mu_xx = [mu_xx.copy() for _ in range(n_temps)]
        self._mu_xy = [mu_xy.copy() for _ in range(n_temps)]
        self._weights = [mu_xy.copy() for _ in range(n_temps)]
        self._counts = [_INITIAL_COUNT] * n_temps

        n_total = n_stacks * n_temps
        self._windows: list[deque[int]] = [deque() for _ in range(n_total)]
        self._window_sums = [0] * n_total
        self._rates = [0.0] * n_total
        self._values = [1.0] * n_total

    def update(self, chain_id: int, log_value: float, side_data: float,
               accepted: bool) -> None:
        """Record whether a step with the given log parameter was accepted."""
        temp_id = chain_id % self._n_temps
        log_value = min(max(log_value, self._min_cap), self._max_cap)
        x = np.array([-log_value, side_data, 1.0])
        y = 1.0 if accepted else 0.0

        self._counts[temp_id] += 1.0
        alpha = 1.0 / self._counts[temp_id]
        self._mu_xx[temp_id] = self._mu_xx[temp_id] * (1.0 - alpha) + np.outer(x, x) * alpha
        self._mu_xy[temp_id] = self._mu_xy[temp_id] * (1.0 - alpha) + x * y * alpha
        self._weights[temp_id] = np.linalg.lstsq(
            self._mu_xx[temp_id], self._mu_xy[temp_id], rcond=None)[0]

        hit = int(bool(accepted))
        window = self._windows[chain_id]
        window.append(hit)
        self._window_sums[chain_id] += hit
        n = len(window)
        if n >= _WINDOW_LENGTH:
            self._window_sums[chain_id] -= window.popleft()
        self._rates[chain_id] = self._window_sums[chain_id] / n

    def beta_update(self, chain_id: int, beta_low: float, beta_high: float,
                    accepted: bool) -> None:
        """Record the outcome of a swap between two neighbouring temperatures."""
        self.update(chain_id, math.log(beta_low) - math.log(beta_high),
                    math.log(beta_low), accepted)

    def predict(self, chain_id: int, side_data: float) -> float:
        """Return the log parameter expected to give the optimal accept rate."""
        w = self._weights[chain_id % self._n_temps]
        denom = max(_MIN_GRADIENT, float(w[0]))
        # Clip before dividing to avoid precision issues.
        numer = -(self._optimal_rate - float(w[1]) * side_data - float(w[2]))
        numer = max(min(numer, denom * self._max_cap), denom * self._min_cap)
        return numer / denom

    def compute_sigma(self, chain_id: int, side_data: float) -> float:
        """Predict a proposal width for a chain and remember it."""
        sigma = math.exp(self.predict(chain_id, side_data))
        self._values[chain_id] = sigma
        return sigma

    def compute_beta_stack(self, chain_id: int) -> None:
        """Recompute the inverse temperatures of the stack whose coldest chain is given."""
        log_beta = 0.0
        for rung in range(1, self._n_temps):
            log_beta -= self.predict(rung - 1, log_beta)
            self._values[chain_id + rung] = math.exp(log_beta)

    def rates(self) -> list[float]:
        """Windowed accept rate of every chain."""
        return list(self._rates)

    def values(self) -> list[float]:
        """Most recently computed parameter value of every chain."""
        return list(self._values)


class ProposalShaper:
    """Tracks a running Cholesky factor of each chain's step covariance."""

    def __init__(self, n_stacks: int, n_temps: int, n_dims: int,
                 bounds: ProposalBounds, initial_count: int) -> None:
        extent = (np.asarray(bounds.upper, dtype=float)
                  - np.asarray(bounds.lower, dtype=float)) / 4.0
        if extent.shape != (n_dims,):
            raise ValueError(
                f"proposal bounds have {extent.size} dimensions, expected {n_dims}")
        self._n_dims = n_dims
        self._prop_norm = float(np.linalg.norm(extent))
        unit = extent / self._prop_norm

        n_total = n_stacks * n_temps
        self._counts = [initial_count] * n_total
        self._factors = [np.diag(extent) for _ in range(n_total)]
        self._shapes = [np.diag(unit) for _ in range(n_total)]

    def update(self, chain_id: int, step: Sequence[float]) -> None:
        """Fold an accepted step into a chain's covariance estimate."""
        self._counts[chain_id] += 1
        count = float(self._counts[chain_id])
        factor = self._factors[chain_id]

        x = np.asarray(step, dtype=float).reshape(-1) / math.sqrt(count)
        factor *= math.sqrt((count - 1.0) / count)

        # Rank-one update of the lower-triangular factor.
        for k in range(self._n_dims):
            v = max(_SHAPER_EPS, factor[k, k])
            r = math.sqrt(v * v + x[k] * x[k])
            c = r / v
            s = x[k] / v
            factor[k, k] = r
            factor[k + 1:, k] = (factor[k + 1:, k] + s * x[k + 1:]) / c
            x[k + 1:] = c * x[k + 1:] - s * factor[k + 1:, k]

        shape = factor * (self._prop_norm / max(float(np.linalg.norm(factor)), _SHAPER_EPS))
        shape[np.diag_indices_from(shape)] += _MIN_RANK
        self._shapes[chain_id] = shape

    def shapes(self) -> list[np.ndarray]:
        """Normalised proposal shape matrix of every chain."""
        return self._shapes