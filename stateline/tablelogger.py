"""Periodic console table and summary of chain statistics."""

from __future__ import annotations

import math
import sys
import time
from typing import Any, Sequence, TextIO

import numpy as np

from .datatypes import State, SwapType
from .diagnostics import EPSRDiagnostic

_HEADER = (
    "\n\n  ID    Length    MinEngy   CurrEngy      Sigma     AcptRt  GlbAcptRt"
    "       Beta     SwapRt  GlbSwapRt\n"
    "------------------------------------------------------------------------"
    "------------------------------\n"
)


class TableLogger:
    """Accumulates per-chain statistics and prints them as a table."""

    def __init__(self, n_stacks: int, n_chains: int, n_dims: int,
                 ms_refresh: int, stream: TextIO | None = None) -> None:
        total = n_stacks * n_chains
        self._ms_refresh = ms_refresh
        self._n_stacks = n_stacks
        self._n_chains = n_chains
        self._stream = stream if stream is not None else sys.stdout
        self._last_print: float | None = None
        self._lengths = [1] * total
        self._min_energies = [math.inf] * total
        self._energies = [0.0] * total
        self._n_accepts = [1] * total
        self._n_swaps = [0] * total
        # Starts at one so that swap rates are never NaN.
        self._n_swap_attempts = [1] * total
        self._diagnostic = EPSRDiagnostic(n_stacks, n_chains, n_dims)

    def update(self, chain_id: int, state: State, sigmas: Sequence[float],
               accept_rates: Sequence[float], betas: Sequence[float],
               swap_rates: Sequence[float]) -> None:
        """Record a new state and print the table if the refresh time has passed."""
        self._lengths[chain_id] += 1
        self._min_energies[chain_id] = min(self._min_energies[chain_id], state.energy)
        self._energies[chain_id] = state.energy
        self._n_accepts[chain_id] += int(bool(state.accepted))
        self._n_swaps[chain_id] += int(state.swap_type == SwapType.ACCEPT)
        self._n_swap_attempts[chain_id] += int(state.swap_type != SwapType.NO_ATTEMPT)
        self._diagnostic.update(chain_id, state)

        now = time.monotonic()
        if self._last_print is not None:
            elapsed_ms = int((now - self._last_print) * 1000)
            if elapsed_ms <= self._ms_refresh:
                return
        self._last_print = now

        table = self.format_table(sigmas, accept_rates, betas, swap_rates)
        self._stream.write(table + "\n")
        r_hat = self._diagnostic.r_hat()
        with np.errstate(invalid="ignore"):
            mean = float(np.mean(r_hat))
        verdict = "possibly converged" if self._diagnostic.has_converged() else "not converged"
        self._stream.write(f"Convergence test: {format(mean, 'g')} ({verdict})\n")
        self._stream.flush()

    def format_table(self, sigmas: Sequence[float], accept_rates: Sequence[float],
                     betas: Sequence[float], swap_rates: Sequence[float]) -> str:
        """Render the statistics of every chain as a fixed-width table."""
        lines = [_HEADER]
        rows = zip(self._lengths, self._min_energies, self._energies, sigmas,
                   accept_rates, self._n_accepts, betas, swap_rates,
                   self._n_swaps, self._n_swap_attempts)
        for i, (length, min_e, energy, sigma, rate, accepts, beta, swap_rate,
                swaps, attempts) in enumerate(rows):
            if i % self._n_chains == 0 and i != 0:
                lines.append("\n")
            lines.append(
                f"{i:4d} {length:9d} {min_e:10.5f} {energy:10.5f} "
                f"{sigma:10.5f} {rate:10.5f} {accepts / length:10.5f} "
                f"{beta:10.5f} {swap_rate:10.5f} {swaps / attempts:10.5f} \n"
            )
        return "".join(lines)

    def summary(self, n_stacks: int, n_temps: int, sigmas: Sequence[float],
                betas: Sequence[float]) -> dict[str, Any]:
        """Return the configuration and per-chain statistics as plain data."""
        chains = [
            {
                "id": i,
                "length": self._lengths[i],
                "energy": self._energies[i],
                "minEnergy": self._min_energies[i],
                "sigma": sigmas[i],
                "acceptRate": self._n_accepts[i] / self._lengths[i],
                "beta": betas[i],
                "swapRate": self._n_swaps[i] / self._n_swap_attempts[i],
            }
            for i in range(len(self._lengths))
        ]
        return {
            "config": {"stacks": n_stacks, "chainsPerStack": n_temps},
            "chains": chains,
        }