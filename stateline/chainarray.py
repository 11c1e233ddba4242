"""Parallel-tempered Markov chains with cached, periodically flushed storage."""

from __future__ import annotations

import math
import os
import random
import time
from typing import Protocol, Sequence

import numpy as np

from .datatypes import State, SwapType
from .db import CSVChainArrayWriter


class _UniformSource(Protocol):
    def random(self) -> float: ...


_default_rng = random.Random()


def _metropolis(log_probability: float, rng: _UniformSource) -> bool:
    """Accept with probability ``exp(log_probability)``, capped at one."""
    roll = rng.random()
    if math.isnan(log_probability):
        return False
    if log_probability >= 0.0:
        return True
    return roll < math.exp(log_probability)


def accept_proposal(new_state: State, old_state: State, beta: float,
                    rng: _UniformSource | None = None) -> bool:
    """Decide whether a proposed state replaces the current one."""
    if math.isinf(new_state.energy):
        return False
    rng = rng if rng is not None else _default_rng
    delta_energy = new_state.energy - old_state.energy
    return _metropolis(-1.0 * beta * delta_energy, rng)


def accept_swap(state_low: State, state_high: State, beta_low: float,
                beta_high: float, rng: _UniformSource | None = None) -> bool:
    """Decide whether the states of two chains at different temperatures swap."""
    rng = rng if rng is not None else _default_rng
    delta_energy = state_high.energy - state_low.energy
    delta_beta = beta_high - beta_low
    return _metropolis(delta_energy * delta_beta, rng)


class ChainArray:
    """All chains of a parallel-tempering run.

    Chains are numbered stack by stack: with two stacks of four temperatures,
    ids 0-3 are stack 0 (0 coldest, 3 hottest) and ids 4-7 are stack 1.
    Only the coldest chain of each stack is written to disk, one CSV file per
    stack in ``output_path``.

    The current proposal width and inverse temperature of every chain are the
    lists ``sigmas`` and ``betas``.
    """

    def __init__(self, n_stacks: int, n_temps: int,
                 output_path: str | os.PathLike,
                 flush_interval: float = 10.0,
                 rng: _UniformSource | None = None) -> None:
        total = n_stacks * n_temps
        self.n_stacks = n_stacks
        self.n_temps = n_temps
        self.sigmas: list[float] = [0.0] * total
        self.betas: list[float] = [0.0] * total
        self._writer = CSVChainArrayWriter(output_path, n_stacks)
        self._flush_interval = flush_interval
        self._rng = rng if rng is not None else random.Random()
        self._length_on_disk = [0] * total
        self._cache: list[list[State]] = [[] for _ in range(total)]
        self._last_flush = time.monotonic()
        self._closed = False

    def length(self, chain_id: int) -> int:
        """Number of states in a chain, on disk and in memory."""
        return self._length_on_disk[chain_id] + len(self._cache[chain_id])

    def append(self, chain_id: int, sample: Sequence[float] | np.ndarray,
               energy: float) -> bool:
        """Propose a new state; return whether it was accepted.

        A rejected proposal appends a copy of the previous state.
        """
        proposed = State(sample=sample, energy=energy,
                         sigma=self.sigmas[chain_id], beta=self.betas[chain_id],
                         accepted=False, swap_type=SwapType.NO_ATTEMPT)
        last = self.last_state(chain_id)
        accepted = accept_proposal(proposed, last, self.betas[chain_id], self._rng)

        entry = proposed if accepted else last
        entry.accepted = accepted
        entry.swap_type = SwapType.NO_ATTEMPT
        self._cache[chain_id].append(entry)

        now = time.monotonic()
        if int(now - self._last_flush) >= self._flush_interval:
            self._last_flush = now
            self._flush_all()

        return accepted

    def initialise(self, chain_id: int, sample: Sequence[float] | np.ndarray,
                   energy: float, sigma: float, beta: float) -> None:
        """Start a chain with a state that is accepted unconditionally."""
        self.sigmas[chain_id] = sigma
        self.betas[chain_id] = beta
        self._cache[chain_id].append(
            State(sample=sample, energy=energy, sigma=sigma, beta=beta,
                  accepted=True, swap_type=SwapType.NO_ATTEMPT))

    def flush_to_disk(self, chain_id: int) -> None:
        """Write all but the latest cached state of a chain to disk."""
        cache = self._cache[chain_id]
        if not cache:
            return
        if self.chain_index(chain_id) == 0:
            self._writer.append(self.stack_index(chain_id), cache[:-1])
        self._length_on_disk[chain_id] += len(cache) - 1
        del cache[:-1]

    def last_state(self, chain_id: int) -> State:
        """A copy of the most recent state of a chain."""
        cache = self._cache[chain_id]
        if not cache:
            raise IndexError(f"chain {chain_id} has no states")
        return cache[-1].copy()

    def swap(self, id1: int, id2: int) -> SwapType:
        """Attempt to exchange the states of two chains.

        Sample, energy and acceptance flag move between the chains; each chain
        keeps its own sigma and beta. The outcome is recorded on the colder
        chain only.
        """
        high_id = max(id1, id2)
        low_id = min(id1, id2)
        state_high = self.last_state(high_id)
        state_low = self.last_state(low_id)

        swapped = accept_swap(state_high, state_low, self.betas[high_id],
                              self.betas[low_id], self._rng)

        if swapped:
            state_high.sample, state_low.sample = state_low.sample, state_high.sample
            state_high.energy, state_low.energy = state_low.energy, state_high.energy
            state_high.accepted, state_low.accepted = state_low.accepted, state_high.accepted
            state_low.swap_type = SwapType.ACCEPT
            self._cache[high_id][-1] = state_high
            self._cache[low_id][-1] = state_low
        else:
            state_low.swap_type = SwapType.REJECT
            self._cache[low_id][-1] = state_low
        return SwapType.ACCEPT if swapped else SwapType.REJECT

    def num_total_chains(self) -> int:
        return self.n_stacks * self.n_temps

    def stack_index(self, chain_id: int) -> int:
        return chain_id // self.n_temps

    def chain_index(self, chain_id: int) -> int:
        return chain_id % self.n_temps

    def is_hottest_in_stack(self, chain_id: int) -> bool:
        return self.chain_index(chain_id) == self.n_temps - 1

    def is_coldest_in_stack(self, chain_id: int) -> bool:
        return self.chain_index(chain_id) == 0

    def _flush_all(self) -> None:
        for chain_id in range(self.num_total_chains()):
            self.flush_to_disk(chain_id)

    def close(self) -> None:
        """Flush every chain and close the output files."""
        if self._closed:
            return
        self._closed = True
        try:
            self._flush_all()
        finally:
            self._writer.close()

    def __enter__(self) -> "ChainArray":
        return self

    def __exit__(self, *args) -> None:
        self.close()