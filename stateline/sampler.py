"""Parallel-tempering MCMC sampler with adaptive Gaussian proposals."""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Protocol, Sequence

import numpy as np

from .adaptive import ProposalShaper, RegressionAdapter
from .chainarray import ChainArray
from .datatypes import ProposalBounds, State, SwapType

_log = logging.getLogger(__name__)


def bouncy_bounds(value, lower, upper) -> np.ndarray:
    """Reflect a point off hard boundaries until it lies within them."""
    val = np.asarray(value, dtype=float).reshape(-1)
    lo = np.asarray(lower, dtype=float).reshape(-1)
    hi = np.asarray(upper, dtype=float).reshape(-1)
    result = val.copy()
    with np.errstate(divide="ignore", invalid="ignore"):
        delta = hi - lo

        too_big = val > hi
        overstep = val - hi
        steps = np.trunc(overstep / delta)
        still_to_go = overstep - steps * delta
        even = np.fmod(steps, 2.0) == 0.0
        result = np.where(too_big & even, hi - still_to_go, result)
        result = np.where(too_big & ~even, lo + still_to_go, result)

        too_small = val < lo
        understep = lo - val
        steps = np.trunc(understep / delta)
        still_to_go = understep - steps * delta
        even = np.fmod(steps, 2.0) == 0.0
        result = np.where(too_small & even, lo + still_to_go, result)
        result = np.where(too_small & ~even, hi - still_to_go, result)
    return result


def proposal_bounds_from_dict(data: Mapping[str, Any]) -> ProposalBounds:
    """Build proposal bounds from a mapping holding ``min`` and ``max`` lists."""
    try:
        lower = [float(v) for v in data["min"]]
        upper = [float(v) for v in data["max"]]
    except KeyError as exc:
        raise ValueError(f"proposal bounds are missing the {exc.args[0]!r} setting") from exc
    if len(lower) != len(upper):
        raise ValueError(
            f"Proposal bounds dimension mismatch: nMin={len(lower)}, nMax={len(upper)}")
    return ProposalBounds(lower=lower, upper=upper)


class Requester(Protocol):
    """Something that evaluates samples asynchronously."""

    def submit(self, chain_id: int, job_types: Sequence[int],
               sample: np.ndarray) -> None:
        """Queue a sample of a chain for evaluation."""
        ...

    def retrieve(self) -> tuple[int, Sequence[float]]:
        """Wait for a result: the chain id and its energy terms."""
        ...


class GaussianProposal:
    """Gaussian proposal whose shape adapts to the accepted steps."""

    def __init__(self, n_stacks: int, n_chains: int, n_dims: int,
                 bounds: ProposalBounds, init_length: int,
                 rng: np.random.Generator | None = None) -> None:
        self._rng = rng if rng is not None else np.random.default_rng()
        self._bounds = bounds
        self._shaper = ProposalShaper(n_stacks, n_chains, n_dims, bounds, init_length)
        if bounds.lower.size == n_dims and bounds.upper.size == n_dims:
            _log.info("Using a bounded Gaussian proposal function")
            self._propose_fn = self.bounded_propose
        else:
            _log.info("Using a Gaussian proposal function")
            self._propose_fn = self.propose

    def propose(self, chain_id: int, sample, sigma: float) -> np.ndarray:
        """Draw a new sample around ``sample`` with width ``sigma``."""
        current = np.asarray(sample, dtype=float).reshape(-1)
        noise = self._rng.standard_normal(current.size)
        return current + (self._shaper.shapes()[chain_id] @ noise) * sigma

    def bounded_propose(self, chain_id: int, sample, sigma: float) -> np.ndarray:
        """Draw a new sample and reflect it back inside the bounds."""
        return bouncy_bounds(self.propose(chain_id, sample, sigma),
                             self._bounds.lower, self._bounds.upper)

    def __call__(self, chain_id: int, sample, sigma: float) -> np.ndarray:
        return self._propose_fn(chain_id, sample, sigma)

    def update(self, chain_id: int, step) -> None:
        """Adapt a chain's proposal shape to an accepted step."""
        self._shaper.update(chain_id, step)


class Sampler:
    """Drives the chains: submits proposals, collects results and swaps."""

    def __init__(self, requester: Requester, job_types: Sequence[int],
                 chains: ChainArray, proposal: GaussianProposal,
                 sigma_adapter: RegressionAdapter, beta_adapter: RegressionAdapter,
                 swap_interval: int) -> None:
        self._requester = requester
        self._job_types = list(job_types)
        self._chains = chains
        self._proposal = proposal
        self._sigma_adapter = sigma_adapter
        self._beta_adapter = beta_adapter
        self._swap_interval = swap_interval
        total = chains.num_total_chains()
        self._proposed: list[np.ndarray | None] = [None] * total
        self._outstanding = 0
        self._locked = [False] * total
        self._have_flushed = True

        # Start all the chains from hottest to coldest.
        for chain_id in reversed(range(total)):
            self._propose(chain_id)

    def step(self) -> tuple[int, State]:
        """Process one result and return the chain id and its newest state."""
        chain_id, results = self._requester.retrieve()
        energy = float(sum(results))
        self._outstanding -= 1

        chains = self._chains
        previous = chains.last_state(chain_id)
        chains.append(chain_id, self._proposed[chain_id], energy)
        state = chains.last_state(chain_id)
        self._have_flushed = False

        log_temper = -math.log(state.beta)
        self._sigma_adapter.update(chain_id, math.log(state.sigma), log_temper,
                                   state.accepted)
        chains.sigmas[chain_id] = self._sigma_adapter.compute_sigma(chain_id, log_temper)

        if state.accepted:
            self._proposal.update(chain_id, state.sample - previous.sample)

        if self._locked[chain_id]:
            # The hotter chain is waiting for this one: attempt a swap.
            swapped = chains.swap(chain_id, chain_id + 1) == SwapType.ACCEPT
            self._unlock(chain_id)
            self._beta_adapter.beta_update(chain_id, chains.betas[chain_id],
                                           chains.betas[chain_id + 1], swapped)
            if chains.is_coldest_in_stack(chain_id):
                self._beta_adapter.compute_beta_stack(chain_id)
            chains.betas[chain_id + 1] = self._beta_adapter.values()[chain_id + 1]
        elif (chains.is_hottest_in_stack(chain_id)
              and chains.length(chain_id) % self._swap_interval == 0
              and chains.n_temps > 1):
            # Start a swap cascade from the hottest chain.
            self._locked[chain_id - 1] = True
        else:
            self._propose(chain_id)

        return chain_id, chains.last_state(chain_id)

    def flush(self) -> None:
        """Collect every outstanding result and write all chains to disk."""
        self._have_flushed = True
        while self._outstanding > 0:
            self._outstanding -= 1
            chain_id, results = self._requester.retrieve()
            energy = float(sum(results))
            self._chains.append(chain_id, self._proposed[chain_id], energy)
        for chain_id in range(self._chains.num_total_chains()):
            self._chains.flush_to_disk(chain_id)

    def _propose(self, chain_id: int) -> None:
        sigma = self._sigma_adapter.values()[chain_id]
        proposed = self._proposal(chain_id, self._chains.last_state(chain_id).sample, sigma)
        self._proposed[chain_id] = proposed
        self._requester.submit(chain_id, self._job_types, proposed)
        self._outstanding += 1

    def _unlock(self, chain_id: int) -> None:
        self._locked[chain_id] = False
        # The hotter chain no longer waits and can propose again.
        self._propose(chain_id + 1)
        if chain_id % self._chains.n_temps != 0:
            self._locked[chain_id - 1] = True
        else:
            # Coldest chain: nobody left to swap with.
            self._propose(chain_id)

    def __enter__(self) -> "Sampler":
        return self

    def __exit__(self, *args) -> None:
        if not self._have_flushed:
            self.flush()