# stateline

A parallel-tempering Markov chain Monte Carlo sampler. Chains are arranged in
stacks of increasing temperature. Swaps between neighbouring temperatures
cascade down from the hottest chain of a stack. Proposal widths, inverse
temperatures and proposal shapes adapt as sampling runs.

## Installation

```
pip install .
```

The tests need the `test` extra:

```
pip install .[test]
pytest
```

## Modules

- `stateline.datatypes` holds `State`, `SwapType` and `ProposalBounds`.
  `State` is a chain state with sample, energy, sigma, beta, accepted flag
  and swap type. `SwapType` has the members `NO_ATTEMPT`, `ACCEPT` and
  `REJECT`. `ProposalBounds` has the fields `lower` and `upper`.
- `stateline.chainarray` holds `ChainArray`, `accept_proposal` and
  `accept_swap`. `ChainArray` keeps every chain. Chain ids run stack by stack,
  and within a stack from coldest to hottest. The class decides by Metropolis
  rules whether a proposal or a swap is accepted. Its `sigmas` and `betas`
  lists hold each chain's current proposal width and inverse temperature. The
  coldest chain of each stack is written to `<output_path>/<stack>.csv`. States
  are cached in memory. They are flushed every `flush_interval` seconds, on
  `flush_to_disk`, and on `close` or when a `with` block exits.
- `stateline.adaptive` holds `RegressionAdapter` and `ProposalShaper`.
  `RegressionAdapter` adapts a log-scale parameter, either the proposal width
  or the inverse temperatures of a stack. It regresses acceptance on that
  parameter and also keeps a windowed accept rate per chain. `ProposalShaper`
  keeps a running Cholesky factor of each chain's accepted steps.
- `stateline.sampler` holds `GaussianProposal`, `bouncy_bounds`,
  `proposal_bounds_from_dict`, the `Requester` protocol and `Sampler`.
  `bouncy_bounds` reflects a point back inside hard limits.
  `proposal_bounds_from_dict` reads a mapping with `min` and `max` lists.
  `Sampler` submits proposals to a `Requester`, folds results into the chains
  and adapts sigma, beta and proposal shape. It also runs the swap cascade.
- `stateline.diagnostics` holds `EPSRDiagnostic`, the estimated potential
  scale reduction (Gelman–Rubin) over the coldest chain of each stack.
- `stateline.tablelogger` holds `TableLogger`. It collects per-chain
  statistics and prints a fixed-width table with a convergence line, no more
  often than every `ms_refresh` milliseconds. `summary` returns the same
  statistics as a dictionary.
- `stateline.db` holds `CSVChainArrayWriter`, `format_state` and `DBSettings`.
- `stateline.textutils` holds `join_str` and `split_str`.
- `stateline.circularbuffer` holds `CircularBuffer`, a fixed-length buffer that
  drops its oldest element.

## Example

```python
import os

import numpy as np

from stateline.adaptive import RegressionAdapter
from stateline.chainarray import ChainArray
from stateline.datatypes import ProposalBounds
from stateline.sampler import GaussianProposal, Requester, Sampler


class LocalRequester(Requester):
    """Evaluates a Gaussian energy in-process."""

    def __init__(self):
        self._pending = []

    def submit(self, chain_id, job_types, sample):
        self._pending.append((chain_id, [0.5 * float(sample @ sample)]))

    def retrieve(self):
        return self._pending.pop(0)


n_stacks, n_temps, n_dims = 2, 3, 2
bounds = ProposalBounds(lower=np.full(n_dims, -5.0), upper=np.full(n_dims, 5.0))
rng = np.random.default_rng(0)

os.makedirs("chains", exist_ok=True)
with ChainArray(n_stacks, n_temps, "chains", rng=rng) as chains:
    for i in range(chains.num_total_chains()):
        chains.initialise(i, np.zeros(n_dims), 0.0, 1.0, 1.0)

    proposal = GaussianProposal(n_stacks, n_temps, n_dims, bounds, 100, rng=rng)
    sigma_adapter = RegressionAdapter(n_stacks, n_temps, 0.24, -8.0, 8.0)
    beta_adapter = RegressionAdapter(n_stacks, n_temps, 0.24, -8.0, 8.0)

    with Sampler(LocalRequester(), [0], chains, proposal,
                 sigma_adapter, beta_adapter, 10) as sampler:
        for _ in range(1000):
            chain_id, state = sampler.step()
```

The output directory must exist before a `ChainArray` is created. Each row of
a chain file holds the sample coordinates, then energy, sigma, beta, the
accepted flag (0 or 1) and the swap type (0 = no attempt, 1 = accept,
2 = reject).

## What the package does not do

- It does not distribute energy evaluations to workers over a network. You
  supply a `Requester` that evaluates the samples.
- It has no command-line program and no web interface. `TableLogger.summary`
  returns the statistics as plain data for you to serve or store.
- It writes chain files but does not read them back. A run cannot be resumed
  from disk.