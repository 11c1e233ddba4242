import io
import math

import pytest

from stateline.datatypes import State, SwapType
from stateline.tablelogger import TableLogger

N_STACKS = 2
N_CHAINS = 2
TOTAL = N_STACKS * N_CHAINS


def _vectors(value=0.5):
    return [value] * TOTAL, [value] * TOTAL, [value] * TOTAL, [value] * TOTAL


def _logger(stream=None, ms_refresh=10**9):
    return TableLogger(N_STACKS, N_CHAINS, 1, ms_refresh, stream or io.StringIO())


def test_table_has_header_and_row_per_chain():
    logger = _logger()
    table = logger.format_table(*_vectors())
    assert "GlbSwapRt" in table
    rows = [line for line in table.splitlines() if line.strip() and line.strip()[0].isdigit()]
    assert len(rows) == TOTAL
    assert [row.split()[0] for row in rows] == [str(i) for i in range(TOTAL)]


def test_fresh_row_fields():
    logger = _logger()
    table = logger.format_table(*_vectors())
    row = [line for line in table.splitlines() if line.startswith("   0 ")][0]
    fields = row.split()
    assert fields[1] == "1"
    assert fields[2] == "inf"
    assert fields[4] == "0.50000"


def test_blank_line_separates_stacks():
    logger = _logger()
    lines = logger.format_table(*_vectors()).splitlines()
    idx = next(i for i, line in enumerate(lines) if line.startswith("   2 "))
    assert lines[idx - 1] == ""


def test_update_prints_once_within_refresh():
    stream = io.StringIO()
    logger = _logger(stream)
    state = State(sample=[1.0], energy=3.0, accepted=True)
    logger.update(0, state, *_vectors())
    logger.update(0, state, *_vectors())
    out = stream.getvalue()
    assert out.count("Convergence test:") == 1
    assert "not converged" in out


def test_summary_tracks_statistics():
    logger = _logger()
    logger.update(1, State(sample=[0.0], energy=5.0, accepted=True,
                           swap_type=SwapType.ACCEPT), *_vectors())
    logger.update(1, State(sample=[0.0], energy=7.0, accepted=False,
                           swap_type=SwapType.NO_ATTEMPT), *_vectors())
    sigmas = [0.1, 0.2, 0.3, 0.4]
    betas = [1.0, 0.5, 1.0, 0.5]
    summary = logger.summary(N_STACKS, N_CHAINS, sigmas, betas)
    assert summary["config"] == {"stacks": N_STACKS, "chainsPerStack": N_CHAINS}
    chain = summary["chains"][1]
    assert chain["id"] == 1
    assert chain["length"] == 3
    assert chain["energy"] == 7.0
    assert chain["minEnergy"] == 5.0
    assert chain["sigma"] == 0.2
    assert chain["beta"] == 0.5
    assert chain["acceptRate"] == pytest.approx(2 / 3)
    assert chain["swapRate"] == pytest.approx(0.5)


def test_untouched_chain_summary():
    logger = _logger()
    chain = logger.summary(N_STACKS, N_CHAINS, [1.0] * TOTAL, [1.0] * TOTAL)["chains"][3]
    assert chain["length"] == 1
    assert math.isinf(chain["minEnergy"])
    assert chain["acceptRate"] == 1.0
    assert chain["swapRate"] == 0.0