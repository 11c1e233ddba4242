import numpy as np

from stateline.datatypes import ProposalBounds, State, SwapType


def test_swap_type_codes_follow_declaration_order():
    assert SwapType(0) is SwapType.NO_ATTEMPT
    assert SwapType(1) is SwapType.ACCEPT
    assert SwapType(2) is SwapType.REJECT
    state = State(sample=[0.0], swap_type=SwapType(1))
    assert state.swap_type.value == 1


def test_state_converts_sample_to_float_vector():
    state = State(sample=[1, 2, 3])
    assert state.sample.dtype == np.float64
    assert state.sample.shape == (3,)
    np.testing.assert_array_equal(state.sample, [1.0, 2.0, 3.0])


def test_state_defaults():
    state = State(sample=[0.0])
    assert state.accepted is False
    assert state.swap_type is SwapType.NO_ATTEMPT


def test_copy_is_independent():
    state = State(sample=[1.0, 2.0], energy=5.0, sigma=0.3, beta=0.7,
                  accepted=True, swap_type=SwapType.REJECT)
    clone = state.copy()
    assert clone == state or np.array_equal(clone.sample, state.sample)
    clone.sample[0] = 42.0
    clone.energy = -1.0
    assert state.sample[0] == 1.0
    assert state.energy == 5.0
    assert clone.sigma == state.sigma
    assert clone.beta == state.beta
    assert clone.accepted is True
    assert clone.swap_type is SwapType.REJECT


def test_proposal_bounds_are_arrays():
    bounds = ProposalBounds(lower=[0, -1], upper=(2, 3))
    np.testing.assert_array_equal(bounds.upper - bounds.lower, [2.0, 4.0])
    assert bounds.lower.dtype == np.float64