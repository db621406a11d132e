"""
Tests for duration discretization
"""

import numpy as np
import pytest
from survbench.utils import DurationDiscretizer, validate_times


@pytest.fixture
def durations():
    time = np.arange(11, dtype=float)
    event = np.array([0, 1, 1, 0, 1, 1, 0, 1, 1, 0, 1])
    return time, event


def test_validate_times():
    """Test time validation"""
    np.testing.assert_array_equal(validate_times([0, 1.5, 3]), [0.0, 1.5, 3.0])
    np.testing.assert_array_equal(validate_times(2.0), [2.0])

    with pytest.raises(ValueError):
        validate_times([-1.0, 2.0])
    with pytest.raises(ValueError):
        validate_times([1.0, np.inf])
    with pytest.raises(ValueError):
        validate_times(['a', 'b'])
    with pytest.raises(ValueError):
        validate_times(np.ones((2, 2)))


def test_equidistant_cuts(durations):
    """Cuts run evenly from zero to the largest duration"""
    time, event = durations
    disc = DurationDiscretizer(num_durations=11).fit(time, event)
    np.testing.assert_allclose(disc.cuts_, np.arange(11, dtype=float))
    assert disc.n_cuts == 11


def test_quantile_cuts(durations):
    """Quantile cuts start at zero, end at the largest duration and increase"""
    time, event = durations
    disc = DurationDiscretizer(num_durations=5, scheme='quantiles').fit(time, event)
    assert disc.cuts_[0] == 0.0
    assert disc.cuts_[-1] == 10.0
    assert np.all(np.diff(disc.cuts_) > 0)
    assert disc.n_cuts <= 5 + 1


def test_transform_events_up_censored_down(durations):
    """Events map to the next cut, censored durations to the previous one"""
    time, event = durations
    disc = DurationDiscretizer(num_durations=11).fit(time, event)

    idx, ev = disc.transform(np.array([2.5, 2.5, 3.0, 3.0]), np.array([1, 0, 1, 0]))
    np.testing.assert_array_equal(idx, [3, 2, 3, 3])
    np.testing.assert_array_equal(ev, [1, 0, 1, 0])

    # Durations beyond the grid are clipped to the last cut
    idx, _ = disc.transform(np.array([12.0]), np.array([1]))
    assert idx[0] == 10


def test_interval_index(durations):
    """Interval index and elapsed fraction for the piecewise-constant hazard"""
    time, event = durations
    disc = DurationDiscretizer(num_durations=11).fit(time, event)

    idx, frac = disc.interval_index(np.array([0.0, 2.5, 3.0, 10.0]))
    np.testing.assert_array_equal(idx, [0, 2, 2, 9])
    np.testing.assert_allclose(frac, [0.0, 0.5, 1.0, 1.0])


def test_invalid_discretizer_arguments(durations):
    """Test invalid settings"""
    with pytest.raises(ValueError):
        DurationDiscretizer(num_durations=1)
    with pytest.raises(ValueError):
        DurationDiscretizer(scheme='log')
    with pytest.raises(ValueError):
        DurationDiscretizer().fit(np.zeros(3), np.ones(3))
