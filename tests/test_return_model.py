# tests/test_return_model.py
import dataclasses

import numpy as np
import pytest

from parameters import ConfigurationError, LinearDist, ReturnBin, TriangularDist, UniformDist
from return_model import draw_outcome, find_bin, validate_bins, wiltbank_bins


@pytest.fixture
def bins():
    return wiltbank_bins()


def test_bins_partition_unit_interval(bins):
    assert bins[0].lower == 0.0
    assert bins[-1].upper == 1.0
    for previous, current in zip(bins, bins[1:]):
        assert previous.upper == current.lower

def test_every_draw_matches_exactly_one_bin(bins):
    for x in np.linspace(0.0, 1.0, 10_001)[:-1]:
        assert sum(b.contains(x) for b in bins) == 1
    # Bin edges belong to the bin they open
    assert find_bin(bins, 0.5) is bins[1]
    assert find_bin(bins, 0.98) is bins[5]

def test_find_bin_rejects_draws_outside_unit_interval(bins):
    with pytest.raises(ValueError):
        find_bin(bins, 1.0)
    with pytest.raises(ValueError):
        find_bin(bins, -0.1)

def test_multipliers_follow_the_table(bins):
    rng = np.random.default_rng(seed=1)
    assert draw_outcome(bins, 0.3, rng)[0] == 0
    assert draw_outcome(bins, 0.5, rng)[0] == pytest.approx(0)
    assert draw_outcome(bins, 0.69, rng)[0] == pytest.approx(1)
    assert draw_outcome(bins, 0.87, rng)[0] == pytest.approx(5)
    assert draw_outcome(bins, 0.94, rng)[0] == pytest.approx(10)
    assert draw_outcome(bins, 0.98, rng)[0] == pytest.approx(30)
    assert draw_outcome(bins, 0.999999, rng)[0] == pytest.approx(1000, abs=0.1)

def test_exit_years_stay_in_bin_ranges(bins):
    rng = np.random.default_rng(seed=2)
    expected = {0.25: (1, 5), 0.6: (1, 5), 0.8: (1, 15), 0.9: (3, 15), 0.95: (7, 12), 0.99: (10, 17)}
    for x, (low, high) in expected.items():
        years = [draw_outcome(bins, x, rng)[1] for _ in range(500)]
        assert low <= min(years) and max(years) <= high

def test_exit_year_is_independent_of_the_outcome_draw(bins):
    """Within one bin the same outcome draw still spreads over several exit years."""
    rng = np.random.default_rng(seed=3)
    years = {draw_outcome(bins, 0.25, rng)[1] for _ in range(200)}
    assert len(years) > 1

def test_top_bin_exit_year_is_configurable():
    assert wiltbank_bins()[-1].exit_year == TriangularDist(10, 17, 10)
    assert wiltbank_bins(top_exit_peak=12)[-1].exit_year.peak == 12
    assert wiltbank_bins(top_exit_peak=8, top_exit_min=7)[-1].exit_year == TriangularDist(7, 17, 8)

def test_top_bin_exit_peak_outside_support_is_rejected():
    with pytest.raises(ConfigurationError):
        wiltbank_bins(top_exit_peak=8)
    with pytest.raises(ConfigurationError):
        wiltbank_bins(top_exit_peak=20)

def test_validate_bins_rejects_gaps_and_overlaps(bins):
    gap = list(bins)
    gap[2] = dataclasses.replace(gap[2], lower=0.7)
    with pytest.raises(ConfigurationError):
        validate_bins(gap)

    overlap = list(bins)
    overlap[1] = dataclasses.replace(overlap[1], upper=0.75)
    with pytest.raises(ConfigurationError):
        validate_bins(overlap)

def test_validate_bins_requires_full_coverage():
    short = [ReturnBin(0.0, 0.9, LinearDist(0.0, 0.9, 0, 1), UniformDist(1, 5))]
    with pytest.raises(ConfigurationError):
        validate_bins(short)
    with pytest.raises(ConfigurationError):
        validate_bins([])
