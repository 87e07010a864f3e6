# ==============================================================================
# --- Angel Portfolio Model: Return Model (Wiltbank power-law hypothesis) ---
# ==============================================================================
#
# A fixed, ordered table of return bins partitioning [0, 1). A uniform draw
# picks the bin; the bin's linear map turns the draw into a payout multiple
# and the bin's exit-year distribution picks the years to exit.
#
# ==============================================================================

import math
from typing import Iterable, Optional, Tuple

import numpy as np

from distributions import sample, validate_dist
from parameters import ConfigurationError, LinearDist, ReturnBin, TriangularDist, UniformDist

# Exit-year triangular of the 30x-1000x bin. Calibrations disagree on the peak
# (10 and 12 on the [10, 17] support, 8 on a support starting at 7 or earlier),
# so the whole distribution is passed in from config rather than fixed here.
DEFAULT_TOP_EXIT_MIN = 10
DEFAULT_TOP_EXIT_MAX = 17
DEFAULT_TOP_EXIT_PEAK = 10


def wiltbank_bins(
    top_exit_peak: float = DEFAULT_TOP_EXIT_PEAK,
    top_exit_min: float = DEFAULT_TOP_EXIT_MIN,
    top_exit_max: float = DEFAULT_TOP_EXIT_MAX
) -> Tuple[ReturnBin, ...]:
    """
    Builds the six-bin Wiltbank table. The result is immutable and safe to share.

    The top bin's exit year is triangular(top_exit_min, top_exit_max, top_exit_peak);
    a peak outside [top_exit_min, top_exit_max] is a ConfigurationError.
    """
    bins = (
        # total loss, exits in years 1 to 5
        ReturnBin(0.0, 0.5, LinearDist(0.0, 0.5, 0, 0), UniformDist(1, 5)),
        ReturnBin(0.5, 0.69, LinearDist(0.5, 0.69, 0, 1), UniformDist(1, 5)),
        ReturnBin(0.69, 0.87, LinearDist(0.69, 0.87, 1, 5), UniformDist(1, 15)),
        ReturnBin(0.87, 0.94, LinearDist(0.87, 0.94, 5, 10), UniformDist(3, 15)),
        # exits in years 7 to 12, most likely in year 8
        ReturnBin(0.94, 0.98, LinearDist(0.94, 0.98, 10, 30), TriangularDist(7, 12, 8)),
        ReturnBin(0.98, 1.0, LinearDist(0.98, 1.0, 30, 1000), TriangularDist(top_exit_min, top_exit_max, top_exit_peak)),
    )
    return validate_bins(bins)


def validate_bins(bins: Iterable[ReturnBin]) -> Tuple[ReturnBin, ...]:
    """Checks that the bins partition [0, 1) in order, without gaps or overlaps."""
    bins = tuple(bins)
    if not bins:
        raise ConfigurationError("Return model has no bins.")

    expected_lower = 0.0
    for index, bin_ in enumerate(bins):
        if not math.isclose(bin_.lower, expected_lower, abs_tol=1e-12):
            raise ConfigurationError(
                f"Return bin {index} starts at {bin_.lower}, expected {expected_lower} (gap or overlap)."
            )
        if not bin_.lower < bin_.upper:
            raise ConfigurationError(f"Return bin {index} is empty: [{bin_.lower}, {bin_.upper}).")
        validate_dist(bin_.multiplier)
        validate_dist(bin_.exit_year)
        expected_lower = bin_.upper

    if not math.isclose(expected_lower, 1.0, abs_tol=1e-12):
        raise ConfigurationError(f"Return bins end at {expected_lower}, expected 1.0.")
    return bins


def find_bin(bins: Tuple[ReturnBin, ...], x: float) -> ReturnBin:
    if not 0.0 <= x < 1.0:
        raise ValueError(f"Outcome draw must lie in [0, 1). Got: {x}")
    for bin_ in bins:
        if bin_.contains(x):
            return bin_
    # Float noise on the last upper bound
    return bins[-1]


def draw_outcome(bins: Tuple[ReturnBin, ...], x: float, rng: Optional[np.random.Generator] = None) -> Tuple[float, float]:
    """
    Returns (multiplier, years_to_exit) for the outcome draw x.

    The exit year is sampled from a second, independent uniform draw.
    """
    if rng is None:
        rng = np.random.default_rng()
    bin_ = find_bin(bins, x)
    multiplier = sample(bin_.multiplier, x, rng)
    years_to_exit = sample(bin_.exit_year, rng.random(), rng)
    return multiplier, years_to_exit
