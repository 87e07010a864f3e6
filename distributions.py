# ==============================================================================
# --- Angel Portfolio Model: Distribution Library ---
# ==============================================================================
#
# Builders for the sampling functions used by the return model. Each builder
# validates its parameters once and returns a callable f(x, rng=None) bound to
# an immutable distribution spec, so the same function can be shared by every
# trial and every worker.
#
# ==============================================================================

import math
from functools import partial
from typing import Callable, Optional, Sequence

import numpy as np

from parameters import ConfigurationError, DistSpec, LinearDist, TriangularDist, UniformDist

Sampler = Callable[..., float]


def validate_dist(dist: DistSpec) -> DistSpec:
    """Checks the constructor-time preconditions of a distribution spec."""
    if isinstance(dist, UniformDist):
        if dist.low > dist.high:
            raise ConfigurationError(f"Uniform range is inverted: low={dist.low} > high={dist.high}")
    elif isinstance(dist, LinearDist):
        if dist.x0 == dist.x1:
            raise ConfigurationError(f"Linear range is degenerate: x0 == x1 == {dist.x0}")
    elif isinstance(dist, TriangularDist):
        if not dist.min < dist.max:
            raise ConfigurationError(f"Triangular range is degenerate: min={dist.min}, max={dist.max}")
        if not dist.min <= dist.peak <= dist.max:
            raise ConfigurationError(
                f"Triangular peak {dist.peak} lies outside [{dist.min}, {dist.max}]"
            )
    else:
        raise ConfigurationError(f"Unsupported distribution spec: {dist!r}")
    return dist


def sample(dist: DistSpec, x: float, rng: Optional[np.random.Generator] = None) -> float:
    """
    Evaluates a distribution spec at the uniform draw x.

    Linear and triangular specs are pure functions of x. Uniform specs ignore x
    and draw from rng instead, which keeps the exit-year draw independent from
    the multiplier draw within a return bin.
    """
    if isinstance(dist, LinearDist):
        slope = (dist.y1 - dist.y0) / (dist.x1 - dist.x0)
        intercept = (dist.y0 * dist.x1 - dist.y1 * dist.x0) / (dist.x1 - dist.x0)
        return slope * x + intercept

    if isinstance(dist, TriangularDist):
        lo, hi, peak = float(dist.min), float(dist.max), float(dist.peak)
        threshold = (peak - lo) / (hi - lo)
        if x < threshold:
            return lo + math.sqrt(x * (hi - lo) * (peak - lo))
        return hi - math.sqrt((1 - x) * (hi - lo) * (hi - peak))

    if isinstance(dist, UniformDist):
        if rng is None:
            rng = np.random.default_rng()
        if isinstance(dist.low, int) and isinstance(dist.high, int):
            return int(rng.integers(dist.low, dist.high, endpoint=True))
        return float(rng.uniform(dist.low, dist.high))

    raise ConfigurationError(f"Unsupported distribution spec: {dist!r}")


def sampler(dist: DistSpec) -> Sampler:
    return partial(sample, validate_dist(dist))


def uniform(a, b) -> Sampler:
    return sampler(UniformDist(a, b))


def linear(x_range: Sequence[float], y0: float, y1: float) -> Sampler:
    """Affine function f with f(x_range[0]) = y0 and f(x_range[1]) = y1."""
    x0, x1 = x_range
    return sampler(LinearDist(x0, x1, y0, y1))


def triangular(min_value: float, max_value: float, peak: float) -> Sampler:
    """Inverse CDF of the triangular distribution on [min_value, max_value] with mode peak."""
    return sampler(TriangularDist(min_value, max_value, peak))


def random_linear(x0: float, y0: float, x1: float, y1: float, rng: Optional[np.random.Generator] = None) -> float:
    # Evaluates the linear map at a uniform point of [x0, x1]
    if rng is None:
        rng = np.random.default_rng()
    return linear((x0, x1), y0, y1)(rng.uniform(x0, x1))
