# ==============================================================================
# --- Angel Portfolio Model: Data Structures (v1.0) ---
# ==============================================================================
#
# This module defines the data structures for the angel portfolio
# simulation: distribution specs, the return model bins, the portfolio
# configuration and the per-trial / per-run results.
#
# ==============================================================================

import datetime
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import numpy as np
import pandas as pd


class ConfigurationError(ValueError):
    """Raised for invalid configuration, before any simulation runs."""


# --------------------------------------------------------------------------
# --- Distribution Specs ---
# --------------------------------------------------------------------------

# Uniform draw in [low, high]. Ignores the input draw and samples fresh randomness.
# Integer bounds draw an integer from low..high inclusive
@dataclass(frozen=True)
class UniformDist:
    low: Union[int, float]
    high: Union[int, float]
    type: str = "uniform"

# Inverse CDF of a triangular distribution on [min, max] with mode at peak
@dataclass(frozen=True)
class TriangularDist:
    min: float
    max: float
    peak: float
    type: str = "triangular"

# Affine map through (x0, y0) and (x1, y1)
@dataclass(frozen=True)
class LinearDist:
    x0: float
    x1: float
    y0: float
    y1: float
    type: str = "linear"

DistSpec = Union[UniformDist, TriangularDist, LinearDist]


# --------------------------------------------------------------------------
# --- Configuration & Parameter Dataclasses ---
# --------------------------------------------------------------------------

# For meta-data and record keeping of scenarios run through the different yaml files
@dataclass
class Scenario:
    name: str
    # Date the scenario was written, to tell apart results from different calibrations
    date: str
    notes: str

# One row of the return model. Covers the half-open draw range [lower, upper)
@dataclass(frozen=True)
class ReturnBin:
    lower: float
    upper: float
    # Maps the outcome draw to a payout multiple of the invested amount
    multiplier: LinearDist
    # Years from investment to exit. Sampled with its own independent draw
    exit_year: DistSpec

    def contains(self, x: float) -> bool:
        return self.lower <= x < self.upper

# Size and shape of the portfolio, and how many Monte Carlo trials to run
@dataclass
class PortfolioConfig:
    # Number of independent portfolio trials per run
    num_trials: int = 10_000
    # Investments in the portfolio
    portfolio_size: int = 20
    # First n years when investments are made. portfolio_size must divide evenly
    investment_period_years: int = 5

    def __post_init__(self):
        self.validate()

    def validate(self):
        for name in ("num_trials", "portfolio_size", "investment_period_years"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
                raise ConfigurationError(f"'{name}' must be a positive integer. Got: {value!r}")
        if self.portfolio_size % self.investment_period_years != 0:
            raise ConfigurationError(
                f"portfolio_size ({self.portfolio_size}) must be divisible by "
                f"investment_period_years ({self.investment_period_years})."
            )

    @property
    def bets_per_year(self) -> int:
        return self.portfolio_size // self.investment_period_years

# Brings everything together into the single object the simulation engine uses
@dataclass
class SimulationParameters:
    scenario: Optional[Scenario]
    schema_version: float
    portfolio: PortfolioConfig
    return_bins: Tuple[ReturnBin, ...]
    # Calendar year of the first vintage
    base_year: int = 2016
    # Starting rate for the IRR solver
    irr_guess: float = -0.1
    # Width, in IRR percentage points, of the histogram buckets handed to reporting
    histogram_bin_width: float = 1.0


# --------------------------------------------------------------------------
# --- Simulation State & Result Dataclasses ---
# --------------------------------------------------------------------------

# A single dated cash movement. Negative = money in the deal, positive = money back
@dataclass(frozen=True)
class Transaction:
    amount: float
    date: datetime.date

# Outcome of the IRR solver. rate is None when converged is False
@dataclass(frozen=True)
class IrrResult:
    rate: Optional[float]
    converged: bool
    reason: str = ""
    iterations: int = 0

# One Monte Carlo trial. irr_pct is the 0.0 sentinel when the solver failed
@dataclass(frozen=True)
class TrialResult:
    irr_pct: float
    converged: bool = True

# Aggregated statistics for a full run, handed to the reporting layer
@dataclass
class SimulationSummary:
    mean: float
    std_dev: float
    # Percent of trials in [loss, 0-20%, 20-80%, >80%]
    bucket_probabilities: Tuple[int, int, int, int]
    irrs: List[float] = field(default_factory=list)
    convergence_failures: int = 0
    histogram_bin_width: float = 1.0

    @property
    def num_trials(self) -> int:
        return len(self.irrs)

    @property
    def histogram(self) -> pd.Series:
        """Trial counts keyed by the lower edge of each IRR bucket, in percent."""
        if not self.irrs:
            return pd.Series(dtype="int64", name="frequency")
        width = self.histogram_bin_width
        edges = np.floor(np.asarray(self.irrs, dtype=float) / width) * width
        if float(width).is_integer():
            edges = edges.astype(int)
        counts = pd.Series(edges).value_counts().sort_index()
        counts.name = "frequency"
        counts.index.name = "irr_bin"
        return counts

    @property
    def stats_text(self) -> str:
        loss, low, mid, high = self.bucket_probabilities
        return (
            f"Mean: {self.mean:.1f}% StDev: {self.std_dev:.1f}\n"
            f"IRR [<0% {loss}%] [0-20% = {low}%] [20-80% = {mid}%] [>80% = {high}%]"
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"trial": np.arange(1, len(self.irrs) + 1), "irr_pct": self.irrs})
