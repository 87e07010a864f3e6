# ==============================================================================
# --- Angel Portfolio Model: Core Simulation Engine (v1.0) ---
# ==============================================================================
#
# Investment generator, portfolio simulator and Monte Carlo driver.
# Every trial owns its random generator and shares only read-only parameters,
# so trials can run in any order and in separate worker processes.
#
# ==============================================================================
import datetime
import itertools
import logging
import math
from concurrent.futures import ProcessPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np

from parameters import (
    ConfigurationError, PortfolioConfig, SimulationParameters, SimulationSummary,
    Transaction, TrialResult
)
from return_model import draw_outcome
from utils import solve_irr

# Sentinel IRR used when the solver does not converge
NON_CONVERGENCE_SENTINEL = 0.0

# Upper edges of the loss / low / mid buckets, in IRR percent
LOW_BUCKET_EDGE = 20.0
HIGH_BUCKET_EDGE = 80.0


def generate_investment(params: SimulationParameters, vintage_year: int, rng: np.random.Generator) -> List[Transaction]:
    """
    Cash flows of a single bet made in the given vintage year.

    A unit outflow on 1 January of the vintage year, and the payout on
    1 January of the exit year. The payout multiple comes from the outcome
    draw; the years to exit come from the bin's own independent draw.

    Args:
        params: Simulation parameters holding the return model and base year
        vintage_year: Year within the investment period (0-based)
        rng: Random number generator for this trial

    Returns:
        [investment outflow, payout inflow]
    """
    invest_year = params.base_year + vintage_year
    transactions = [Transaction(-1.0, datetime.date(invest_year, 1, 1))]

    x = rng.random()
    payout, years_to_exit = draw_outcome(params.return_bins, x, rng)
    exit_date = datetime.date(invest_year + int(round(years_to_exit)), 1, 1)
    transactions.append(Transaction(float(payout), exit_date))

    return transactions


def build_portfolio_cash_flow(params: SimulationParameters, rng: np.random.Generator) -> List[Transaction]:
    """Merged cash flow of every bet in one portfolio, spread evenly over the investment period."""
    portfolio = params.portfolio
    cash_flow: List[Transaction] = []
    for year in range(portfolio.investment_period_years):
        for _ in range(portfolio.bets_per_year):
            cash_flow.extend(generate_investment(params, year, rng))
    return cash_flow


def simulate_portfolio(params: SimulationParameters, rng: np.random.Generator) -> TrialResult:
    """
    Runs one portfolio trial and returns its IRR in percent.

    Non-convergence of the IRR solver is an expected, rare event: it is logged
    and the 0.0 sentinel is recorded instead of aborting the batch.
    """
    cash_flow = build_portfolio_cash_flow(params, rng)
    irr = solve_irr(cash_flow, guess=params.irr_guess)

    if not irr.converged:
        logging.warning(f"IRR solver did not converge ({irr.reason}). Recording {NON_CONVERGENCE_SENTINEL} for this trial.")
        return TrialResult(irr_pct=NON_CONVERGENCE_SENTINEL, converged=False)

    return TrialResult(irr_pct=round(100 * irr.rate, 3), converged=True)


def _run_trial(params: SimulationParameters, seed: int) -> TrialResult:
    return simulate_portfolio(params, np.random.default_rng(seed))


def bucket_probabilities(irrs: Sequence[float]) -> Tuple[int, int, int, int]:
    """
    Percent of trials per IRR bucket, each rounded half up to an integer.

    Buckets are loss (< 0), low [0, 20), mid [20, 80] and high (> 80), so
    every trial lands in exactly one bucket. Buckets are rounded independently,
    so the four values can miss 100 by up to 2 when several sit on a .5 tie.
    """
    data = np.asarray(irrs, dtype=float)
    n = len(data)
    if n == 0:
        raise ConfigurationError("Cannot compute bucket probabilities without trial results.")

    counts = [
        np.count_nonzero(data < 0.0),
        np.count_nonzero((data >= 0.0) & (data < LOW_BUCKET_EDGE)),
        np.count_nonzero((data >= LOW_BUCKET_EDGE) & (data <= HIGH_BUCKET_EDGE)),
        np.count_nonzero(data > HIGH_BUCKET_EDGE),
    ]
    return tuple(int(math.floor(100.0 * c / n + 0.5)) for c in counts)


def summarize(irrs: Sequence[float], convergence_failures: int = 0, histogram_bin_width: float = 1.0) -> SimulationSummary:
    """Mean, sample standard deviation about the batch mean, and bucket probabilities."""
    data = np.asarray(irrs, dtype=float)
    if len(data) == 0:
        raise ConfigurationError("Cannot summarize a run without trial results.")

    mean = float(data.mean())
    std_dev = float(np.std(data, ddof=1)) if len(data) > 1 else 0.0

    return SimulationSummary(
        mean=mean,
        std_dev=std_dev,
        bucket_probabilities=bucket_probabilities(data),
        irrs=[float(r) for r in data],
        convergence_failures=convergence_failures,
        histogram_bin_width=histogram_bin_width,
    )


def run_monte_carlo(
    params: SimulationParameters,
    num_simulations: Optional[int] = None,
    seed: Optional[int] = None,
    n_workers: int = 1,
    verbose: bool = False
) -> SimulationSummary:
    """
    Orchestrates the Monte Carlo simulation of angel portfolio IRRs.

    Each trial gets its own generator seeded from a master generator, so a
    given seed reproduces the same trial sequence whatever the worker count.

    Args:
        params: Simulation parameters
        num_simulations: Number of trials. Defaults to params.portfolio.num_trials
        seed: Master random seed (None for unseeded production runs)
        n_workers: Worker processes. 1 runs the trials in-process
        verbose: Log every trial's IRR

    Returns:
        SimulationSummary with per-trial IRRs in percent
    """
    if num_simulations is None:
        num_simulations = params.portfolio.num_trials
    else:
        # Same rules as the configured trial count
        PortfolioConfig(
            num_trials=num_simulations,
            portfolio_size=params.portfolio.portfolio_size,
            investment_period_years=params.portfolio.investment_period_years,
        )
    if n_workers < 1:
        raise ConfigurationError(f"n_workers must be at least 1. Got: {n_workers}")

    # Initialize master random number generator
    rng = np.random.default_rng(seed)
    trial_seeds = rng.integers(1_000_000_000, size=num_simulations)

    logging.info(f"Starting Monte Carlo simulation: {num_simulations} trials with seed={seed}, workers={n_workers}")

    irrs: List[float] = []
    failures = 0
    progress_step = max(1, num_simulations // 10)

    if n_workers == 1:
        trials = (_run_trial(params, int(s)) for s in trial_seeds)
        executor = None
    else:
        executor = ProcessPoolExecutor(max_workers=n_workers)
        chunksize = max(1, math.ceil(num_simulations / (n_workers * 4)))
        trials = executor.map(_run_trial, itertools.repeat(params), (int(s) for s in trial_seeds), chunksize=chunksize)

    try:
        for i, trial in enumerate(trials, 1):
            irrs.append(trial.irr_pct)
            if not trial.converged:
                failures += 1
            if verbose:
                logging.info(f"Trial {i}: IRR {trial.irr_pct:.3f}%")
            if num_simulations >= 100 and i % progress_step == 0:
                logging.info(f"  Progress: {i}/{num_simulations} ({i / num_simulations:.0%}) complete")
    finally:
        if executor is not None:
            executor.shutdown()

    if failures:
        logging.warning(f"IRR solver failed to converge in {failures} of {num_simulations} trials")
    logging.info(f"Monte Carlo simulation complete: {num_simulations} trials")

    return summarize(irrs, convergence_failures=failures, histogram_bin_width=params.histogram_bin_width)
