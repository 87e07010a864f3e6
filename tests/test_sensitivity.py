# tests/test_sensitivity.py
import math

import pytest

from parameters import ConfigurationError, PortfolioConfig, SimulationParameters
from return_model import wiltbank_bins
from sensitivity import run_sensitivity_suite


@pytest.fixture
def base_params():
    return SimulationParameters(
        scenario=None,
        schema_version=1.0,
        portfolio=PortfolioConfig(num_trials=20, portfolio_size=10, investment_period_years=5),
        return_bins=wiltbank_bins(),
    )


def test_sensitivity_suite_runs_each_variation(base_params):
    suite = {
        'Portfolio size': {'path': ['portfolio', 'portfolio_size'], 'variation': [5, 10, 7]},
        'Base year': {'path': ['base_year'], 'variation': [0.5, 1.0], 'type': 'multiplicative'},
    }
    results = run_sensitivity_suite(base_params, suite, sims_per_run=20)

    variations, means = results['Portfolio size']
    assert variations == [5, 10, 7]
    assert len(means) == 3
    assert not math.isnan(means[0]) and not math.isnan(means[1])
    # 7 bets cannot be spread evenly over 5 years
    assert math.isnan(means[2])

    _, base_year_means = results['Base year']
    # Shifting the calendar does not change day-count based IRRs much
    assert base_year_means[0] == pytest.approx(base_year_means[1], abs=0.5)

def test_sensitivity_suite_leaves_base_params_untouched(base_params):
    suite = {'Portfolio size': {'path': ['portfolio', 'portfolio_size'], 'variation': [20]}}
    run_sensitivity_suite(base_params, suite, sims_per_run=5)
    assert base_params.portfolio.portfolio_size == 10

def test_sensitivity_suite_rejects_unknown_paths(base_params):
    suite = {'Bogus': {'path': ['portfolio', 'fund_size'], 'variation': [1]}}
    with pytest.raises(ConfigurationError):
        run_sensitivity_suite(base_params, suite, sims_per_run=5)
