# tests/test_utils.py
import datetime
import pytest
from types import SimpleNamespace

# Import the functions to be tested
from parameters import Transaction
from utils import ConvergenceError, xirr, solve_irr, get_nested_value, set_nested_value


def _flows(*pairs):
    return [Transaction(amount, datetime.date.fromisoformat(day)) for amount, day in pairs]

# --- Tests for the xirr function ---

def test_xirr_standard_case():
    """
    Invest $100, get back $121 one year (365 days) later: a 21% annual IRR.
    """
    cash_flows = _flows((-100, "2015-01-01"), (121, "2016-01-01"))
    assert xirr(cash_flows) == pytest.approx(0.21, abs=1e-4)

def test_xirr_two_years():
    """
    $121 back after two years is ~10%. The span crosses a leap day, so 731 days.
    """
    cash_flows = _flows((-100, "2015-01-01"), (121, "2017-01-01"))
    assert xirr(cash_flows) == pytest.approx(1.21 ** (365 / 731) - 1, abs=1e-6)

def test_xirr_negative_irr():
    cash_flows = _flows((-100, "2017-01-01"), (90, "2018-01-01")) # Lost 10% in one year
    assert xirr(cash_flows) == pytest.approx(-0.10, abs=1e-4)

def test_xirr_more_complex_flows():
    """
    Tests with multiple inflows and outflows.
    """
    cash_flows = _flows((-100, "2017-01-01"), (-50, "2018-01-01"), (80, "2019-01-01"), (150, "2020-01-01"))
    assert xirr(cash_flows) == pytest.approx(0.2025, abs=1e-4)

def test_xirr_ignores_ordering_and_guess():
    cash_flows = _flows((150, "2020-01-01"), (-50, "2018-01-01"), (-100, "2017-01-01"), (80, "2019-01-01"))
    expected = xirr(list(reversed(cash_flows)))
    assert xirr(cash_flows) == pytest.approx(expected, abs=1e-6)
    assert xirr(cash_flows, guess=0.5) == pytest.approx(expected, abs=1e-6)

def test_xirr_large_multiple():
    """A 1000x return in one year is found even though it lies far from the guess."""
    cash_flows = _flows((-1, "2016-01-01"), (1000, "2016-12-31"))
    rate = xirr(cash_flows)
    assert rate > 900

def test_xirr_total_loss_portfolio_near_minus_100():
    cash_flows = _flows((-1, "2016-01-01"), (-1, "2017-01-01"), (0.001, "2020-01-01"))
    rate = xirr(cash_flows)
    assert -1 < rate < -0.7

def test_xirr_invalid_inputs():
    """
    Tests that xirr raises ConvergenceError for cash flows without a sign change.
    """
    with pytest.raises(ConvergenceError):
        xirr(_flows((-100, "2016-01-01"), (-50, "2017-01-01")))
    with pytest.raises(ConvergenceError):
        xirr(_flows((100, "2016-01-01"), (50, "2017-01-01")))
    with pytest.raises(ConvergenceError):
        xirr([])

def test_solve_irr_returns_failure_instead_of_raising():
    result = solve_irr(_flows((-1, "2016-01-01"), (0, "2018-01-01")))
    assert result.converged is False
    assert result.rate is None
    assert "sign change" in result.reason

def test_solve_irr_zero_amounts_are_valid():
    cash_flows = _flows((-100, "2015-01-01"), (0, "2015-06-01"), (121, "2016-01-01"))
    result = solve_irr(cash_flows)
    assert result.converged is True
    assert result.rate == pytest.approx(0.21, abs=1e-4)

def test_solve_irr_duplicate_dates_do_not_crash():
    """All flows on one date make NPV flat in the rate; the solver reports failure."""
    result = solve_irr(_flows((-1, "2016-01-01"), (2, "2016-01-01")))
    assert result.converged is False

    result = solve_irr(_flows((-1, "2015-01-01"), (-1, "2015-01-01"), (2.42, "2016-01-01")))
    assert result.converged is True
    assert result.rate == pytest.approx(0.21, abs=1e-4)


# --- Tests for nested value helper functions ---

@pytest.fixture
def nested_test_data():
    """Provides a sample nested structure for testing."""
    return {
        'a': {
            'b': SimpleNamespace(c=100, d=[10, 20])
        },
        'x': 50
    }

def test_get_nested_value(nested_test_data):
    assert get_nested_value(nested_test_data, ['a', 'b', 'c']) == 100
    assert get_nested_value(nested_test_data, ['a', 'b', 'd', 1]) == 20
    assert get_nested_value(nested_test_data, ['x']) == 50
    assert get_nested_value(nested_test_data, ['a', 'z']) is None
    assert get_nested_value(nested_test_data, ['a', 'b', 'd', 5]) is None

def test_set_nested_value(nested_test_data):
    set_nested_value(nested_test_data, ['a', 'b', 'c'], 999)
    assert nested_test_data['a']['b'].c == 999

    set_nested_value(nested_test_data, ['a', 'b', 'd', 0], 11)
    assert nested_test_data['a']['b'].d == [11, 20]

    set_nested_value(nested_test_data, ['x'], 777)
    assert nested_test_data['x'] == 777
