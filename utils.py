# utils.py
import math
import scipy.optimize
from typing import List, Tuple, Optional, Dict, Any, Sequence
import functools

from parameters import IrrResult, Transaction

DAYS_PER_YEAR = 365.0
NEWTON_TOLERANCE = 1e-7
NEWTON_MAX_ITERATIONS = 100
# Fallback search bracket: -99.999% to 5,000%
BRACKET_LOW, BRACKET_HIGH = -0.99999, 50.0


class ConvergenceError(RuntimeError):
    """Raised when the IRR solver cannot find a root for a cash flow."""


# Net present value formula (NPV) used as a mathematical helper function by the xirr solver
def _npv_x(rate: float, cash_flows_in_years: List[Tuple[float, float]]) -> float:
    if not cash_flows_in_years: return 0.0
    return sum(amount / ((1 + rate) ** time_years) for amount, time_years in cash_flows_in_years)


def _to_years(transactions: Sequence[Transaction]) -> List[Tuple[float, float]]:
    # Day counts are taken from the earliest date, so ordering does not matter
    start_date = min(t.date for t in transactions)
    return [(float(t.amount), (t.date - start_date).days / DAYS_PER_YEAR) for t in transactions]


def _newton(cash_flows_in_years: List[Tuple[float, float]], guess: float) -> Tuple[Optional[float], int, str]:
    rate = guess
    for iteration in range(1, NEWTON_MAX_ITERATIONS + 1):
        step = 1e-6 * max(1.0, abs(rate))
        if rate - step <= -1:
            return None, iteration, "rate left the domain r > -1"
        try:
            value = _npv_x(rate, cash_flows_in_years)
            if abs(value) < NEWTON_TOLERANCE:
                return rate, iteration, ""
            derivative = (_npv_x(rate + step, cash_flows_in_years) - _npv_x(rate - step, cash_flows_in_years)) / (2 * step)
        except OverflowError:
            return None, iteration, "NPV overflowed"
        if derivative == 0 or not math.isfinite(derivative):
            return None, iteration, "derivative is numerically zero"

        new_rate = rate - value / derivative
        if not math.isfinite(new_rate) or new_rate <= -1:
            return None, iteration, "rate left the domain r > -1"
        rate = new_rate
    return None, NEWTON_MAX_ITERATIONS, "iteration limit exceeded"


def solve_irr(transactions: Sequence[Transaction], guess: float = -0.1) -> IrrResult:
    """
    Annualized XIRR of a set of dated transactions, as an explicit result.

    Newton's method with a numerical derivative runs first from guess. If it
    leaves the domain, stalls on a flat NPV or runs out of iterations, Brent's
    method takes over on a wide bracket. Never raises for non-convergence;
    check IrrResult.converged instead.
    """
    # A solution is only possible if there are both positive and negative cash flows
    if not transactions or not (any(t.amount > 0 for t in transactions) and any(t.amount < 0 for t in transactions)):
        return IrrResult(rate=None, converged=False, reason="cash flow has no sign change")

    cash_flows_in_years = _to_years(transactions)

    rate, iterations, newton_reason = _newton(cash_flows_in_years, guess)
    if rate is not None:
        return IrrResult(rate=rate, converged=True, iterations=iterations)

    try:
        rate = scipy.optimize.brentq(lambda r: _npv_x(r, cash_flows_in_years), BRACKET_LOW, BRACKET_HIGH)
    except (ValueError, RuntimeError, OverflowError, ZeroDivisionError) as e:
        return IrrResult(rate=None, converged=False, reason=f"{newton_reason}; bracket search failed: {e}", iterations=iterations)
    return IrrResult(rate=rate, converged=True, reason=f"newton: {newton_reason}", iterations=iterations)


def xirr(transactions: Sequence[Transaction], guess: float = -0.1) -> float:
    """Annualized XIRR of dated transactions. Raises ConvergenceError when no root is found."""
    result = solve_irr(transactions, guess)
    if not result.converged:
        raise ConvergenceError(result.reason)
    return result.rate


def _step(acc: Any, key: Any) -> Any:
    return acc[key] if isinstance(acc, (dict, list, tuple)) else getattr(acc, key)


def get_nested_value(data: Dict[str, Any], path: List[Any]) -> Any:
    try:
        return functools.reduce(_step, path, data)
    except (KeyError, IndexError, AttributeError, TypeError):
        return None


def set_nested_value(data: Dict[str, Any], path: List[Any], value: Any):
    for key in path[:-1]:
        data = _step(data, key)

    final_key = path[-1]
    if isinstance(data, (dict, list)):
        data[final_key] = value
    else:
        setattr(data, final_key, value)
