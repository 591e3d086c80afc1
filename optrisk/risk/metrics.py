"""Summarize a payoff curve into max profit/loss, breakevens, ROI and POP.

The unlimited profit/loss flags come from a boundary-trend heuristic: when
the extreme value sits within the first or last few points of the sweep and
the payoff keeps trending in the same direction near that edge, the extreme
is assumed to continue beyond the sampled range. :func:`analytic_unlimited`
computes the same classification exactly from the legs.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence

from ..helpers.dateutils import latest_expiry, year_fraction
from ..helpers.interpolation import EPSILON, iter_zero_crossings
from ..helpers.numeric import is_finite, round_currency, round_to, safe_float
from ..logutils import logger
from ..models import OptionLeg, OptionType, PayoffPoint, StrategyMetrics
from ..pricing import norm_cdf
from .payoff import expiry_payoff

MIN_TREND_POINTS = 10
EDGE_POINTS = 5
TREND_WINDOW = 15
TREND_RATIO = 0.6
NEUTRAL_POP = 50.0


def _coerce_point(item: PayoffPoint | Mapping[str, Any]) -> PayoffPoint | None:
    if isinstance(item, PayoffPoint):
        point = item
    elif isinstance(item, Mapping):
        point = PayoffPoint(
            safe_float(item.get("at"), fallback=math.nan),
            safe_float(item.get("payoff"), fallback=math.nan),
        )
    else:
        return None
    return point if is_finite(point.at) else None


def _sorted_points(curve: Iterable[PayoffPoint | Mapping[str, Any]]) -> list[PayoffPoint]:
    points = (_coerce_point(item) for item in curve)
    return sorted((p for p in points if p is not None), key=lambda p: p.at)


def _extremes(points: Sequence[PayoffPoint]) -> tuple[float, int, float, int]:
    """Return ``(max, max_idx, min, min_idx)`` over finite payoffs.

    Indices are ``-1`` and values ``0`` when no finite payoff exists.
    """
    max_val, max_idx = -math.inf, -1
    min_val, min_idx = math.inf, -1
    for idx, point in enumerate(points):
        value = point.payoff
        if not is_finite(value):
            continue
        if value > max_val:
            max_val, max_idx = value, idx
        if value < min_val:
            min_val, min_idx = value, idx
    if max_idx == -1:
        return 0.0, -1, 0.0, -1
    return max_val, max_idx, min_val, min_idx


def _count_steps(points: Sequence[PayoffPoint], *, rising: bool) -> int:
    count = 0
    for prev, cur in zip(points, points[1:]):
        if rising and cur.payoff > prev.payoff:
            count += 1
        elif not rising and cur.payoff < prev.payoff:
            count += 1
    return count


def _trend_holds(window: Sequence[PayoffPoint], *, rising: bool) -> bool:
    return _count_steps(window, rising=rising) >= math.floor((len(window) - 1) * TREND_RATIO)


def _edge_trend(
    points: Sequence[PayoffPoint],
    index: int,
    *,
    low_rising: bool,
    high_rising: bool,
) -> bool:
    n = len(points)
    if index == -1 or n < MIN_TREND_POINTS:
        return False
    if index <= EDGE_POINTS:
        return _trend_holds(points[: min(TREND_WINDOW, n)], rising=low_rising)
    if index >= n - EDGE_POINTS:
        return _trend_holds(points[-TREND_WINDOW:], rising=high_rising)
    return False


def is_profit_unlimited(points: Sequence[PayoffPoint], max_index: int) -> bool:
    """Classify the maximum profit as unlimited from the trend at the sweep edges.

    Near the low edge the payoff must fall as spot rises (long put shape);
    near the high edge it must keep rising (long call shape).
    """
    return _edge_trend(points, max_index, low_rising=False, high_rising=True)


def is_loss_unlimited(points: Sequence[PayoffPoint], min_index: int) -> bool:
    """Classify the maximum loss as unlimited from the trend at the sweep edges.

    Near the low edge the payoff must improve as spot rises (short put
    shape); near the high edge it must keep falling (short call shape).
    """
    return _edge_trend(points, min_index, low_rising=True, high_rising=False)


def analytic_unlimited(legs: Iterable[OptionLeg]) -> tuple[bool, bool]:
    """Return ``(profit_unlimited, loss_unlimited)`` from the net payoff slopes.

    At expiry the payoff is piecewise linear: beyond the highest strike its
    slope is the signed call lot count, below the lowest strike the signed put
    lot count drives the payoff as spot falls towards zero.
    """
    upside = 0
    downside = 0
    for leg in legs:
        if leg.option_type is OptionType.CALL:
            upside += leg.sign * leg.lots
        else:
            downside += leg.sign * leg.lots
    return upside > 0 or downside > 0, upside < 0 or downside < 0


def breakeven_points(points: Sequence[PayoffPoint], *, eps: float = EPSILON) -> list[float]:
    """Return sorted, 2-decimal deduplicated spots where the payoff is zero."""
    crossings = iter_zero_crossings(((p.at, p.payoff) for p in points), eps=eps)
    return sorted({round_to(x, 2) for x in crossings if is_finite(x)})


def _prob_above(spot: float, level: float, rate: float, vol: float, t: float) -> float:
    """Lognormal ``P(S_T > level)`` under drift ``rate``."""
    if level <= 0:
        return 1.0
    if math.isinf(level):
        return 0.0
    d2 = (math.log(spot / level) + (rate - 0.5 * vol * vol) * t) / (vol * math.sqrt(t))
    return norm_cdf(d2)


def _test_point(low: float, high: float) -> float:
    if math.isinf(low):
        return high * 0.9
    if math.isinf(high):
        return low * 1.1
    return (low + high) / 2.0


def probability_of_profit(
    breakevens: Sequence[float],
    legs: Sequence[OptionLeg],
    underlying_price: float,
    risk_free_rate: float = 0.0,
    *,
    as_of: datetime | None = None,
    sample_when_flat: bool = False,
) -> float:
    """Return the probability (0-100) that the strategy ends in profit.

    The real line is split at the breakevens; each interval is classified by
    the expiry payoff at an interior test point, and the lognormal mass of
    the profitable intervals is summed at the latest leg expiry using the
    arithmetic mean of the legs' implied volatilities.

    Without breakevens the result is a neutral 50. With
    ``sample_when_flat`` the payoff is sampled at the underlying price
    instead and 100 or 0 is returned.
    """
    legs = list(legs or [])
    if not legs:
        return NEUTRAL_POP
    if not breakevens:
        if not sample_when_flat:
            return NEUTRAL_POP
        sample = expiry_payoff(legs, underlying_price, 1)
        if sample > 0:
            return 100.0
        if sample < 0:
            return 0.0
        return NEUTRAL_POP

    avg_iv = sum(leg.implied_volatility for leg in legs) / len(legs)
    if not is_finite(avg_iv) or avg_iv <= 0:
        return NEUTRAL_POP
    if not is_finite(underlying_price) or underlying_price <= 0:
        return NEUTRAL_POP

    moment = as_of or datetime.now()
    t = year_fraction(latest_expiry(leg.expiry for leg in legs), moment)
    bounds = [-math.inf, *sorted(breakevens), math.inf]

    probability = 0.0
    for low, high in zip(bounds, bounds[1:]):
        if expiry_payoff(legs, _test_point(low, high), 1) <= 0:
            continue
        mass = _prob_above(underlying_price, low, risk_free_rate, avg_iv, t) - _prob_above(
            underlying_price, high, risk_free_rate, avg_iv, t
        )
        probability += max(mass, 0.0)

    if not is_finite(probability):
        return NEUTRAL_POP
    return min(max(probability * 100.0, 0.0), 100.0)


def calculate_strategy_metrics(
    payoff_curve: Sequence[PayoffPoint | Mapping[str, Any]],
    total_investment: float,
    legs: Sequence[OptionLeg],
    underlying_price: float,
    risk_free_rate: float = 0.0,
    *,
    as_of: datetime | None = None,
    analytic: bool = False,
    sample_when_flat: bool = False,
) -> StrategyMetrics:
    """Return :class:`StrategyMetrics` for ``payoff_curve``.

    ``payoff_curve`` need not be sorted. Currency values are rounded to whole
    units and percentages to two decimals. ``analytic`` switches the
    unlimited flags to :func:`analytic_unlimited`; ``sample_when_flat`` is
    forwarded to :func:`probability_of_profit`. Never raises.
    """
    points = _sorted_points(payoff_curve or [])
    if not points:
        return StrategyMetrics()
    legs = list(legs or [])
    max_profit, max_idx, max_loss, min_idx = _extremes(points)

    if analytic and legs:
        profit_unlimited, loss_unlimited = analytic_unlimited(legs)
    else:
        profit_unlimited = is_profit_unlimited(points, max_idx)
        loss_unlimited = is_loss_unlimited(points, min_idx)

    roi = 0.0
    if is_finite(total_investment) and total_investment != 0 and is_finite(max_profit):
        roi = max_profit / abs(total_investment) * 100.0

    breakevens = breakeven_points(points)
    pop = probability_of_profit(
        breakevens,
        legs,
        underlying_price,
        risk_free_rate,
        as_of=as_of,
        sample_when_flat=sample_when_flat,
    )
    logger.debug(
        f"[metrics] points={len(points)} max={max_profit:.2f} min={max_loss:.2f} "
        f"breakevens={breakevens} pop={pop:.2f}"
    )

    return StrategyMetrics(
        max_profit=round_currency(max_profit),
        max_loss=round_currency(max_loss),
        is_max_profit_unlimited=profit_unlimited,
        is_max_loss_unlimited=loss_unlimited,
        roi=round_to(roi, 2),
        pop=round_to(pop, 2),
        breakeven_points=breakevens,
    )


__all__ = [
    "analytic_unlimited",
    "breakeven_points",
    "calculate_strategy_metrics",
    "is_loss_unlimited",
    "is_profit_unlimited",
    "probability_of_profit",
]
