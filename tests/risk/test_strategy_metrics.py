import math
from datetime import datetime, timezone

import pytest

from optrisk.helpers.dateutils import year_fraction
from optrisk.models import PayoffPoint, StrategyMetrics
from optrisk.pricing import norm_cdf
from optrisk.risk.metrics import (
    analytic_unlimited,
    breakeven_points,
    calculate_strategy_metrics,
    probability_of_profit,
)
from optrisk.risk.payoff import payoff_curve, spot_sweep, total_investment

AS_OF = datetime(2024, 3, 1, 9, 15)
EXPIRY = "2024-03-28"


def _curve(fn, xs):
    return [PayoffPoint(x, fn(x)) for x in xs]


XS = range(0, 200, 10)


def _metrics(curve, legs=(), investment=0.0, spot=100.0):
    return calculate_strategy_metrics(curve, investment, list(legs), spot, 0.0, as_of=AS_OF)


def test_empty_curve_returns_zeroed_metrics():
    metrics = _metrics([])
    assert metrics == StrategyMetrics()
    assert metrics.pop == 0
    assert metrics.breakeven_points == []


def test_single_crossing_breakeven():
    metrics = _metrics([PayoffPoint(90, -10), PayoffPoint(110, 10)])
    assert metrics.breakeven_points == [100.0]


def test_breakeven_matches_linear_interpolation():
    x0, y0, x1, y1 = 1.0, -2.0, 3.0, 6.0
    (be,) = breakeven_points([PayoffPoint(x0, y0), PayoffPoint(x1, y1)])
    assert be == pytest.approx(x0 - y0 * (x1 - x0) / (y1 - y0), abs=1e-6)


def test_unsorted_mapping_points_are_accepted():
    metrics = _metrics([{"at": 110, "payoff": 10}, {"at": 90, "payoff": -10}])
    assert metrics.breakeven_points == [100.0]
    assert metrics.max_profit == 10
    assert metrics.max_loss == -10


def test_zero_payoff_vertex_counts_once():
    assert breakeven_points(_curve(lambda x: x - 2, [1, 2, 3])) == [2.0]
    touching = [PayoffPoint(1, 5), PayoffPoint(2, 1e-9), PayoffPoint(3, 6)]
    assert breakeven_points(touching) == [2.0]


def test_non_finite_payoffs_are_skipped():
    curve = [
        PayoffPoint(1, math.nan),
        PayoffPoint(2, 5.0),
        PayoffPoint(3, math.inf),
        PayoffPoint(4, -3.0),
    ]
    metrics = _metrics(curve)
    assert metrics.max_profit == 5
    assert metrics.max_loss == -3
    assert metrics.breakeven_points == []

    nothing = _metrics([PayoffPoint(1, math.nan), PayoffPoint(2, math.inf)])
    assert nothing.max_profit == 0
    assert nothing.max_loss == 0


@pytest.mark.parametrize(
    "fn, profit_unlimited, loss_unlimited",
    [
        (lambda x: max(x - 100, 0) - 5, True, False),   # long call
        (lambda x: 5 - max(x - 100, 0), False, True),   # short call
        (lambda x: max(100 - x, 0) - 5, True, False),   # long put
        (lambda x: 5 - max(100 - x, 0), False, True),   # short put
    ],
)
def test_unlimited_flags_from_boundary_trend(fn, profit_unlimited, loss_unlimited):
    metrics = _metrics(_curve(fn, XS))
    assert metrics.is_max_profit_unlimited is profit_unlimited
    assert metrics.is_max_loss_unlimited is loss_unlimited


def test_short_curves_are_never_unlimited():
    metrics = _metrics(_curve(lambda x: x - 50, range(0, 90, 10)))
    assert metrics.is_max_profit_unlimited is False
    assert metrics.is_max_loss_unlimited is False


def test_iron_condor_metrics(iron_condor, market):
    spots = [float(s) for s in range(17000, 18001, 10)]
    curve = payoff_curve(iron_condor, market, spots)
    investment = total_investment(iron_condor, market.lot_size)

    metrics = calculate_strategy_metrics(
        curve, investment, iron_condor, market.spot, 0.0, as_of=AS_OF
    )

    assert metrics.max_profit == 130 * 75
    assert metrics.max_loss == -70 * 75
    assert metrics.is_max_profit_unlimited is False
    assert metrics.is_max_loss_unlimited is False
    assert metrics.roi == 100.0
    assert metrics.breakeven_points == [17370.0, 17630.0]

    t = year_fraction(EXPIRY, AS_OF)
    vol = 0.2

    def above(k):
        return norm_cdf((math.log(market.spot / k) - 0.5 * vol * vol * t) / (vol * math.sqrt(t)))

    expected = (above(17370.0) - above(17630.0)) * 100
    assert metrics.pop == pytest.approx(expected, abs=0.01)
    assert 0 < metrics.pop < 50


def test_long_call_metrics(make_leg, market):
    legs = [make_leg("B", "CE", 17500, 100)]
    curve = payoff_curve(legs, market, spot_sweep(market.spot))
    metrics = calculate_strategy_metrics(
        curve, total_investment(legs, 75), legs, market.spot, 0.0, as_of=AS_OF
    )
    assert metrics.breakeven_points == [pytest.approx(17600.0)]
    assert metrics.is_max_profit_unlimited is True
    assert metrics.is_max_loss_unlimited is False
    assert metrics.max_loss == -7500
    assert 0 < metrics.pop < 50


def test_pop_is_neutral_without_breakevens(iron_condor):
    metrics = _metrics(_curve(lambda x: 10, range(20)), legs=iron_condor, spot=17500.0)
    assert metrics.breakeven_points == []
    assert metrics.pop == 50.0


def test_pop_sampling_option_for_flat_curves(make_leg):
    winner = [make_leg("B", "CE", 17000, 0.0)]
    loser = [make_leg("S", "CE", 17000, 0.0)]
    assert probability_of_profit([], winner, 17500.0, as_of=AS_OF) == 50.0
    assert probability_of_profit([], winner, 17500.0, as_of=AS_OF, sample_when_flat=True) == 100.0
    assert probability_of_profit([], loser, 17500.0, as_of=AS_OF, sample_when_flat=True) == 0.0


def test_pop_is_neutral_without_volatility(make_leg):
    legs = [make_leg("B", "CE", 17500, 100, iv=0.0)]
    assert probability_of_profit([17600.0], legs, 17500.0, as_of=AS_OF) == 50.0


def test_roi_is_zero_without_investment():
    metrics = _metrics([PayoffPoint(90, -10), PayoffPoint(110, 10)], investment=0.0)
    assert metrics.roi == 0.0


def test_analytic_unlimited(make_leg, iron_condor):
    assert analytic_unlimited([make_leg("B", "CE", 100)]) == (True, False)
    assert analytic_unlimited([make_leg("S", "PE", 100)]) == (False, True)
    assert analytic_unlimited([make_leg("S", "CE", 100), make_leg("S", "PE", 100)]) == (False, True)
    assert analytic_unlimited(iron_condor) == (False, False)


def test_analytic_flag_switches_classification(make_leg):
    legs = [make_leg("B", "CE", 100, 5)]
    # too few points for the trend heuristic
    curve = _curve(lambda x: max(x - 100, 0) - 5, [90, 100, 110, 120])
    assert _metrics(curve, legs).is_max_profit_unlimited is False
    analytic = calculate_strategy_metrics(curve, 5.0, legs, 100.0, 0.0, as_of=AS_OF, analytic=True)
    assert analytic.is_max_profit_unlimited is True
    assert analytic.roi == 300.0


def test_metrics_serialize_with_api_field_names(iron_condor, market):
    curve = payoff_curve(iron_condor, market, [17000.0, 17500.0, 18000.0])
    payload = _metrics(curve, iron_condor, spot=17500.0).as_dict()
    assert set(payload) == {
        "maxProfit",
        "maxLoss",
        "isMaxProfitUnlimited",
        "isMaxLossUnlimited",
        "roi",
        "pop",
        "breakevenPoints",
    }


def test_unknown_iv_and_aware_valuation_time(make_leg, iron_condor, market):
    unknown = [
        make_leg(leg.action.value, leg.option_type.value, leg.strike, leg.premium, iv=None)
        for leg in iron_condor
    ]
    spots = [float(s) for s in range(17000, 18001, 10)]
    curve = payoff_curve(iron_condor, market, spots)
    investment = total_investment(iron_condor, market.lot_size)

    baseline = calculate_strategy_metrics(curve, investment, iron_condor, market.spot, as_of=AS_OF)
    assert calculate_strategy_metrics(curve, investment, unknown, market.spot, as_of=AS_OF) == baseline

    aware = AS_OF.replace(tzinfo=timezone.utc)
    local = aware.astimezone().replace(tzinfo=None)
    from_aware = calculate_strategy_metrics(curve, investment, iron_condor, market.spot, as_of=aware)
    from_local = calculate_strategy_metrics(curve, investment, iron_condor, market.spot, as_of=local)
    assert from_aware == from_local
    assert 0 < from_aware.pop < 50
