import math
from datetime import timezone

import pytest

from optrisk.helpers.dateutils import MIN_TIME_TO_EXPIRY, year_fraction
from optrisk.models import MarginResult, MarketContext, ScenarioGrid
from optrisk.pricing import PriceCache
from optrisk.risk.margin import MarginEngine, calculate_margin, current_value, gross_short_premium


def test_empty_legs_return_zero_margin(market):
    assert calculate_margin([], market) == MarginResult(0.0, 0.0, 0)
    assert MarginEngine().scenario_pnls([], market) == []


def test_naked_short_call_margin_exceeds_exposure(make_leg, market):
    legs = [make_leg("S", "CE", 17500, 100)]
    result = calculate_margin(legs, market)

    assert result.exposure_margin == pytest.approx(225.0)
    assert result.span_margin > result.exposure_margin
    assert result.total_margin == math.floor(result.span_margin + 0.5)
    assert result.total_margin > 225


def test_iron_condor_margin_below_naked_legs(make_leg, market, iron_condor):
    condor = calculate_margin(iron_condor, market)
    short_call = calculate_margin([make_leg("S", "CE", 17500, 100)], market)
    short_put = calculate_margin([make_leg("S", "PE", 17500, 120)], market)

    assert condor.exposure_margin == pytest.approx(0.03 * (100 + 120) * 75)
    assert condor.total_margin < short_call.total_margin + short_put.total_margin
    assert condor.total_margin >= math.floor(condor.exposure_margin)


@pytest.mark.parametrize(
    "option_type, spots",
    [
        ("CE", [17500.0, 18000.0, 18500.0, 19000.0]),
        ("PE", [17500.0, 17000.0, 16500.0, 16000.0]),
    ],
)
def test_short_option_margin_grows_as_it_moves_in_the_money(make_leg, as_of, option_type, spots):
    legs = [make_leg("S", option_type, 17500, 100)]
    margins = [
        calculate_margin(legs, MarketContext(spot=s, lot_size=75, as_of=as_of)).total_margin
        for s in spots
    ]
    assert all(a < b for a, b in zip(margins, margins[1:]))


def test_long_only_margin_bounded_by_premium(make_leg, market):
    legs = [make_leg("B", "CE", 17500, 100), make_leg("B", "PE", 17500, 120, lots=2)]
    result = calculate_margin(legs, market)

    assert result.exposure_margin == 0.0
    assert result.span_margin <= (100 * 75 + 120 * 150) + 1e-6


def test_margin_is_idempotent(market, iron_condor):
    first = calculate_margin(iron_condor, market)
    second = calculate_margin(iron_condor, market)
    assert first == second


def test_tiny_spot_and_expired_leg_stay_finite(make_leg, as_of):
    legs = [make_leg("S", "PE", 17500, 100, expiry="2020-01-01")]
    assert year_fraction("2020-01-01", as_of) == MIN_TIME_TO_EXPIRY

    for spot in (1e-9, 0.0):
        result = calculate_margin(legs, MarketContext(spot=spot, lot_size=75, as_of=as_of))
        assert math.isfinite(result.span_margin)
        assert result.span_margin > 0
        assert isinstance(result.total_margin, int)


def test_missing_premium_is_priced_but_not_counted(make_leg, market):
    legs = [make_leg("S", "CE", 17500, None)]
    assert current_value(legs, 75) == 0.0
    assert gross_short_premium(legs, 75) == 0.0

    result = calculate_margin(legs, market)
    assert result.exposure_margin == 0.0
    assert result.span_margin > 0


def test_legs_keep_their_own_expiry(make_leg, market):
    near = make_leg("B", "CE", 17500, 0.0, expiry="2024-03-07")
    far = make_leg("B", "CE", 17500, 0.0, expiry="2024-06-27")
    grid = ScenarioGrid(spot_moves=(0.0,), vol_shifts=(0.0,))
    engine = MarginEngine(grid)

    (near_row,) = engine.scenario_pnls([near], market)
    (far_row,) = engine.scenario_pnls([far], market)
    (combo_row,) = engine.scenario_pnls([near, far], market)

    assert far_row.value > near_row.value > 0
    assert combo_row.value == pytest.approx(near_row.value + far_row.value)


def test_zero_volatility_leg_falls_back_to_intrinsic(make_leg, market):
    legs = [make_leg("B", "CE", 17000, 0.0, iv=0.0)]
    grid = ScenarioGrid(spot_moves=(0.0,), vol_shifts=(0.0,))
    (row,) = MarginEngine(grid).scenario_pnls(legs, market)
    assert row.fallbacks == 1
    assert row.value == pytest.approx(500.0 * 75)


def test_custom_grid_and_exposure(make_leg, market):
    legs = [make_leg("S", "CE", 17500, 100)]
    grid = ScenarioGrid(spot_moves=(0.0,), vol_shifts=(0.0,), exposure_percent=10.0)
    result = calculate_margin(legs, market, grid)
    assert result.exposure_margin == pytest.approx(75000.0)
    assert result.total_margin == 75000


def test_price_cache_is_reused_across_calls(market, iron_condor):
    cache = PriceCache()
    first = calculate_margin(iron_condor, market, price_cache=cache)
    misses = cache.misses
    second = calculate_margin(iron_condor, market, price_cache=cache)
    assert first == second
    assert cache.misses == misses
    assert cache.hits >= 27 * len(iron_condor)


def test_aware_valuation_time_matches_local_time(make_leg, as_of):
    legs = [make_leg("S", "CE", 17500, 100, expiry="2024-03-28T10:00:00Z")]
    aware = as_of.replace(tzinfo=timezone.utc)
    local = aware.astimezone().replace(tzinfo=None)

    result = calculate_margin(legs, MarketContext(spot=17500.0, lot_size=75, as_of=aware))
    assert result == calculate_margin(legs, MarketContext(spot=17500.0, lot_size=75, as_of=local))
    assert result.total_margin > 0


def test_unknown_iv_prices_at_default_volatility(make_leg, market):
    unknown = calculate_margin([make_leg("S", "CE", 17500, 100, iv=None)], market)
    default = calculate_margin([make_leg("S", "CE", 17500, 100, iv=0.2)], market)
    assert unknown == default


def test_nan_premium_counts_as_missing(make_leg, market):
    legs = [make_leg("S", "PE", 17500, math.nan)]
    assert current_value(legs, 75) == 0.0
    assert gross_short_premium(legs, 75) == 0.0
    assert calculate_margin(legs, market) == calculate_margin([make_leg("S", "PE", 17500, None)], market)


def test_dividend_yield_lowers_call_value(make_leg, as_of):
    legs = [make_leg("B", "CE", 17500, 0.0)]
    grid = ScenarioGrid(spot_moves=(0.0,), vol_shifts=(0.0,))
    engine = MarginEngine(grid)

    (plain,) = engine.scenario_pnls(legs, MarketContext(spot=17500.0, lot_size=75, as_of=as_of))
    (paying,) = engine.scenario_pnls(
        legs, MarketContext(spot=17500.0, lot_size=75, as_of=as_of, dividend_yield=0.05)
    )
    assert paying.value < plain.value
