"""Expiry and mark-to-market payoff curves for a leg set."""

from __future__ import annotations

from typing import Iterable, Sequence

from ..config import get as cfg_get
from ..helpers.dateutils import year_fraction
from ..models import MarketContext, OptionLeg, PayoffPoint
from ..pricing import PriceCache, forward_price, intrinsic_value, try_price
from .margin import current_value, entry_premium


def total_investment(legs: Iterable[OptionLeg], lot_size: int) -> float:
    """Net premium of the strategy: positive for a debit, negative for a credit."""
    return current_value(legs, lot_size)


def expiry_payoff(legs: Iterable[OptionLeg], spot: float, lot_size: int) -> float:
    """Return the P&L of ``legs`` held to expiry with the underlying at ``spot``.

    Legs without a premium are counted at zero cost.
    """
    total = 0.0
    for leg in legs:
        intrinsic = intrinsic_value(leg.option_type, spot, leg.strike)
        total += leg.sign * (intrinsic - entry_premium(leg)) * leg.quantity(lot_size)
    return total


def current_payoff(
    legs: Sequence[OptionLeg],
    spot: float,
    market: MarketContext,
    *,
    price_cache: PriceCache | None = None,
) -> float:
    """Return the mark-to-market P&L of ``legs`` if the underlying moved to ``spot`` now."""
    as_of = market.valuation_time()
    rate = market.risk_free_rate
    total = 0.0
    for leg in legs:
        t = year_fraction(leg.expiry, as_of)
        outcome = try_price(
            leg.option_type,
            forward_price(spot, t, rate, market.dividend_yield),
            leg.strike,
            t,
            rate,
            leg.implied_volatility,
            cache=price_cache,
        )
        total += leg.sign * (outcome.price - entry_premium(leg)) * leg.quantity(market.lot_size)
    return total


def spot_sweep(
    spot: float,
    range_pct: float | None = None,
    points: int | None = None,
) -> list[float]:
    """Return ``points`` evenly spaced spots within ``spot * (1 +/- range_pct)``."""
    if range_pct is None:
        range_pct = float(cfg_get("PAYOFF_RANGE_PCT", 0.15))
    if points is None:
        points = int(cfg_get("PAYOFF_POINTS", 101))
    if spot <= 0 or points < 1:
        return []
    if points == 1:
        return [spot]
    low = spot * max(0.0, 1.0 - range_pct)
    high = spot * (1.0 + range_pct)
    step = (high - low) / (points - 1)
    return [low + i * step for i in range(points)]


def payoff_curve(
    legs: Sequence[OptionLeg],
    market: MarketContext,
    spots: Sequence[float] | None = None,
    *,
    at_expiry: bool = True,
    price_cache: PriceCache | None = None,
) -> list[PayoffPoint]:
    """Return the payoff of ``legs`` across ``spots`` (default :func:`spot_sweep`)."""
    legs = list(legs or [])
    if not legs:
        return []
    if spots is None:
        spots = spot_sweep(market.spot)
    if at_expiry:
        return [PayoffPoint(s, expiry_payoff(legs, s, market.lot_size)) for s in spots]
    return [
        PayoffPoint(s, current_payoff(legs, s, market, price_cache=price_cache))
        for s in spots
    ]


__all__ = [
    "current_payoff",
    "expiry_payoff",
    "payoff_curve",
    "spot_sweep",
    "total_investment",
]
