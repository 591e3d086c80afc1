"""Scenario based (SPAN-like) margin estimate for multi-leg option strategies."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..helpers.dateutils import year_fraction
from ..helpers.numeric import round_currency
from ..logutils import logger
from ..models import MarginResult, MarketContext, OptionLeg, ScenarioGrid
from ..pricing import PriceCache, forward_price, try_price
from .scenarios import Scenario, generate_scenarios


@dataclass(frozen=True)
class ScenarioPnL:
    """Re-priced value of the leg set in one stress scenario."""

    scenario: Scenario
    value: float
    pnl: float
    fallbacks: int = 0


def entry_premium(leg: OptionLeg) -> float:
    """Return the leg's entry premium, ``0`` when unknown."""
    premium = leg.premium
    if premium is None or not math.isfinite(premium):
        return 0.0
    return premium


def current_value(legs: Iterable[OptionLeg], lot_size: int) -> float:
    """Signed value of ``legs`` at their entry premiums (long +, short -)."""
    return sum(leg.sign * entry_premium(leg) * leg.quantity(lot_size) for leg in legs)


def gross_short_premium(legs: Iterable[OptionLeg], lot_size: int) -> float:
    """Total premium received on short legs."""
    return sum(entry_premium(leg) * leg.quantity(lot_size) for leg in legs if leg.is_short)


class MarginEngine:
    """Stress the leg set over a spot/volatility grid and report the worst loss.

    ``grid`` fixes the stress grid for every call; when omitted a fresh
    :class:`ScenarioGrid` is built from configuration per calculation.
    ``price_cache`` is an optional caller-owned memo for pricing calls.
    """

    def __init__(
        self,
        grid: ScenarioGrid | None = None,
        *,
        price_cache: PriceCache | None = None,
    ) -> None:
        self.grid = grid
        self.price_cache = price_cache

    def _grid(self, grid: ScenarioGrid | None) -> ScenarioGrid:
        if grid is not None:
            return grid
        if self.grid is not None:
            return self.grid
        return ScenarioGrid.from_config()

    def scenario_pnls(
        self,
        legs: Sequence[OptionLeg],
        market: MarketContext,
        grid: ScenarioGrid | None = None,
    ) -> list[ScenarioPnL]:
        """Return the P&L of ``legs`` in every scenario of the grid.

        P&L is measured against the entry-premium value of the leg set. Each
        leg keeps its own time to expiry and implied volatility; the spot
        move and the relative volatility shift are shared.
        """
        legs = list(legs or [])
        if not legs:
            return []
        grid = self._grid(grid)
        as_of = market.valuation_time()
        lot_size = market.lot_size
        rate = market.risk_free_rate
        baseline = current_value(legs, lot_size)
        expiries = [year_fraction(leg.expiry, as_of) for leg in legs]

        rows: list[ScenarioPnL] = []
        for scenario in generate_scenarios(market.spot, grid):
            value = 0.0
            fallbacks = 0
            for leg, t in zip(legs, expiries):
                outcome = try_price(
                    leg.option_type,
                    forward_price(scenario.spot, t, rate, market.dividend_yield),
                    leg.strike,
                    t,
                    rate,
                    scenario.volatility(leg.implied_volatility),
                    cache=self.price_cache,
                )
                if outcome.is_fallback:
                    fallbacks += 1
                value += leg.sign * outcome.price * leg.quantity(lot_size)
            rows.append(ScenarioPnL(scenario, value, value - baseline, fallbacks))
        return rows

    def calculate(
        self,
        legs: Sequence[OptionLeg],
        market: MarketContext,
        grid: ScenarioGrid | None = None,
    ) -> MarginResult:
        """Return span, exposure and total margin for ``legs``."""
        legs = list(legs or [])
        if not legs:
            return MarginResult()
        grid = self._grid(grid)

        rows = self.scenario_pnls(legs, market, grid)
        exposure_margin = grid.exposure_percent * gross_short_premium(legs, market.lot_size)
        span_margin = 0.0
        if rows:
            worst = min(rows, key=lambda row: row.pnl)
            span_margin = max(0.0, -worst.pnl)
            logger.debug(
                f"[margin] worst scenario move={worst.scenario.move:+.2%} "
                f"vol_shift={worst.scenario.vol_shift:+.0%} pnl={worst.pnl:.2f}"
            )
        total = round_currency(max(span_margin, exposure_margin))

        fallbacks = sum(row.fallbacks for row in rows)
        if fallbacks:
            logger.debug(f"[margin] {fallbacks} pricing calls fell back to intrinsic value")
        logger.debug(f"[margin] span={span_margin:.2f} exposure={exposure_margin:.2f} total={total}")
        return MarginResult(
            span_margin=span_margin,
            exposure_margin=exposure_margin,
            total_margin=total,
        )


def calculate_margin(
    legs: Sequence[OptionLeg],
    market: MarketContext,
    scenario: ScenarioGrid | None = None,
    *,
    price_cache: PriceCache | None = None,
) -> MarginResult:
    """Return the :class:`MarginResult` for ``legs`` under ``market``."""
    return MarginEngine(scenario, price_cache=price_cache).calculate(legs, market)


__all__ = [
    "MarginEngine",
    "ScenarioPnL",
    "calculate_margin",
    "current_value",
    "entry_premium",
    "gross_short_premium",
]
