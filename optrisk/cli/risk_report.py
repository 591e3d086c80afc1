"""Print margin and risk metrics for a strategy stored as JSON."""
from __future__ import annotations

import argparse
import json
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, List, Mapping, Sequence

from tabulate import tabulate

from optrisk.config import get as cfg_get, lot_size_for
from optrisk.exceptions import InvalidLegError
from optrisk.helpers.dateutils import year_fraction
from optrisk.helpers.numeric import safe_float
from optrisk.logutils import log_result, logger, setup_logging
from optrisk.models import MarketContext, OptionLeg, ScenarioGrid, parse_legs
from optrisk.pricing import black76_greeks, forward_price
from optrisk.risk import MarginEngine, calculate_strategy_metrics, payoff_curve, total_investment

# Reference strategies on NIFTY at 17500 with a lot size of 75
EXAMPLE_UNDERLYING = "NIFTY"
EXAMPLE_SPOT = 17500.0
EXAMPLE_LOT_SIZE = 75
EXAMPLE_STRATEGIES: list[tuple[str, list[dict[str, Any]]]] = [
    (
        "Naked Short Call 17500 CE @ 100",
        [{"type": "CE", "action": "S", "strike": 17500, "lots": 1, "price": 100}],
    ),
    (
        "Naked Short Put 17500 PE @ 100",
        [{"type": "PE", "action": "S", "strike": 17500, "lots": 1, "price": 100}],
    ),
    (
        "Long Call 17500 CE @ 100",
        [{"type": "CE", "action": "B", "strike": 17500, "lots": 1, "price": 100}],
    ),
    (
        "Call Credit Spread 17500/17700 CE",
        [
            {"type": "CE", "action": "S", "strike": 17500, "lots": 1, "price": 100},
            {"type": "CE", "action": "B", "strike": 17700, "lots": 1, "price": 40},
        ],
    ),
    (
        "Put Credit Spread 17500/17300 PE",
        [
            {"type": "PE", "action": "S", "strike": 17500, "lots": 1, "price": 120},
            {"type": "PE", "action": "B", "strike": 17300, "lots": 1, "price": 50},
        ],
    ),
    (
        "Iron Condor 17300/17500/17500/17700",
        [
            {"type": "CE", "action": "S", "strike": 17500, "lots": 1, "price": 100},
            {"type": "CE", "action": "B", "strike": 17700, "lots": 1, "price": 40},
            {"type": "PE", "action": "S", "strike": 17500, "lots": 1, "price": 120},
            {"type": "PE", "action": "B", "strike": 17300, "lots": 1, "price": 50},
        ],
    ),
]


def _fmt_money(value: float) -> str:
    return f"{value:,.0f}"


def load_strategy(path: Path) -> dict[str, Any]:
    """Return the strategy document stored at ``path``."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidLegError(f"{path} is not valid JSON: {exc}") from exc
    if isinstance(data, list):
        data = {"legs": data}
    if not isinstance(data, Mapping) or not isinstance(data.get("legs"), list):
        raise InvalidLegError(f"{path} must contain a 'legs' list")
    return dict(data)


def build_market(
    data: Mapping[str, Any],
    *,
    spot: float | None = None,
    lot_size: int | None = None,
    underlying: str | None = None,
    rate: float | None = None,
    dividend_yield: float | None = None,
    as_of: datetime | None = None,
) -> MarketContext:
    """Combine command line overrides, the document and configuration."""
    spot = spot if spot is not None else safe_float(data.get("spot") or data.get("underlyingPrice"))
    if spot is None or spot <= 0:
        raise InvalidLegError("a positive spot price is required (--spot or 'spot')")
    underlying = underlying or data.get("underlying")
    if lot_size is None:
        lot_size = int(safe_float(data.get("lotSize")) or lot_size_for(underlying))
    if rate is None:
        rate = safe_float(data.get("riskFreeRate"), fallback=float(cfg_get("INTEREST_RATE", 0.0)))
    if dividend_yield is None:
        dividend_yield = safe_float(data.get("dividendYield"))
    if as_of is None and data.get("asOf"):
        as_of = datetime.fromisoformat(str(data["asOf"]))
    return MarketContext(
        spot=spot,
        risk_free_rate=rate,
        lot_size=lot_size,
        as_of=as_of,
        dividend_yield=dividend_yield,
    )


@log_result
def evaluate(legs: Sequence[OptionLeg], market: MarketContext) -> dict[str, Any]:
    """Return margin, metrics and the expiry payoff curve as JSON-ready data."""
    if market.as_of is None:
        market = replace(market, as_of=datetime.now())
    margin = MarginEngine(ScenarioGrid.from_config()).calculate(legs, market)
    curve = payoff_curve(legs, market)
    metrics = calculate_strategy_metrics(
        curve,
        total_investment(legs, market.lot_size),
        legs,
        market.spot,
        market.risk_free_rate,
        as_of=market.as_of,
    )
    return {
        "margin": margin.as_dict(),
        "metrics": metrics.as_dict(),
        "payoff": [p.as_dict() for p in curve],
    }


def _leg_rows(legs: Sequence[OptionLeg], market: MarketContext) -> list[list[Any]]:
    as_of = market.valuation_time()
    rows = []
    for idx, leg in enumerate(legs, start=1):
        t = year_fraction(leg.expiry, as_of)
        greeks = black76_greeks(
            leg.option_type,
            forward_price(market.spot, t, market.risk_free_rate, market.dividend_yield),
            leg.strike,
            t,
            market.risk_free_rate,
            leg.implied_volatility,
        )
        rows.append(
            [
                idx,
                leg.action.value,
                leg.option_type.value,
                f"{leg.strike:g}",
                leg.lots,
                "-" if leg.premium is None else f"{leg.premium:.2f}",
                f"{leg.implied_volatility:.1%}",
                f"{t * 365:.1f}",
                f"{greeks.price:.2f}",
                f"{greeks.delta:+.3f}",
                f"{greeks.theta:+.2f}",
            ]
        )
    return rows


def _stress_table(legs: Sequence[OptionLeg], market: MarketContext, grid: ScenarioGrid) -> str:
    rows = MarginEngine(grid).scenario_pnls(legs, market)
    table: dict[float, dict[float, float]] = {}
    for row in rows:
        table.setdefault(row.scenario.move, {})[row.scenario.vol_shift] = row.pnl
    headers = ["Spot move", *[f"IV {shift:+.0%}" for shift in grid.vol_shifts]]
    body = [
        [f"{move:+.0%}", *[_fmt_money(table[move][shift]) for shift in grid.vol_shifts]]
        for move in grid.spot_moves
    ]
    return tabulate(body, headers=headers, tablefmt="simple")


def print_report(legs: Sequence[OptionLeg], market: MarketContext) -> None:
    if market.as_of is None:
        market = replace(market, as_of=datetime.now())
    result = evaluate(legs, market)
    margin = result["margin"]
    metrics = result["metrics"]
    print(f"\n📊 Strategy report  spot={market.spot:g}  lot size={market.lot_size}")
    print(
        tabulate(
            _leg_rows(legs, market),
            headers=["#", "B/S", "Type", "Strike", "Lots", "Premium", "IV", "DTE", "Theo", "Delta", "Theta"],
            tablefmt="simple",
        )
    )
    print("\nStress P&L")
    print(_stress_table(legs, market, ScenarioGrid.from_config()))
    summary = [
        ["Span margin", _fmt_money(margin["spanMargin"])],
        ["Exposure margin", _fmt_money(margin["exposureMargin"])],
        ["Total margin", _fmt_money(margin["totalMargin"])],
        ["Max profit", "Unlimited" if metrics["isMaxProfitUnlimited"] else _fmt_money(metrics["maxProfit"])],
        ["Max loss", "Unlimited" if metrics["isMaxLossUnlimited"] else _fmt_money(metrics["maxLoss"])],
        ["ROI", f"{metrics['roi']:.2f}%"],
        ["POP", f"{metrics['pop']:.2f}%"],
        ["Breakevens", ", ".join(f"{b:g}" for b in metrics["breakevenPoints"]) or "-"],
    ]
    print()
    print(tabulate(summary, tablefmt="plain"))


def print_examples(as_of: datetime | None = None) -> None:
    """Print the margin of the reference strategies."""
    market = MarketContext(
        spot=EXAMPLE_SPOT,
        lot_size=EXAMPLE_LOT_SIZE,
        risk_free_rate=float(cfg_get("INTEREST_RATE", 0.0)),
        as_of=as_of or datetime.now(),
    )
    engine = MarginEngine(ScenarioGrid.from_config())
    rows = []
    for name, raw_legs in EXAMPLE_STRATEGIES:
        result = engine.calculate(parse_legs(raw_legs), market)
        rows.append(
            [
                name,
                _fmt_money(result.span_margin),
                _fmt_money(result.exposure_margin),
                _fmt_money(result.total_margin),
            ]
        )
    print(f"\n⚙️  {EXAMPLE_UNDERLYING} {EXAMPLE_SPOT:g}, lot size {EXAMPLE_LOT_SIZE}")
    print(tabulate(rows, headers=["Strategy", "Span", "Exposure", "Margin"], tablefmt="simple"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="optrisk-report",
        description="Estimate margin and risk metrics for an option strategy",
    )
    parser.add_argument("strategy", nargs="?", help="Path to a strategy JSON file")
    parser.add_argument("--spot", type=float, help="Underlying price (overrides the file)")
    parser.add_argument("--lot-size", type=int, help="Contract multiplier")
    parser.add_argument("--underlying", help="Underlying name used to look up the lot size")
    parser.add_argument("--rate", type=float, help="Risk free rate")
    parser.add_argument("--dividend-yield", type=float, help="Continuous dividend yield")
    parser.add_argument("--as-of", type=datetime.fromisoformat, help="Valuation time (ISO format)")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--examples", action="store_true", help="Show margin for reference strategies")
    return parser


def main(argv: List[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging()

    if args.examples:
        print_examples(args.as_of)
        return 0
    if not args.strategy:
        parser.print_usage()
        print("❌ Provide a strategy file or use --examples")
        return 1

    path = Path(args.strategy)
    if not path.is_file():
        print(f"❌ File not found: {path}")
        return 1
    try:
        data = load_strategy(path)
        legs = parse_legs(data["legs"])
        market = build_market(
            data,
            spot=args.spot,
            lot_size=args.lot_size,
            underlying=args.underlying,
            rate=args.rate,
            dividend_yield=args.dividend_yield,
            as_of=args.as_of,
        )
    except (InvalidLegError, ValueError) as exc:
        logger.error(f"Invalid strategy input {path}: {exc}")
        print(f"❌ {exc}")
        return 1

    if args.json:
        print(json.dumps(evaluate(legs, market), indent=2))
    else:
        print_report(legs, market)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
