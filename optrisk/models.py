"""Records shared by the pricing, margin and metrics engines."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping

from .config import get as cfg_get
from .exceptions import InvalidLegError
from .helpers.numeric import safe_float


class Action(str, Enum):
    """Direction of a leg."""

    BUY = "B"
    SELL = "S"

    @property
    def sign(self) -> int:
        return 1 if self is Action.BUY else -1

    @classmethod
    def parse(cls, value: Any) -> "Action":
        if isinstance(value, Action):
            return value
        text = str(value or "").strip().upper()
        if text in {"B", "BUY", "LONG"}:
            return cls.BUY
        if text in {"S", "SELL", "SHORT"}:
            return cls.SELL
        raise ValueError(f"unknown action {value!r}")

    def __str__(self) -> str:  # pragma: no cover - trivial
        return str(self.value)


class OptionType(str, Enum):
    """Call or put, using exchange suffixes as values."""

    CALL = "CE"
    PUT = "PE"

    @classmethod
    def parse(cls, value: Any) -> "OptionType":
        if isinstance(value, OptionType):
            return value
        text = str(value or "").strip().upper()
        if text in {"CE", "C", "CALL"}:
            return cls.CALL
        if text in {"PE", "P", "PUT"}:
            return cls.PUT
        raise ValueError(f"unknown option type {value!r}")

    def __str__(self) -> str:  # pragma: no cover - trivial
        return str(self.value)


def normalize_iv(value: Any) -> float:
    """Return ``value`` as an annualized decimal volatility.

    Missing or non-positive values fall back to ``DEFAULT_IV``; values above
    ``IV_PERCENT_THRESHOLD`` are treated as percentages.
    """
    default = float(cfg_get("DEFAULT_IV", 0.20))
    iv = safe_float(value)
    if iv is None or iv <= 0:
        return default
    if iv > float(cfg_get("IV_PERCENT_THRESHOLD", 3.0)):
        return iv / 100.0
    return iv


@dataclass(frozen=True)
class OptionLeg:
    """One contract position within a strategy.

    An unknown ``implied_volatility`` (``None`` or non-numeric) becomes the
    configured ``DEFAULT_IV``; zero is kept and prices at intrinsic value.
    """

    action: Action
    option_type: OptionType
    strike: float
    lots: int = 1
    premium: float | None = None
    implied_volatility: float = 0.20
    expiry: date | datetime | str | None = None

    def __post_init__(self) -> None:
        iv = safe_float(self.implied_volatility)
        if iv is None or not math.isfinite(iv):
            # unknown IV
            object.__setattr__(self, "implied_volatility", float(cfg_get("DEFAULT_IV", 0.20)))
        elif iv != self.implied_volatility:
            object.__setattr__(self, "implied_volatility", iv)

    @property
    def sign(self) -> int:
        return self.action.sign

    @property
    def is_short(self) -> bool:
        return self.action is Action.SELL

    def quantity(self, lot_size: int) -> float:
        """Return the number of underlying units controlled by the leg."""
        return self.lots * lot_size

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, index: int | None = None) -> "OptionLeg":
        """Build a leg from a dashboard leg dictionary.

        Accepts ``type``/``optionType``, ``action``, ``strike``, ``lots``,
        ``price``/``premium``, ``iv``/``impliedVolatility`` and ``expiry``.
        """
        if not isinstance(data, Mapping):
            raise InvalidLegError("leg must be a mapping", index=index)
        try:
            action = Action.parse(data.get("action"))
            option_type = OptionType.parse(data.get("type") or data.get("optionType"))
        except ValueError as exc:
            raise InvalidLegError(str(exc), index=index) from exc

        strike = safe_float(data.get("strike"))
        if strike is None or strike <= 0:
            raise InvalidLegError(f"strike must be positive, got {data.get('strike')!r}", index=index)

        raw_lots = data.get("lots", 1)
        lots = safe_float(raw_lots if raw_lots not in (None, "") else 1)
        if lots is None or lots < 1 or lots != int(lots):
            raise InvalidLegError(f"lots must be a positive integer, got {raw_lots!r}", index=index)

        premium_raw = data.get("premium", data.get("price"))
        iv_raw = data.get("impliedVolatility", data.get("iv"))
        return cls(
            action=action,
            option_type=option_type,
            strike=strike,
            lots=int(lots),
            premium=safe_float(premium_raw),
            implied_volatility=normalize_iv(iv_raw),
            expiry=data.get("expiry"),
        )

    def as_dict(self) -> dict[str, Any]:
        expiry = self.expiry.isoformat() if isinstance(self.expiry, (date, datetime)) else self.expiry
        return {
            "action": self.action.value,
            "optionType": self.option_type.value,
            "strike": self.strike,
            "lots": self.lots,
            "premium": self.premium,
            "impliedVolatility": self.implied_volatility,
            "expiry": expiry,
        }


def parse_legs(items: Iterable[Mapping[str, Any]]) -> list[OptionLeg]:
    """Convert leg dictionaries into :class:`OptionLeg` records."""
    return [OptionLeg.from_mapping(item, index=idx) for idx, item in enumerate(items or [])]


@dataclass(frozen=True)
class MarketContext:
    """Ambient pricing inputs shared by all legs in one evaluation.

    ``dividend_yield`` defaults to the configured ``DIVIDEND_YIELD``.
    """

    spot: float
    risk_free_rate: float = 0.0
    lot_size: int = 1
    as_of: datetime | None = None
    dividend_yield: float | None = None

    def __post_init__(self) -> None:
        if self.dividend_yield is None:
            q = safe_float(cfg_get("DIVIDEND_YIELD", 0.0), fallback=0.0)
            object.__setattr__(self, "dividend_yield", q)

    def valuation_time(self) -> datetime:
        return self.as_of if self.as_of is not None else datetime.now()


@dataclass(frozen=True)
class ScenarioGrid:
    """Spot and volatility shocks used for stress testing."""

    spot_moves: tuple[float, ...] = (-0.3, -0.2, -0.1, -0.05, 0.0, 0.05, 0.1, 0.2, 0.3)
    vol_shifts: tuple[float, ...] = (-0.2, 0.0, 0.2)
    exposure_percent: float = 0.03

    @classmethod
    def from_config(cls) -> "ScenarioGrid":
        default = cls()
        moves = cfg_get("SPOT_MOVES") or default.spot_moves
        shifts = cfg_get("VOL_SHIFTS") or default.vol_shifts
        exposure = cfg_get("EXPOSURE_PERCENT")
        return cls(
            spot_moves=tuple(float(m) for m in moves),
            vol_shifts=tuple(float(s) for s in shifts),
            exposure_percent=default.exposure_percent if exposure is None else float(exposure),
        )

    @property
    def size(self) -> int:
        return len(self.spot_moves) * len(self.vol_shifts)


@dataclass(frozen=True)
class MarginResult:
    """Output of the margin engine."""

    span_margin: float = 0.0
    exposure_margin: float = 0.0
    total_margin: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "spanMargin": self.span_margin,
            "exposureMargin": self.exposure_margin,
            "totalMargin": self.total_margin,
        }


@dataclass(frozen=True)
class PayoffPoint:
    """Net P&L of a leg set if held to spot ``at``."""

    at: float
    payoff: float

    def as_dict(self) -> dict[str, float]:
        return {"at": self.at, "payoff": self.payoff}


@dataclass(frozen=True)
class StrategyMetrics:
    """Decision-relevant summary of a payoff curve."""

    max_profit: int = 0
    max_loss: int = 0
    is_max_profit_unlimited: bool = False
    is_max_loss_unlimited: bool = False
    roi: float = 0.0
    pop: float = 0.0
    breakeven_points: list[float] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "maxProfit": self.max_profit,
            "maxLoss": self.max_loss,
            "isMaxProfitUnlimited": self.is_max_profit_unlimited,
            "isMaxLossUnlimited": self.is_max_loss_unlimited,
            "roi": self.roi,
            "pop": self.pop,
            "breakevenPoints": list(self.breakeven_points),
        }


__all__ = [
    "Action",
    "MarginResult",
    "MarketContext",
    "OptionLeg",
    "OptionType",
    "PayoffPoint",
    "ScenarioGrid",
    "StrategyMetrics",
    "normalize_iv",
    "parse_legs",
]
