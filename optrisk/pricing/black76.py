"""Black-76 pricing on forward prices with an intrinsic-value fallback."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..helpers.dateutils import MIN_TIME_TO_EXPIRY
from ..models import OptionType
from .distribution import norm_cdf, norm_pdf

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from .cache import PriceCache

# Below this total standard deviation the model collapses to intrinsic value
_MIN_STDDEV = 1e-12
# exp() overflows beyond ~709
_MAX_EXPONENT = 700.0


class PriceSource(str, Enum):
    """Which branch of :func:`try_price` produced a price."""

    MODEL = "model"
    INTRINSIC = "intrinsic"


@dataclass(frozen=True)
class PriceOutcome:
    """Tagged pricing result: model price or intrinsic fallback."""

    price: float
    source: PriceSource

    @property
    def is_fallback(self) -> bool:
        return self.source is PriceSource.INTRINSIC


@dataclass(frozen=True)
class OptionGreeks:
    """Black-76 price and sensitivities for a single option."""

    price: float
    delta: float      # per 1.0 move in the forward
    gamma: float      # change in delta per 1.0 move in the forward
    vega: float       # per 1 vol point (0.01)
    theta: float      # per calendar day


def intrinsic_value(option_type: OptionType, forward: float, strike: float) -> float:
    """Return the undiscounted intrinsic value of the option."""
    if option_type is OptionType.CALL:
        return max(forward - strike, 0.0)
    return max(strike - forward, 0.0)


def forward_price(
    spot: float,
    time_to_expiry: float,
    risk_free_rate: float = 0.0,
    dividend_yield: float = 0.0,
) -> float:
    """Return the forward ``S * exp((r - q) * T)``."""
    exponent = (risk_free_rate - dividend_yield) * time_to_expiry
    if abs(exponent) > _MAX_EXPONENT:
        return math.inf if exponent > 0 else 0.0
    return spot * math.exp(exponent)


def _d1_d2(forward: float, strike: float, stddev: float) -> tuple[float, float]:
    d1 = (math.log(forward / strike) + 0.5 * stddev * stddev) / stddev
    return d1, d1 - stddev


def black76_price(
    option_type: OptionType,
    forward: float,
    strike: float,
    time_to_expiry: float,
    risk_free_rate: float = 0.0,
    volatility: float = 0.2,
) -> float:
    """Return the discounted Black-76 price of a European option.

    Inputs must be valid (positive forward, strike and ``volatility * sqrt(T)``);
    use :func:`try_price` for a version that tolerates any input.
    """
    stddev = volatility * math.sqrt(time_to_expiry)
    discount = math.exp(-risk_free_rate * time_to_expiry)
    d1, d2 = _d1_d2(forward, strike, stddev)
    if option_type is OptionType.CALL:
        return discount * (forward * norm_cdf(d1) - strike * norm_cdf(d2))
    return discount * (strike * norm_cdf(-d2) - forward * norm_cdf(-d1))


def _model_inputs_valid(
    forward: float, strike: float, time_to_expiry: float, risk_free_rate: float, volatility: float
) -> bool:
    values = (forward, strike, time_to_expiry, risk_free_rate, volatility)
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
        return False
    if forward <= 0 or strike <= 0 or time_to_expiry <= 0 or volatility <= 0:
        return False
    if abs(risk_free_rate * time_to_expiry) > _MAX_EXPONENT:
        return False
    return volatility * math.sqrt(time_to_expiry) > _MIN_STDDEV


def _fallback(option_type: OptionType, forward: float, strike: float) -> PriceOutcome:
    value = intrinsic_value(option_type, forward, strike)
    if not math.isfinite(value):
        value = 0.0
    return PriceOutcome(value, PriceSource.INTRINSIC)


def try_price(
    option_type: OptionType,
    forward: float,
    strike: float,
    time_to_expiry: float,
    risk_free_rate: float = 0.0,
    volatility: float = 0.2,
    *,
    cache: "PriceCache | None" = None,
) -> PriceOutcome:
    """Price an option, taking the intrinsic path on any numeric singularity.

    ``time_to_expiry`` at or below zero is floored to one day. The model
    branch is used only when its inputs are valid and its output is finite;
    otherwise the intrinsic value ``max(F - K, 0)`` / ``max(K - F, 0)`` is
    returned. This function never raises.
    """
    if not (isinstance(time_to_expiry, (int, float)) and time_to_expiry > 0):
        time_to_expiry = MIN_TIME_TO_EXPIRY

    if cache is not None:
        key = (option_type, forward, strike, time_to_expiry, risk_free_rate, volatility)
        hit = cache.get(key)
        if hit is not None:
            return hit

    if _model_inputs_valid(forward, strike, time_to_expiry, risk_free_rate, volatility):
        price = black76_price(option_type, forward, strike, time_to_expiry, risk_free_rate, volatility)
        outcome = (
            PriceOutcome(max(price, 0.0), PriceSource.MODEL)
            if math.isfinite(price)
            else _fallback(option_type, forward, strike)
        )
    else:
        outcome = _fallback(option_type, forward, strike)

    if cache is not None:
        cache.put(key, outcome)
    return outcome


def black76_greeks(
    option_type: OptionType,
    forward: float,
    strike: float,
    time_to_expiry: float,
    risk_free_rate: float = 0.0,
    volatility: float = 0.2,
) -> OptionGreeks:
    """Return price and forward sensitivities for an option.

    Degenerate inputs yield the intrinsic price with a step delta and zero
    higher-order greeks.
    """
    if not (isinstance(time_to_expiry, (int, float)) and time_to_expiry > 0):
        time_to_expiry = MIN_TIME_TO_EXPIRY
    if not _model_inputs_valid(forward, strike, time_to_expiry, risk_free_rate, volatility):
        price = _fallback(option_type, forward, strike).price
        if option_type is OptionType.CALL:
            delta = 1.0 if forward > strike else 0.0
        else:
            delta = -1.0 if forward < strike else 0.0
        return OptionGreeks(price=price, delta=delta, gamma=0.0, vega=0.0, theta=0.0)

    sqrt_t = math.sqrt(time_to_expiry)
    stddev = volatility * sqrt_t
    discount = math.exp(-risk_free_rate * time_to_expiry)
    d1, _ = _d1_d2(forward, strike, stddev)
    price = black76_price(option_type, forward, strike, time_to_expiry, risk_free_rate, volatility)
    pdf = norm_pdf(d1)

    if option_type is OptionType.CALL:
        delta = discount * norm_cdf(d1)
    else:
        delta = discount * (norm_cdf(d1) - 1.0)
    gamma = discount * pdf / (forward * stddev)
    vega = discount * forward * pdf * sqrt_t / 100.0
    theta_year = -discount * forward * pdf * volatility / (2.0 * sqrt_t) + risk_free_rate * price
    return OptionGreeks(
        price=price,
        delta=delta,
        gamma=gamma,
        vega=vega,
        theta=theta_year / 365.0,
    )


__all__ = [
    "OptionGreeks",
    "PriceOutcome",
    "PriceSource",
    "black76_greeks",
    "black76_price",
    "forward_price",
    "intrinsic_value",
    "try_price",
]
