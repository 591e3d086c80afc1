"""Option pricing model and distribution helpers."""

from .black76 import (
    OptionGreeks,
    PriceOutcome,
    PriceSource,
    black76_greeks,
    black76_price,
    forward_price,
    intrinsic_value,
    try_price,
)
from .cache import PriceCache
from .distribution import norm_cdf, norm_pdf

__all__ = [
    "OptionGreeks",
    "PriceCache",
    "PriceOutcome",
    "PriceSource",
    "black76_greeks",
    "black76_price",
    "forward_price",
    "intrinsic_value",
    "norm_cdf",
    "norm_pdf",
    "try_price",
]
