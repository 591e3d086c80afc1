"""Standard normal distribution helpers."""

from __future__ import annotations

import math

# Abramowitz & Stegun 7.1.26, |error| <= 1.5e-7 on erf
_P = 0.3275911
_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429

_INV_SQRT2 = 1.0 / math.sqrt(2.0)
_INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)


def _erf(x: float) -> float:
    sign = -1.0 if x < 0 else 1.0
    x = abs(x)
    t = 1.0 / (1.0 + _P * x)
    poly = ((((_A5 * t + _A4) * t + _A3) * t + _A2) * t + _A1) * t
    return sign * (1.0 - poly * math.exp(-x * x))


def norm_cdf(x: float) -> float:
    """Return the standard normal cumulative distribution function.

    Closed-form polynomial approximation, cheap enough to run inside the
    stress-test loops. ``NaN`` propagates; infinities map to 0 and 1.
    """
    if math.isnan(x):
        return math.nan
    if math.isinf(x):
        return 1.0 if x > 0 else 0.0
    return 0.5 * (1.0 + _erf(x * _INV_SQRT2))


def norm_pdf(x: float) -> float:
    """Return the standard normal probability density function."""
    return _INV_SQRT_2PI * math.exp(-0.5 * x * x)


__all__ = ["norm_cdf", "norm_pdf"]
