"""Linear interpolation helpers used for breakeven detection."""

from __future__ import annotations

import math
from typing import Iterable, Iterator, Tuple

EPSILON = 1e-6


def changes_sign(y0: float, y1: float) -> bool:
    """Return ``True`` when ``y0`` and ``y1`` lie strictly on opposite sides of zero."""
    return (y0 < 0 < y1) or (y0 > 0 > y1)


def zero_crossing(x0: float, y0: float, x1: float, y1: float) -> float:
    """Return the ``x`` where the segment ``(x0, y0)``-``(x1, y1)`` hits zero.

    The caller guarantees ``y0 != y1``.
    """
    t = -y0 / (y1 - y0)
    return x0 + t * (x1 - x0)


def iter_zero_crossings(
    points: Iterable[Tuple[float, float]], *, eps: float = EPSILON
) -> Iterator[float]:
    """Yield the zero crossings of a polyline given as sorted ``(x, y)`` pairs.

    A vertex whose ``|y|`` is below ``eps`` is reported as a crossing on its
    own. Strict sign changes between neighbours are linearly interpolated.
    Non-finite ``y`` values break the polyline: no crossing is interpolated
    across them.
    """
    prev: Tuple[float, float] | None = None
    for x1, y1 in points:
        if not math.isfinite(y1):
            prev = None
            continue
        if abs(y1) < eps:
            yield x1
        elif prev is not None:
            x0, y0 = prev
            if abs(y0) >= eps and changes_sign(y0, y1):
                yield zero_crossing(x0, y0, x1, y1)
        prev = (x1, y1)


__all__ = ["EPSILON", "changes_sign", "iter_zero_crossings", "zero_crossing"]
