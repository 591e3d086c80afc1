"""Exceptions raised at the input boundary of :mod:`optrisk`.

The numeric core never raises; these errors are reserved for parsing
structurally invalid leg data before it reaches the engines.
"""

from __future__ import annotations


class OptRiskError(Exception):
    """Base class for all optrisk errors."""


class InvalidLegError(OptRiskError, ValueError):
    """Raised when a leg mapping cannot be turned into an :class:`OptionLeg`."""

    def __init__(self, message: str, *, index: int | None = None) -> None:
        if index is not None:
            message = f"leg {index}: {message}"
        super().__init__(message)
        self.index = index


__all__ = ["InvalidLegError", "OptRiskError"]
