"""Spot and volatility shock grid for stress testing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from ..models import ScenarioGrid


@dataclass(frozen=True)
class Scenario:
    """One point of the stress grid."""

    move: float
    vol_shift: float
    spot: float

    def volatility(self, base_iv: float) -> float:
        """Return ``base_iv`` shocked by this scenario's relative shift."""
        return base_iv * (1.0 + self.vol_shift)


def generate_scenarios(spot: float, grid: ScenarioGrid | None = None) -> Iterator[Scenario]:
    """Yield ``spot_moves x vol_shifts`` scenarios, spot moves outermost."""
    grid = grid or ScenarioGrid()
    for move in grid.spot_moves:
        scenario_spot = spot * (1.0 + move)
        for shift in grid.vol_shifts:
            yield Scenario(move=move, vol_shift=shift, spot=scenario_spot)


__all__ = ["Scenario", "generate_scenarios"]
