from datetime import datetime

import pytest

import optrisk.config as config
from optrisk.models import Action, MarketContext, OptionLeg, OptionType

AS_OF = datetime(2024, 3, 1, 9, 15)
EXPIRY = "2024-03-28"
LOT_SIZE = 75
SPOT = 17500.0


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Run every test against the built-in configuration defaults."""
    monkeypatch.setattr(config, "CONFIG", config.AppConfig())
    yield


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def market():
    return MarketContext(spot=SPOT, lot_size=LOT_SIZE, as_of=AS_OF)


def _make_leg(action, option_type, strike, premium=None, lots=1, iv=0.2, expiry=EXPIRY):
    return OptionLeg(
        action=Action(action),
        option_type=OptionType(option_type),
        strike=float(strike),
        lots=lots,
        premium=premium,
        implied_volatility=iv,
        expiry=expiry,
    )


@pytest.fixture
def iron_condor():
    return [
        _make_leg("S", "CE", 17500, 100),
        _make_leg("B", "CE", 17700, 40),
        _make_leg("S", "PE", 17500, 120),
        _make_leg("B", "PE", 17300, 50),
    ]


@pytest.fixture
def make_leg():
    return _make_leg
