"""
Tidewater Test Fixtures

Shared portfolios, limits and a controllable clock.
"""

import pytest

from core.models import Asset, Portfolio, RiskLimits
from tests.support import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def risk_limits():
    return RiskLimits(max_position_size=100.0, max_daily_loss=0.05, max_trade_size=50000.0)


@pytest.fixture
def eth_portfolio():
    return Portfolio(
        cash=100000.0,
        assets={"ETHUSDT": Asset(symbol="ETHUSDT", price=2000.0, holdings=10.0)},
    )
