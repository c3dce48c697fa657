"""Unit tests for risk.manager."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from reversion_bot.core.types import Position, PositionStatus
from reversion_bot.risk.manager import RiskManager, RiskResult

NOW = datetime(2024, 3, 1, 12, 0)


def _rm(**kwargs):
    params = dict(
        max_position_size=Decimal(1000),
        max_open_positions=3,
        risk_per_trade=Decimal("0.02"),
        max_daily_loss=Decimal(100),
        max_drawdown=Decimal("0.2"),
        clock=lambda: NOW,
    )
    params.update(kwargs)
    return RiskManager(**params)


def _position(size=1, entry=100, price=None, stop_loss=None, take_profit=None, age=timedelta(0), pid="p1"):
    p = Position(
        id=pid,
        entry_price=Decimal(entry),
        entry_time=NOW - age,
        size=Decimal(size),
        stop_loss=Decimal(stop_loss) if stop_loss is not None else None,
        take_profit=Decimal(take_profit) if take_profit is not None else None,
    )
    p.mark(Decimal(price if price is not None else entry))
    return p


def test_allows_trade_within_limits(make_signal):
    rm = _rm()
    r = rm.validate_trade(make_signal(strength=0.8), Decimal(10), Decimal(10000), [], as_of=NOW)
    assert r.allowed is True
    assert r.adjusted_size is None
    assert r.final_size(Decimal(10)) == 10


def test_rejects_at_max_open_positions(make_signal):
    rm = _rm()
    positions = [_position(pid=f"p{i}") for i in range(3)]
    r = rm.validate_trade(make_signal(strength=0.35), Decimal(1), Decimal(10000), positions, as_of=NOW)
    assert r.allowed is False
    # First failing check wins over the weak strength
    assert r.reason == "Maximum open positions (3) reached"


def test_closed_positions_do_not_count(make_signal):
    rm = _rm()
    closed = _position()
    closed.close(Decimal(101), NOW)
    positions = [closed, closed, closed]
    r = rm.validate_trade(make_signal(), Decimal(1), Decimal(10000), positions, as_of=NOW)
    assert r.allowed is True


def test_daily_loss_blocks_until_next_day(make_signal):
    rm = _rm()
    rm.update_daily_loss(Decimal(100), as_of=NOW)
    assert rm.is_daily_loss_exceeded(as_of=NOW) is False
    rm.update_daily_loss(Decimal(50), as_of=NOW)
    r = rm.validate_trade(make_signal(), Decimal(10), Decimal(10000), [], as_of=NOW)
    assert r.allowed is False
    assert "Daily loss limit" in r.reason
    later_today = NOW + timedelta(hours=11)
    assert rm.validate_trade(make_signal(), Decimal(10), Decimal(10000), [], as_of=later_today).allowed is False
    tomorrow = NOW + timedelta(hours=12, minutes=1)
    assert rm.validate_trade(make_signal(), Decimal(10), Decimal(10000), [], as_of=tomorrow).allowed is True
    assert rm.state.daily_loss == 0


def test_reset_daily_loss():
    rm = _rm()
    rm.update_daily_loss(Decimal(500), as_of=NOW)
    rm.reset_daily_loss(as_of=NOW)
    assert rm.is_daily_loss_exceeded(as_of=NOW) is False


def test_drawdown_blocks_trading(make_signal):
    rm = _rm()
    rm.update_drawdown(Decimal(10000))
    r = rm.validate_trade(make_signal(), Decimal(10), Decimal(7900), [], as_of=NOW)
    assert r.allowed is False
    assert "Maximum drawdown" in r.reason
    assert rm.validate_trade(make_signal(), Decimal(10), Decimal(8100), [], as_of=NOW).allowed is True


def test_update_drawdown_tracks_peak_and_worst():
    rm = _rm()
    assert rm.update_drawdown(Decimal(1000)) == 0
    assert rm.update_drawdown(Decimal(900)) == Decimal("0.1")
    rm.update_drawdown(Decimal(1200))
    rm.update_drawdown(Decimal(1140))
    assert rm.state.peak_balance == 1200
    assert rm.state.max_drawdown_observed == Decimal("0.1")


def test_exposure_shrinks_size(make_signal):
    rm = _rm()
    # 4000 already deployed, cap is 50% of 10000
    positions = [_position(size=40)]
    r = rm.validate_trade(make_signal(), Decimal(30), Decimal(10000), positions, as_of=NOW)
    assert r.allowed is True
    assert r.adjusted_size == 10
    assert "due to exposure limits" in r.reason


def test_exposure_full_rejects(make_signal):
    rm = _rm()
    positions = [_position(size=50)]
    r = rm.validate_trade(make_signal(), Decimal(1), Decimal(10000), positions, as_of=NOW)
    assert r.allowed is False
    assert r.reason == "Maximum exposure limit reached"


def test_risk_based_cap(make_signal):
    rm = _rm()
    # 10000 * 0.02 / (100 * 0.05) = 40
    r = rm.validate_trade(make_signal(), Decimal(45), Decimal(10000), [], as_of=NOW)
    assert r.allowed is True
    assert r.adjusted_size == 40
    assert r.reason == "Position size adjusted for risk management"


def test_max_position_size_cap(make_signal):
    rm = _rm(max_position_size=Decimal(5))
    r = rm.validate_trade(make_signal(), Decimal(20), Decimal(10000), [], as_of=NOW)
    assert r.adjusted_size == 5


def test_dust_rejected(make_signal):
    rm = _rm()
    r = rm.validate_trade(make_signal(), Decimal("0.05"), Decimal(10000), [], as_of=NOW)
    assert r.allowed is False
    assert "below minimum" in r.reason


def test_weak_signal_rejected(make_signal):
    rm = _rm()
    r = rm.validate_trade(make_signal(strength=0.35), Decimal(10), Decimal(10000), [], as_of=NOW)
    assert r.allowed is False
    assert "too weak" in r.reason


@pytest.mark.parametrize("proposed", ["0.5", "10", "39.99", "45", "100", "5000"])
def test_adjusted_size_never_exceeds_proposed(make_signal, proposed):
    rm = _rm()
    proposed = Decimal(proposed)
    r = rm.validate_trade(make_signal(), proposed, Decimal(10000), [_position(size=20)], as_of=NOW)
    if r.allowed:
        assert r.final_size(proposed) <= proposed


def test_risk_result_final_size():
    assert RiskResult(True).final_size(Decimal(3)) == 3
    assert RiskResult(True, adjusted_size=Decimal(2)).final_size(Decimal(3)) == 2


def test_stop_loss_exit():
    rm = _rm()
    p = _position(price=94, stop_loss=95, take_profit=110)
    d = rm.should_close_position(p, now=NOW)
    assert d.should_close and d.reason == "Stop loss triggered"


def test_take_profit_exit():
    rm = _rm()
    p = _position(price=111, stop_loss=95, take_profit=110)
    assert rm.should_close_position(p, now=NOW).reason == "Take profit reached"


def test_age_exit():
    rm = _rm()
    p = _position(price=100, stop_loss=95, take_profit=110, age=timedelta(hours=25))
    assert rm.should_close_position(p, now=NOW).reason == "Position age exceeded 24 hours"
    young = _position(price=100, stop_loss=95, take_profit=110, age=timedelta(hours=23))
    assert rm.should_close_position(young, now=NOW).should_close is False


def test_stop_loss_wins_over_age():
    rm = _rm()
    p = _position(price=90, stop_loss=95, take_profit=110, age=timedelta(hours=30))
    assert rm.should_close_position(p, now=NOW).reason == "Stop loss triggered"


def test_emergency_stop():
    rm = _rm()
    p = _position(price=89)
    assert rm.should_close_position(p, now=NOW).reason == "Emergency stop - loss exceeded 10%"
    assert rm.should_close_position(_position(price=91), now=NOW).should_close is False


def test_closed_position_never_closes_again():
    rm = _rm()
    p = _position(price=90, stop_loss=95)
    p.close(Decimal(90), NOW, "Stop loss triggered")
    assert p.status == PositionStatus.CLOSED
    assert rm.should_close_position(p, now=NOW).should_close is False


def test_risk_metrics_and_reset():
    rm = _rm()
    rm.update_daily_loss(Decimal(25), as_of=NOW)
    rm.update_drawdown(Decimal(1000))
    rm.update_drawdown(Decimal(950))
    metrics = rm.get_risk_metrics()
    assert metrics["daily_loss"] == "25.00"
    assert metrics["max_drawdown"] == "5.00%"
    assert metrics["risk_limits"]["max_open_positions"] == 3
    rm.reset_metrics(as_of=NOW)
    assert rm.state.daily_loss == 0
    assert rm.state.peak_balance == 0
    assert rm.state.max_drawdown_observed == 0
