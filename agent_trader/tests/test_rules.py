"""
Signal generator tests - one rule per strategy type.
"""
import pytest

from agent_trader.agents.schemas import RiskTolerance, TradeAction
from agent_trader.strategy.rules import (
    DEFAULT_TICKERS,
    HOLD_REASONING,
    STRATEGY_RULES,
    generate_signal,
    recommended_tickers,
)
from agent_trader.tests.helpers import make_agent, make_snapshot


class TestMomentum:
    """Momentum thresholds scale with risk tolerance."""

    def test_medium_risk_buy(self):
        """4% gain on a medium-risk agent buys 100 shares at 0.4 confidence."""
        agent = make_agent(strategy_type="momentum", capital=100_000)
        signal = generate_signal(agent, make_snapshot(price=100.0, change_percent=4.0))

        assert signal.action == TradeAction.BUY
        assert signal.confidence == pytest.approx(0.4)
        assert signal.suggested_quantity == 100
        assert signal.reasoning == "Strong upward momentum detected: 4.00% gain"

    def test_small_move_holds(self):
        agent = make_agent(strategy_type="momentum")
        signal = generate_signal(agent, make_snapshot(change_percent=1.0))

        assert signal.action == TradeAction.HOLD
        assert signal.confidence == 0.5
        assert signal.reasoning == HOLD_REASONING
        assert signal.suggested_quantity is None

    def test_downward_move_shorts(self):
        agent = make_agent(strategy_type="momentum", risk_tolerance=RiskTolerance.HIGH)
        signal = generate_signal(agent, make_snapshot(change_percent=-2.5))

        assert signal.action == TradeAction.SELL_SHORT
        assert signal.confidence == pytest.approx(0.25)

    def test_short_confidence_capped(self):
        agent = make_agent(strategy_type="momentum")
        signal = generate_signal(agent, make_snapshot(change_percent=-12.0))

        assert signal.confidence == pytest.approx(0.8)

    def test_buy_confidence_capped(self):
        agent = make_agent(strategy_type="momentum")
        signal = generate_signal(agent, make_snapshot(change_percent=15.0))

        assert signal.confidence == pytest.approx(0.9)

    def test_low_risk_needs_bigger_move(self):
        agent = make_agent(strategy_type="momentum", risk_tolerance=RiskTolerance.LOW)

        assert generate_signal(agent, make_snapshot(change_percent=4.0)).action == TradeAction.HOLD
        assert generate_signal(agent, make_snapshot(change_percent=5.5)).action == TradeAction.BUY


class TestMeanReversion:

    def test_buy_near_low(self):
        agent = make_agent(strategy_type="mean_reversion")
        snapshot = make_snapshot(price=91.0, change_percent=-3.0, high=100.0, low=90.0)
        signal = generate_signal(agent, snapshot)

        assert signal.action == TradeAction.BUY
        assert signal.confidence == 0.7
        assert "10.0% of range" in signal.reasoning

    def test_sell_near_high(self):
        agent = make_agent(strategy_type="mean_reversion")
        snapshot = make_snapshot(price=99.0, change_percent=3.0, high=100.0, low=90.0)

        assert generate_signal(agent, snapshot).action == TradeAction.SELL

    def test_zero_range_holds(self):
        """A flat day range never triggers."""
        agent = make_agent(strategy_type="mean_reversion")
        snapshot = make_snapshot(price=100.0, change_percent=-4.0, high=100.0, low=100.0)

        assert generate_signal(agent, snapshot).action == TradeAction.HOLD


class TestOtherStrategies:

    @pytest.mark.parametrize("strategy,change,expected", [
        ("value", -6.0, TradeAction.BUY),
        ("value", -4.0, TradeAction.HOLD),
        ("growth", 3.5, TradeAction.BUY),
        ("dividend", -2.0, TradeAction.BUY),
        ("dividend", -3.5, TradeAction.HOLD),
        ("swing", 4.5, TradeAction.SELL),
        ("swing", -4.5, TradeAction.BUY),
        ("scalping", 0.6, TradeAction.SELL),
        ("scalping", -0.6, TradeAction.BUY),
        ("scalping", 0.3, TradeAction.HOLD),
        ("breakout", 6.0, TradeAction.BUY),
        ("breakout", -6.0, TradeAction.SELL_SHORT),
        ("contrarian", 3.5, TradeAction.SELL),
        ("contrarian", -3.5, TradeAction.BUY),
    ])
    def test_trigger_table(self, strategy, change, expected):
        agent = make_agent(strategy_type=strategy)
        assert generate_signal(agent, make_snapshot(change_percent=change)).action == expected

    def test_growth_needs_volume(self):
        agent = make_agent(strategy_type="growth")
        snapshot = make_snapshot(change_percent=4.0, volume=500_000)

        assert generate_signal(agent, snapshot).action == TradeAction.HOLD

    def test_arbitrage_direction(self):
        agent = make_agent(strategy_type="arbitrage")

        above = make_snapshot(price=102.0, previous_close=100.0)
        below = make_snapshot(price=98.0, previous_close=100.0)

        assert generate_signal(agent, above).action == TradeAction.SELL
        assert generate_signal(agent, below).action == TradeAction.BUY

    def test_arbitrage_without_previous_close_holds(self):
        agent = make_agent(strategy_type="arbitrage")
        snapshot = make_snapshot(price=102.0, previous_close=0.0)

        assert generate_signal(agent, snapshot).action == TradeAction.HOLD

    def test_value_sizing(self):
        """Value buys commit 20% of capital before the risk multiplier."""
        agent = make_agent(strategy_type="value", risk_tolerance=RiskTolerance.HIGH, capital=10_000)
        signal = generate_signal(agent, make_snapshot(price=50.0, change_percent=-8.0))

        assert signal.suggested_quantity == 60


class TestDispatch:

    def test_every_strategy_has_a_rule(self):
        assert len(STRATEGY_RULES) == 10

    def test_unknown_strategy_holds(self):
        agent = make_agent(strategy_type="astrology")
        signal = generate_signal(agent, make_snapshot(change_percent=20.0))

        assert signal.action == TradeAction.HOLD
        assert signal.confidence == 0.5

    def test_long_strategy_names_are_aliases(self):
        agent = make_agent(strategy_type="value_investing")
        assert agent.strategy_type == "value"
        assert generate_signal(agent, make_snapshot(change_percent=-6.0)).action == TradeAction.BUY

    def test_deterministic(self):
        agent = make_agent(strategy_type="breakout")
        snapshot = make_snapshot(change_percent=7.0)

        assert generate_signal(agent, snapshot) == generate_signal(agent, snapshot)


class TestRecommendedTickers:

    def test_known_strategy(self):
        assert recommended_tickers("momentum") == ["AAPL", "TSLA", "NVDA", "MSFT", "GOOGL"]

    def test_alias(self):
        assert recommended_tickers("swing_trading") == recommended_tickers("swing")

    def test_unknown_falls_back(self):
        assert recommended_tickers("astrology") == DEFAULT_TICKERS
        assert recommended_tickers("") == DEFAULT_TICKERS
