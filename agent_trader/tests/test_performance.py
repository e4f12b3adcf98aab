"""
Performance recalculator tests.
"""
import random
from datetime import timedelta

import pytest

from agent_trader.agents.execution import OrderExecutor
from agent_trader.agents.schemas import TradeAction, TradeRecord, utcnow
from agent_trader.analytics.performance import (
    PerformanceRecalculator,
    compute_metrics,
    max_drawdown,
)


def _trade(side, value, minutes=0):
    return TradeRecord(
        agent_id="agent-1",
        ticker="AAPL",
        side=side,
        quantity=1,
        price=value,
        total_value=value,
        executed_at=utcnow() + timedelta(minutes=minutes),
    )


class TestComputeMetrics:

    def test_counters(self):
        trades = [
            _trade(TradeAction.BUY, 1_000.0, 0),
            _trade(TradeAction.SELL, 2_000.0, 1),
            _trade(TradeAction.SELL_SHORT, 500.0, 2),
            _trade(TradeAction.BUY_TO_COVER, 500.0, 3),
        ]
        metrics = compute_metrics("agent-1", trades, random.Random(1))

        assert metrics.total_trades == 4
        assert metrics.winning_trades == 2
        assert metrics.win_rate == pytest.approx(50.0)
        assert metrics.total_volume == pytest.approx(4_000.0)

    def test_pnl_bounds(self):
        """Sells earn 1-3% of value; buys cost 0.1%."""
        trades = [_trade(TradeAction.BUY, 1_000.0, 0), _trade(TradeAction.SELL, 1_000.0, 1)]
        metrics = compute_metrics("agent-1", trades, random.Random(3))

        assert -1.0 + 10.0 <= metrics.total_pnl <= -1.0 + 30.0

    def test_buys_only(self):
        trades = [_trade(TradeAction.BUY, 2_000.0, i) for i in range(3)]
        metrics = compute_metrics("agent-1", trades, random.Random(0))

        assert metrics.winning_trades == 0
        assert metrics.win_rate == 0.0
        assert metrics.total_pnl == pytest.approx(-6.0)
        assert metrics.max_drawdown == pytest.approx(6.0)


class TestMaxDrawdown:

    def test_empty(self):
        assert max_drawdown([]) == 0.0

    def test_rising_curve(self):
        assert max_drawdown([1.0, 2.0, 3.0]) == 0.0

    def test_peak_to_trough(self):
        assert max_drawdown([10.0, -4.0, 5.0, -8.0, -3.0]) == pytest.approx(11.0)


class TestRecalculator:

    def test_empty_history_writes_nothing(self, store, agent):
        recalculator = PerformanceRecalculator(store, seed=1)

        assert recalculator.recompute(agent.id) is None
        assert store.get_performance_metrics(agent.id) is None

    def test_upserts_one_record(self, store, agent):
        executor = OrderExecutor(store)
        recalculator = PerformanceRecalculator(store, seed=1)

        executor.execute(agent.id, "AAPL", "buy", 10, 100.0)
        first = recalculator.recompute(agent.id)
        executor.execute(agent.id, "AAPL", "sell", 10, 110.0)
        second = recalculator.recompute(agent.id)

        assert first.total_trades == 1
        assert second.total_trades == 2
        assert store.get_performance_metrics(agent.id).total_trades == 2

    def test_counters_mirrored_on_agent(self, store, agent):
        OrderExecutor(store).execute(agent.id, "AAPL", "sell", 10, 100.0)
        metrics = PerformanceRecalculator(store, seed=1).recompute(agent.id)

        refreshed = store.get_agent(agent.id)
        assert refreshed.total_trades == 1
        assert refreshed.winning_trades == 1
        assert refreshed.win_rate == pytest.approx(100.0)
        assert refreshed.total_return == pytest.approx(metrics.total_pnl)

    def test_recompute_is_idempotent_on_counters(self, store, agent):
        """Unchanged history gives the same structural counters."""
        executor = OrderExecutor(store)
        executor.execute(agent.id, "AAPL", "buy", 10, 100.0)
        executor.execute(agent.id, "AAPL", "sell", 5, 120.0)
        recalculator = PerformanceRecalculator(store)

        first = recalculator.recompute(agent.id)
        second = recalculator.recompute(agent.id)

        assert first.total_trades == second.total_trades
        assert first.winning_trades == second.winning_trades
        assert first.total_volume == pytest.approx(second.total_volume)
        assert first.win_rate == pytest.approx(second.win_rate)

    def test_seeded_recompute_is_reproducible(self, store, agent):
        OrderExecutor(store).execute(agent.id, "AAPL", "sell", 10, 100.0)
        recalculator = PerformanceRecalculator(store, seed=42)

        first = recalculator.recompute(agent.id)
        second = recalculator.recompute(agent.id)

        assert first.total_pnl == second.total_pnl

    def test_executor_triggers_recompute(self, store, agent):
        recalculator = PerformanceRecalculator(store, seed=5)
        OrderExecutor(store, recalculator=recalculator).execute(agent.id, "AAPL", "sell", 1, 50.0)

        assert store.get_performance_metrics(agent.id).total_trades == 1
