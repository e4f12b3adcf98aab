"""
OrderExecutor tests - capital checks, ledger writes and the capital saga.
"""
import threading
from unittest.mock import MagicMock

import pytest

from agent_trader.agents.execution import OrderExecutor
from agent_trader.agents.schemas import TradeAction
from agent_trader.errors import (
    AgentNotFound,
    CapitalReconciliationError,
    InsufficientCapital,
    InvalidOrder,
    PersistenceError,
)
from agent_trader.tests.helpers import make_agent


@pytest.fixture
def executor(store):
    return OrderExecutor(store)


class TestExecute:

    def test_buy_debits_capital(self, store, agent, executor):
        result = executor.execute(agent.id, "aapl", TradeAction.BUY, 10, 150.0)

        assert result.new_capital == pytest.approx(98_500.0)
        assert result.trade.ticker == "AAPL"
        assert result.trade.total_value == pytest.approx(1_500.0)
        assert result.trade.status == "executed"
        assert result.trade.trade_type == "paper"
        assert store.get_agent(agent.id).current_capital == pytest.approx(98_500.0)
        assert store.get_agent(agent.id).last_trade_at == result.trade.executed_at

    def test_sell_and_short_credit_capital(self, store, agent, executor):
        executor.execute(agent.id, "AAPL", "sell", 5, 100.0)
        executor.execute(agent.id, "TSLA", "sell_short", 2, 250.0)

        assert store.get_agent(agent.id).current_capital == pytest.approx(101_000.0)

    def test_default_reasoning_names_strategy(self, agent, executor):
        result = executor.execute(agent.id, "AAPL", "buy", 1, 10.0)
        assert result.trade.reasoning == "momentum strategy signal"

        result = executor.execute(agent.id, "AAPL", "buy", 1, 10.0, strategy="breakout")
        assert result.trade.reasoning == "breakout strategy signal"

    def test_insufficient_capital(self, store, executor):
        """A buy costing more than current capital records nothing."""
        store.add_agent(make_agent("poor", capital=500.0))

        with pytest.raises(InsufficientCapital) as exc:
            executor.execute("poor", "AAPL", TradeAction.BUY, 10, 100.0)

        assert exc.value.required == pytest.approx(1_000.0)
        assert exc.value.available == pytest.approx(500.0)
        assert store.get_agent("poor").current_capital == 500.0
        assert store.get_trades("poor") == []

    def test_exact_capital_allowed(self, store, executor):
        store.add_agent(make_agent("exact", capital=1_000.0))
        result = executor.execute("exact", "AAPL", "buy_to_cover", 10, 100.0)

        assert result.new_capital == pytest.approx(0.0)

    def test_sells_not_capital_checked(self, store, executor):
        store.add_agent(make_agent("broke", capital=0.0, initial_capital=100.0))
        result = executor.execute("broke", "AAPL", "sell_short", 10, 100.0)

        assert result.new_capital == pytest.approx(1_000.0)

    def test_unknown_agent(self, executor):
        with pytest.raises(AgentNotFound):
            executor.execute("ghost", "AAPL", "buy", 1, 10.0)

    @pytest.mark.parametrize("ticker,action,quantity,price", [
        ("AAPL", "hold", 1, 10.0),
        ("AAPL", "yolo", 1, 10.0),
        ("", "buy", 1, 10.0),
        ("AAPL", "buy", 0, 10.0),
        ("AAPL", "buy", 1.5, 10.0),
        ("AAPL", "buy", 1, 0.0),
        ("AAPL", "buy", 1, -3.0),
        ("AAPL", "sell", 1, float("inf")),
        ("AAPL", "sell", 1, float("nan")),
        ("AAPL", "buy", float("inf"), 10.0),
        ("AAPL", "buy", float("nan"), 10.0),
    ])
    def test_invalid_orders(self, store, agent, executor, ticker, action, quantity, price):
        with pytest.raises(InvalidOrder):
            executor.execute(agent.id, ticker, action, quantity, price)
        assert store.get_trades(agent.id) == []

    def test_capital_invariant(self, store, agent, executor):
        """Capital always equals initial capital plus the ledger's cash flows."""
        orders = [
            ("buy", 10, 120.0),
            ("sell", 4, 130.0),
            ("sell_short", 3, 90.0),
            ("buy_to_cover", 3, 85.0),
            ("buy", 7, 101.5),
        ]
        for action, quantity, price in orders:
            executor.execute(agent.id, "MSFT", action, quantity, price)

        trades = store.get_executed_trades(agent.id)
        expected = agent.initial_capital + sum(t.cash_flow for t in trades)
        assert store.get_agent(agent.id).current_capital == pytest.approx(expected)

    def test_concurrent_buys_never_overdraw(self, store, executor):
        store.add_agent(make_agent("busy", capital=1_000.0))
        errors = []

        def buy():
            try:
                executor.execute("busy", "AAPL", "buy", 1, 100.0)
            except InsufficientCapital as e:
                errors.append(e)

        threads = [threading.Thread(target=buy) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.get_trades("busy")) == 10
        assert len(errors) == 10
        assert store.get_agent("busy").current_capital == pytest.approx(0.0)


class TestRecomputeHook:

    def test_recompute_after_trade(self, store, agent):
        recalculator = MagicMock()
        executor = OrderExecutor(store, recalculator=recalculator)

        executor.execute(agent.id, "AAPL", "buy", 1, 10.0)

        recalculator.recompute.assert_called_once_with(agent.id)

    def test_recompute_failure_does_not_fail_trade(self, store, agent):
        recalculator = MagicMock()
        recalculator.recompute.side_effect = RuntimeError("metrics down")
        executor = OrderExecutor(store, recalculator=recalculator)

        result = executor.execute(agent.id, "AAPL", "buy", 1, 10.0)

        assert result.new_capital == pytest.approx(99_990.0)


class TestCapitalSaga:

    def test_insert_failure_leaves_capital(self, store, agent):
        failing = MagicMock(wraps=store)
        failing.insert_trade.side_effect = RuntimeError("disk full")
        executor = OrderExecutor(failing)

        with pytest.raises(PersistenceError):
            executor.execute(agent.id, "AAPL", "buy", 1, 10.0)

        assert store.get_agent(agent.id).current_capital == agent.current_capital

    def test_capital_update_failure_then_reconcile(self, store, agent):
        failing = MagicMock(wraps=store)
        failing.update_agent_capital.side_effect = PersistenceError("connection reset")
        executor = OrderExecutor(failing)

        with pytest.raises(CapitalReconciliationError) as exc:
            executor.execute(agent.id, "AAPL", "buy", 10, 100.0)

        assert isinstance(exc.value, PersistenceError)
        assert exc.value.intended_capital == pytest.approx(99_000.0)
        assert store.get_trades(agent.id)[0].id == exc.value.trade.id
        assert store.get_agent(agent.id).current_capital == pytest.approx(100_000.0)

        capital = OrderExecutor(store).reconcile_capital(agent.id)

        assert capital == pytest.approx(99_000.0)
        assert store.get_agent(agent.id).current_capital == pytest.approx(99_000.0)

    def test_reconcile_without_trades(self, store, agent, executor):
        assert executor.reconcile_capital(agent.id) == pytest.approx(agent.initial_capital)
