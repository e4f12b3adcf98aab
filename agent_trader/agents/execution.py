"""
OrderExecutor - paper order execution against the persistence store.

Purpose: Record a simulated trade and move the agent's capital by its cash flow.
Buys and covers must be fundable from current capital; sells and shorts are
not capital-checked.

Execution is a two-step saga (insert trade, then update capital). If the
second step fails the trade stays in the ledger and CapitalReconciliationError
is raised; reconcile_capital() rebuilds capital from the ledger.
"""
import logging
import math
import threading
from typing import Dict, Optional, Union

from .schemas import ExecutionResult, TradeAction, TradeRecord
from ..errors import (
    CapitalReconciliationError,
    InsufficientCapital,
    InvalidOrder,
    PersistenceError,
)
from ..store.base import PersistenceStore

logger = logging.getLogger("agent_trader.agents.execution")


class OrderExecutor:
    """Executes paper trades with per-agent serialization of capital changes."""

    def __init__(self, store: PersistenceStore, recalculator=None):
        self.store = store
        self.recalculator = recalculator
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, agent_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(agent_id)
            if lock is None:
                lock = self._locks[agent_id] = threading.Lock()
            return lock

    @staticmethod
    def _validate(ticker: str, action: Union[TradeAction, str], quantity: int, price: float) -> TradeAction:
        try:
            side = TradeAction(action)
        except ValueError:
            raise InvalidOrder(f"Unknown action: {action!r}")
        if side == TradeAction.HOLD:
            raise InvalidOrder("Cannot execute a hold")
        if not ticker or not ticker.strip():
            raise InvalidOrder("Ticker is required")
        if quantity is None or not math.isfinite(quantity) or quantity <= 0 or int(quantity) != quantity:
            raise InvalidOrder(f"Quantity must be a positive integer (got {quantity})")
        if price is None or not math.isfinite(price) or price <= 0:
            raise InvalidOrder(f"Price must be positive (got {price})")
        return side

    def execute(
        self,
        agent_id: str,
        ticker: str,
        action: Union[TradeAction, str],
        quantity: int,
        price: float,
        reasoning: Optional[str] = None,
        strategy: Optional[str] = None,
    ) -> ExecutionResult:
        """
        Execute one paper trade.

        Raises:
            InvalidOrder: preconditions failed
            AgentNotFound: agent id does not resolve
            InsufficientCapital: buy/cover costs more than current capital
            PersistenceError: trade insert failed (capital untouched)
            CapitalReconciliationError: trade recorded but capital update failed
        """
        side = self._validate(ticker, action, quantity, price)
        quantity = int(quantity)
        total_value = quantity * price

        with self._lock_for(agent_id):
            agent = self.store.get_agent(agent_id)

            if side.is_debit and total_value > agent.current_capital:
                raise InsufficientCapital(agent_id, total_value, agent.current_capital)

            record = TradeRecord(
                agent_id=agent_id,
                ticker=ticker,
                side=side,
                quantity=quantity,
                price=price,
                total_value=total_value,
                reasoning=reasoning or f"{strategy or agent.strategy_type} strategy signal",
            )

            try:
                record = self.store.insert_trade(record)
            except PersistenceError:
                raise
            except Exception as e:
                raise PersistenceError(f"Failed to record trade for agent {agent_id}: {e}") from e

            new_capital = agent.current_capital + record.cash_flow
            try:
                self.store.update_agent_capital(agent_id, new_capital, record.executed_at)
            except Exception as e:
                logger.error(
                    f"Capital update failed after trade {record.id} for agent {agent_id}; "
                    f"ledger is ahead of capital: {e}"
                )
                raise CapitalReconciliationError(agent_id, record, new_capital, cause=e) from e

        logger.info(
            f"Executed {side.value} {quantity} {record.ticker} @ ${price:.2f} "
            f"for agent {agent_id} (capital ${agent.current_capital:,.2f} -> ${new_capital:,.2f})"
        )

        if self.recalculator is not None:
            try:
                self.recalculator.recompute(agent_id)
            except Exception as e:
                logger.warning(f"Performance recompute failed for agent {agent_id}: {e}")

        return ExecutionResult(trade=record, new_capital=new_capital)

    def reconcile_capital(self, agent_id: str) -> float:
        """Rebuild current capital as initial capital plus the ledger's signed cash flows."""
        with self._lock_for(agent_id):
            agent = self.store.get_agent(agent_id)
            trades = self.store.get_executed_trades(agent_id)
            capital = agent.initial_capital + sum(t.cash_flow for t in trades)
            last_trade_at = trades[-1].executed_at if trades else agent.last_trade_at

            if capital != agent.current_capital:
                logger.warning(
                    f"Reconciling agent {agent_id}: capital ${agent.current_capital:,.2f} "
                    f"-> ${capital:,.2f} from {len(trades)} trades"
                )
                self.store.update_agent_capital(agent_id, capital, last_trade_at)
            return capital
