"""
In-memory PersistenceStore.

Thread-safe: the scheduler runs store calls in worker threads.
"""
import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from ..agents.schemas import Agent, AgentStatus, PerformanceMetrics, TradeRecord
from ..errors import AgentNotFound

logger = logging.getLogger("agent_trader.store.memory")


class InMemoryStore:
    """Dict-backed store for tests, demos and the default API wiring."""

    def __init__(self, agents: Optional[List[Agent]] = None):
        self._lock = threading.RLock()
        self._agents: Dict[str, Agent] = {}
        self._trades: List[TradeRecord] = []
        self._metrics: Dict[str, PerformanceMetrics] = {}
        for agent in agents or []:
            self.add_agent(agent)

    def add_agent(self, agent: Agent) -> Agent:
        """Seed an agent record."""
        with self._lock:
            self._agents[agent.id] = agent.model_copy()
        return agent

    def get_active_agents(self) -> List[Agent]:
        return self.list_agents(status=AgentStatus.ACTIVE)

    def list_agents(self, status: Optional[AgentStatus] = None) -> List[Agent]:
        with self._lock:
            return [
                a.model_copy()
                for a in self._agents.values()
                if status is None or a.status == status
            ]

    def get_agent(self, agent_id: str) -> Agent:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                raise AgentNotFound(agent_id)
            return agent.model_copy()

    def update_agent_capital(self, agent_id: str, new_capital: float, last_trade_at: datetime) -> None:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                raise AgentNotFound(agent_id)
            self._agents[agent_id] = agent.model_copy(
                update={"current_capital": new_capital, "last_trade_at": last_trade_at}
            )

    def update_agent_counters(self, agent_id: str, metrics: PerformanceMetrics) -> None:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                raise AgentNotFound(agent_id)
            self._agents[agent_id] = agent.model_copy(update={
                "total_trades": metrics.total_trades,
                "winning_trades": metrics.winning_trades,
                "win_rate": metrics.win_rate,
                "total_return": metrics.total_pnl,
            })

    def insert_trade(self, record: TradeRecord) -> TradeRecord:
        with self._lock:
            self._trades.append(record)
        logger.debug(f"Trade stored: {record.id} {record.ticker} {record.side.value} x{record.quantity}")
        return record

    def get_executed_trades(self, agent_id: str) -> List[TradeRecord]:
        with self._lock:
            trades = [t for t in self._trades if t.agent_id == agent_id and t.status == "executed"]
        return sorted(trades, key=lambda t: t.executed_at)

    def get_trades(self, agent_id: str, limit: Optional[int] = None) -> List[TradeRecord]:
        with self._lock:
            trades = [t for t in self._trades if t.agent_id == agent_id]
        trades.sort(key=lambda t: t.executed_at, reverse=True)
        return trades[:limit] if limit else trades

    def upsert_performance_metrics(self, agent_id: str, metrics: PerformanceMetrics) -> None:
        with self._lock:
            self._metrics[agent_id] = metrics.model_copy()
        self.update_agent_counters(agent_id, metrics)

    def get_performance_metrics(self, agent_id: str) -> Optional[PerformanceMetrics]:
        with self._lock:
            metrics = self._metrics.get(agent_id)
            return metrics.model_copy() if metrics else None
