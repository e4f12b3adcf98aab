"""
PersistenceStore - the storage contract the engine consumes.

The engine reads agents, appends to the trade ledger, moves capital, and
upserts one performance record per agent. It never creates or deletes agents.
"""
from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from ..agents.schemas import Agent, AgentStatus, PerformanceMetrics, TradeRecord


@runtime_checkable
class PersistenceStore(Protocol):

    def get_active_agents(self) -> List[Agent]:
        """All agents with status active."""
        ...

    def get_agent(self, agent_id: str) -> Agent:
        """Point read. Raises AgentNotFound."""
        ...

    def list_agents(self, status: Optional[AgentStatus] = None) -> List[Agent]:
        ...

    def update_agent_capital(self, agent_id: str, new_capital: float, last_trade_at: datetime) -> None:
        ...

    def insert_trade(self, record: TradeRecord) -> TradeRecord:
        ...

    def get_executed_trades(self, agent_id: str) -> List[TradeRecord]:
        """Executed trades for the agent, oldest first."""
        ...

    def get_trades(self, agent_id: str, limit: Optional[int] = None) -> List[TradeRecord]:
        """Trades for the agent, newest first."""
        ...

    def upsert_performance_metrics(self, agent_id: str, metrics: PerformanceMetrics) -> None:
        ...

    def get_performance_metrics(self, agent_id: str) -> Optional[PerformanceMetrics]:
        ...
