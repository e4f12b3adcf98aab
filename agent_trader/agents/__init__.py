"""
Agent decision & execution engine.

Components (in cycle order):
1. Market data provider - current quote for the agent's ticker
2. Signal generator (strategy.rules) - deterministic rule per strategy type
3. Confidence gate - risk-tolerance threshold
4. OrderExecutor - paper trade + capital update
5. PerformanceRecalculator (analytics) - metrics from the ledger
6. CycleJournal - audit trail

The CycleScheduler coordinates one pass over all active agents.
"""

from .schemas import (
    Agent,
    AgentStatus,
    RiskTolerance,
    StrategyType,
    TradeAction,
    MarketSnapshot,
    TradeSignal,
    TradeRecord,
    PerformanceMetrics,
    ExecutionResult,
    AgentCycleResult,
    BatchReport,
    CycleOutcome,
)

__all__ = [
    "Agent",
    "AgentStatus",
    "RiskTolerance",
    "StrategyType",
    "TradeAction",
    "MarketSnapshot",
    "TradeSignal",
    "TradeRecord",
    "PerformanceMetrics",
    "ExecutionResult",
    "AgentCycleResult",
    "BatchReport",
    "CycleOutcome",
]
