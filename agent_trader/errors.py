"""
Error taxonomy for the engine.

Every error is recoverable at the per-agent boundary of a cycle except a
failure to list the active agents, which aborts the whole batch.
"""
from typing import Optional


class AgentTraderError(Exception):
    """Base class for all engine errors."""


class QuoteUnavailable(AgentTraderError):
    """Raised when the market data provider cannot produce a quote."""

    def __init__(self, ticker: str, reason: str = ""):
        self.ticker = ticker
        self.reason = reason
        message = f"Quote unavailable for {ticker}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InsufficientCapital(AgentTraderError):
    """Raised when a buy or cover costs more than the agent's current capital."""

    def __init__(self, agent_id: str, required: float, available: float):
        self.agent_id = agent_id
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient capital for agent {agent_id}: "
            f"need ${required:,.2f}, have ${available:,.2f}"
        )


class AgentNotFound(AgentTraderError):
    """Raised when an agent id does not resolve in the store."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent {agent_id} not found")


class InvalidOrder(AgentTraderError):
    """Raised when an order fails its preconditions (quantity, price, action)."""


class PersistenceError(AgentTraderError):
    """Raised when a store read or write fails."""


class CapitalReconciliationError(PersistenceError):
    """
    The trade was recorded but the agent's capital update failed.

    The trade ledger stays authoritative; capital can be rebuilt from it
    with OrderExecutor.reconcile_capital().
    """

    def __init__(self, agent_id: str, trade, intended_capital: float, cause: Optional[Exception] = None):
        self.agent_id = agent_id
        self.trade = trade
        self.intended_capital = intended_capital
        self.cause = cause
        super().__init__(
            f"Trade {trade.id} recorded for agent {agent_id} but capital update to "
            f"${intended_capital:,.2f} failed: {cause}"
        )
