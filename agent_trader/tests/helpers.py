"""
Model factories shared by the test modules.
"""
from agent_trader.agents.schemas import Agent, MarketSnapshot, RiskTolerance


def make_agent(
    agent_id: str = "agent-1",
    strategy_type: str = "momentum",
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM,
    capital: float = 100_000.0,
    **kwargs,
) -> Agent:
    return Agent(
        id=agent_id,
        name=kwargs.pop("name", f"Agent {agent_id}"),
        strategy_type=strategy_type,
        risk_tolerance=risk_tolerance,
        current_capital=capital,
        initial_capital=kwargs.pop("initial_capital", capital),
        **kwargs,
    )


def make_snapshot(
    ticker: str = "AAPL",
    price: float = 100.0,
    change_percent: float = 0.0,
    **kwargs,
) -> MarketSnapshot:
    previous_close = kwargs.pop("previous_close", price / (1 + change_percent / 100))
    return MarketSnapshot(
        ticker=ticker,
        price=price,
        change=price - previous_close,
        change_percent=change_percent,
        volume=kwargs.pop("volume", 2_000_000),
        high=kwargs.pop("high", price * 1.01),
        low=kwargs.pop("low", price * 0.99),
        open=kwargs.pop("open", previous_close),
        previous_close=previous_close,
        **kwargs,
    )
