"""
Strategy rule set - the signal generator.

Each strategy is a stateless threshold test over the day's move, looked up
by strategy type in STRATEGY_RULES. Rules never do I/O: the same agent and
snapshot always produce the same signal.

Suggested quantities come from size_position() with a per-rule fraction of
capital (0.02 for scalping up to 0.2 for value buys).
"""
from typing import Callable, Dict, List, Optional

from ..agents.schemas import (
    Agent,
    MarketSnapshot,
    RiskTolerance,
    STRATEGY_ALIASES,
    StrategyType,
    TradeAction,
    TradeSignal,
)
from .position_sizing import size_position


StrategyRule = Callable[[Agent, MarketSnapshot], TradeSignal]

MOMENTUM_THRESHOLDS: Dict[RiskTolerance, float] = {
    RiskTolerance.HIGH: 2.0,
    RiskTolerance.MEDIUM: 3.0,
    RiskTolerance.LOW: 5.0,
}

GROWTH_MIN_VOLUME = 1_000_000
BREAKOUT_THRESHOLD = 5.0

HOLD_CONFIDENCE = 0.5
HOLD_REASONING = "No clear signal detected, maintaining current position"


def hold_signal() -> TradeSignal:
    return TradeSignal(
        action=TradeAction.HOLD,
        confidence=HOLD_CONFIDENCE,
        reasoning=HOLD_REASONING,
    )


def _signal(
    agent: Agent,
    data: MarketSnapshot,
    action: TradeAction,
    confidence: float,
    reasoning: str,
    risk_fraction: float,
) -> TradeSignal:
    return TradeSignal(
        action=action,
        confidence=confidence,
        reasoning=reasoning,
        suggested_quantity=size_position(
            agent.risk_tolerance,
            agent.current_capital,
            data.price,
            risk_fraction,
        ),
    )


def momentum_rule(agent: Agent, data: MarketSnapshot) -> TradeSignal:
    threshold = MOMENTUM_THRESHOLDS[agent.risk_tolerance]
    move = data.change_percent

    if move > threshold:
        return _signal(
            agent, data, TradeAction.BUY,
            min(abs(move) / 10, 0.9),
            f"Strong upward momentum detected: {move:.2f}% gain",
            0.1,
        )
    if move < -threshold:
        return _signal(
            agent, data, TradeAction.SELL_SHORT,
            min(abs(move) / 10, 0.8),
            f"Strong downward momentum detected: {move:.2f}% decline",
            0.08,
        )
    return hold_signal()


def mean_reversion_rule(agent: Agent, data: MarketSnapshot) -> TradeSignal:
    daily_range = data.high - data.low
    if daily_range <= 0:
        return hold_signal()

    position = (data.price - data.low) / daily_range

    if position < 0.2 and data.change_percent < -2:
        return _signal(
            agent, data, TradeAction.BUY, 0.7,
            f"Price near daily low ({position * 100:.1f}% of range), expecting mean reversion",
            0.15,
        )
    if position > 0.8 and data.change_percent > 2:
        return _signal(
            agent, data, TradeAction.SELL, 0.6,
            f"Price near daily high ({position * 100:.1f}% of range), expecting reversion",
            0.1,
        )
    return hold_signal()


def value_rule(agent: Agent, data: MarketSnapshot) -> TradeSignal:
    # oversold proxy
    if data.change_percent < -5:
        return _signal(
            agent, data, TradeAction.BUY, 0.8,
            f"Potential value opportunity: {data.change_percent:.2f}% decline may be overdone",
            0.2,
        )
    return hold_signal()


def growth_rule(agent: Agent, data: MarketSnapshot) -> TradeSignal:
    if data.change_percent > 3 and data.volume > GROWTH_MIN_VOLUME:
        return _signal(
            agent, data, TradeAction.BUY, 0.75,
            f"Growth momentum with volume: {data.change_percent:.2f}% gain on strong volume",
            0.12,
        )
    return hold_signal()


def dividend_rule(agent: Agent, data: MarketSnapshot) -> TradeSignal:
    if -3 < data.change_percent < -1:
        return _signal(
            agent, data, TradeAction.BUY, 0.6,
            f"Modest dip for dividend stock: {data.change_percent:.2f}% decline",
            0.05,
        )
    return hold_signal()


def arbitrage_rule(agent: Agent, data: MarketSnapshot) -> TradeSignal:
    if data.previous_close <= 0:
        return hold_signal()

    gap_pct = abs(data.price - data.previous_close) / data.previous_close * 100
    if gap_pct > 1:
        action = TradeAction.SELL if data.price > data.previous_close else TradeAction.BUY
        return _signal(
            agent, data, action, 0.5,
            f"Potential arbitrage opportunity: {gap_pct:.2f}% gap from previous close",
            0.03,
        )
    return hold_signal()


def swing_rule(agent: Agent, data: MarketSnapshot) -> TradeSignal:
    if data.change_percent > 4:
        return _signal(
            agent, data, TradeAction.SELL, 0.7,
            f"Swing high reached: {data.change_percent:.2f}% gain, taking profits",
            0.1,
        )
    if data.change_percent < -4:
        return _signal(
            agent, data, TradeAction.BUY, 0.7,
            f"Swing low reached: {data.change_percent:.2f}% decline, entering position",
            0.1,
        )
    return hold_signal()


def scalping_rule(agent: Agent, data: MarketSnapshot) -> TradeSignal:
    if abs(data.change_percent) > 0.5:
        action = TradeAction.SELL if data.change_percent > 0 else TradeAction.BUY
        return _signal(
            agent, data, action, 0.4,
            f"Scalping opportunity: {data.change_percent:.2f}% move",
            0.02,
        )
    return hold_signal()


def breakout_rule(agent: Agent, data: MarketSnapshot) -> TradeSignal:
    if data.change_percent > BREAKOUT_THRESHOLD:
        return _signal(
            agent, data, TradeAction.BUY, 0.8,
            f"Upward breakout detected: {data.change_percent:.2f}% move",
            0.15,
        )
    if data.change_percent < -BREAKOUT_THRESHOLD:
        return _signal(
            agent, data, TradeAction.SELL_SHORT, 0.8,
            f"Downward breakout detected: {data.change_percent:.2f}% move",
            0.15,
        )
    return hold_signal()


def contrarian_rule(agent: Agent, data: MarketSnapshot) -> TradeSignal:
    if data.change_percent > 3:
        return _signal(
            agent, data, TradeAction.SELL, 0.6,
            f"Contrarian sell: {data.change_percent:.2f}% gain seems excessive",
            0.08,
        )
    if data.change_percent < -3:
        return _signal(
            agent, data, TradeAction.BUY, 0.6,
            f"Contrarian buy: {data.change_percent:.2f}% decline seems excessive",
            0.08,
        )
    return hold_signal()


STRATEGY_RULES: Dict[StrategyType, StrategyRule] = {
    StrategyType.MOMENTUM: momentum_rule,
    StrategyType.MEAN_REVERSION: mean_reversion_rule,
    StrategyType.VALUE: value_rule,
    StrategyType.GROWTH: growth_rule,
    StrategyType.DIVIDEND: dividend_rule,
    StrategyType.ARBITRAGE: arbitrage_rule,
    StrategyType.SWING: swing_rule,
    StrategyType.SCALPING: scalping_rule,
    StrategyType.BREAKOUT: breakout_rule,
    StrategyType.CONTRARIAN: contrarian_rule,
}


def generate_signal(agent: Agent, snapshot: MarketSnapshot) -> TradeSignal:
    """
    Evaluate the agent's strategy against a market snapshot.

    Unknown or unset strategy types hold.
    """
    strategy = agent.strategy
    rule: Optional[StrategyRule] = STRATEGY_RULES.get(strategy) if strategy else None
    if rule is None:
        return hold_signal()
    return rule(agent, snapshot)


RECOMMENDED_TICKERS: Dict[StrategyType, List[str]] = {
    StrategyType.MOMENTUM: ["AAPL", "TSLA", "NVDA", "MSFT", "GOOGL"],
    StrategyType.MEAN_REVERSION: ["SPY", "QQQ", "IWM", "VTI", "VOO"],
    StrategyType.VALUE: ["BRK.B", "JPM", "JNJ", "PG", "KO"],
    StrategyType.GROWTH: ["AMZN", "META", "NFLX", "CRM", "SHOP"],
    StrategyType.DIVIDEND: ["REYN", "T", "VZ", "XOM", "CVX"],
    StrategyType.ARBITRAGE: ["SPY", "QQQ", "GLD", "TLT", "VIX"],
    StrategyType.SWING: ["AMD", "BABA", "UBER", "SNAP", "ZM"],
    StrategyType.SCALPING: ["SPY", "QQQ", "TQQQ", "SQQQ", "SPXL"],
    StrategyType.BREAKOUT: ["MEME", "GME", "AMC", "COIN", "HOOD"],
    StrategyType.CONTRARIAN: ["VIX", "UVXY", "SQQQ", "SPXS", "TZA"],
}

DEFAULT_TICKERS: List[str] = ["SPY", "QQQ", "AAPL", "MSFT", "TSLA"]


def recommended_tickers(strategy_type: str) -> List[str]:
    """Candidate tickers for a strategy; liquid default basket for unknown types."""
    name = (strategy_type or "").strip().lower()
    try:
        strategy = StrategyType(STRATEGY_ALIASES.get(name, name))
    except ValueError:
        return list(DEFAULT_TICKERS)
    return list(RECOMMENDED_TICKERS[strategy])
