"""
Strategy rules and position sizing.
"""
from .rules import (
    STRATEGY_RULES,
    generate_signal,
    hold_signal,
    recommended_tickers,
)
from .position_sizing import (
    size_position,
    confidence_threshold,
    RISK_MULTIPLIERS,
    CONFIDENCE_THRESHOLDS,
)

__all__ = [
    "STRATEGY_RULES",
    "generate_signal",
    "hold_signal",
    "recommended_tickers",
    "size_position",
    "confidence_threshold",
    "RISK_MULTIPLIERS",
    "CONFIDENCE_THRESHOLDS",
]
