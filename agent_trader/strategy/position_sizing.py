"""
Position sizing and confidence gating by risk tolerance.

Risk tolerance scales both how much capital a signal commits and how
confident a signal has to be before the scheduler acts on it:

    risk     size multiplier    confidence threshold
    high     1.5                0.3
    medium   1.0                0.5
    low      0.5                0.7
"""
import math
from typing import Dict

from ..agents.schemas import RiskTolerance


RISK_MULTIPLIERS: Dict[RiskTolerance, float] = {
    RiskTolerance.HIGH: 1.5,
    RiskTolerance.MEDIUM: 1.0,
    RiskTolerance.LOW: 0.5,
}

CONFIDENCE_THRESHOLDS: Dict[RiskTolerance, float] = {
    RiskTolerance.HIGH: 0.3,
    RiskTolerance.MEDIUM: 0.5,
    RiskTolerance.LOW: 0.7,
}


def size_position(
    risk_tolerance: RiskTolerance,
    capital: float,
    price: float,
    risk_fraction: float,
) -> int:
    """
    Whole-share quantity for a signal.

    Args:
        risk_tolerance: Agent risk tolerance
        capital: Agent's current capital
        price: Current share price
        risk_fraction: Strategy-specific fraction of capital to commit

    Returns:
        floor(capital * risk_fraction * multiplier / price), never negative
    """
    if capital <= 0 or price <= 0 or risk_fraction <= 0:
        return 0

    adjusted_risk = risk_fraction * RISK_MULTIPLIERS[RiskTolerance(risk_tolerance)]
    position_value = capital * adjusted_risk
    return max(0, math.floor(position_value / price))


def confidence_threshold(risk_tolerance: RiskTolerance) -> float:
    """Minimum confidence a non-hold signal needs before it is executed."""
    return CONFIDENCE_THRESHOLDS[RiskTolerance(risk_tolerance)]
