"""
Analytics components for the agent engine.
"""
from .performance import (
    PerformanceRecalculator,
    compute_metrics,
    max_drawdown,
)

__all__ = [
    "PerformanceRecalculator",
    "compute_metrics",
    "max_drawdown",
]
