"""
Performance Recalculator for paper-trading agents.

Recomputes an agent's aggregate statistics from its full executed-trade
history and upserts one current PerformanceMetrics record.

P&L is simulated: closing trades (sell, sell_short) are treated as winners
with a margin drawn uniformly from [1%, 3%) of the trade value; opening
trades (buy, buy_to_cover) pay a 0.1% cost.
"""
import logging
import random
from typing import List, Optional

import numpy as np

from ..agents.schemas import PerformanceMetrics, TradeRecord, utcnow
from ..store.base import PersistenceStore

logger = logging.getLogger("agent_trader.analytics.performance")

MIN_WIN_MARGIN = 0.01
MAX_WIN_MARGIN = 0.03
BUY_COST_RATE = 0.001


def max_drawdown(pnls: List[float]) -> float:
    """Largest peak-to-trough drop of the cumulative P&L curve, starting from zero."""
    if not pnls:
        return 0.0
    curve = np.concatenate(([0.0], np.cumsum(pnls)))
    peak = np.maximum.accumulate(curve)
    return float(np.max(peak - curve))


def compute_metrics(
    agent_id: str,
    trades: List[TradeRecord],
    rng: random.Random,
) -> PerformanceMetrics:
    """Fold a chronological trade history into a metrics record."""
    total_volume = 0.0
    winning = 0
    pnls: List[float] = []

    for trade in trades:
        total_volume += trade.total_value
        if trade.side.is_credit:
            winning += 1
            pnls.append(trade.total_value * rng.uniform(MIN_WIN_MARGIN, MAX_WIN_MARGIN))
        elif trade.side.is_debit:
            pnls.append(-trade.total_value * BUY_COST_RATE)

    total = len(trades)
    return PerformanceMetrics(
        agent_id=agent_id,
        calculated_at=utcnow(),
        total_trades=total,
        winning_trades=winning,
        total_pnl=float(sum(pnls)),
        win_rate=winning / total * 100 if total else 0.0,
        total_volume=total_volume,
        max_drawdown=max_drawdown(pnls),
    )


class PerformanceRecalculator:
    """
    Rebuilds PerformanceMetrics from the ledger.

    With a seed every recompute draws from a fresh generator, so an unchanged
    history yields an identical record. Without one the injected (or a
    system-seeded) generator is shared across calls.
    """

    def __init__(
        self,
        store: PersistenceStore,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.seed = seed
        self.rng = rng or random.Random()

    def _generator(self) -> random.Random:
        if self.seed is not None:
            return random.Random(self.seed)
        return self.rng

    def recompute(self, agent_id: str) -> Optional[PerformanceMetrics]:
        """Recompute and upsert metrics. Returns None (and writes nothing) with no trades."""
        trades = self.store.get_executed_trades(agent_id)
        if not trades:
            logger.debug(f"No executed trades for agent {agent_id}; skipping metrics")
            return None

        metrics = compute_metrics(agent_id, trades, self._generator())
        self.store.upsert_performance_metrics(agent_id, metrics)

        logger.info(
            f"Performance for agent {agent_id}: {metrics.total_trades} trades, "
            f"win rate {metrics.win_rate:.1f}%, P&L ${metrics.total_pnl:,.2f}"
        )
        return metrics
