"""
CycleScheduler - Top-level conductor.

Purpose: Drive every active agent through one evaluation cycle and return a
single BatchReport.

Per-agent handoffs (strict order):
  pick ticker -> market data -> signal -> confidence gate -> OrderExecutor -> result

Agents run concurrently, bounded by max_concurrency, each under its own
timeout. A failure inside one agent's pipeline becomes a failed result for
that agent; only a failure to list the active agents aborts the cycle.
"""
import asyncio
import logging
import random
import time
from typing import Dict, List, Optional

from .schemas import (
    Agent,
    AgentCycleResult,
    BatchReport,
    CycleOutcome,
    MarketSnapshot,
    TradeAction,
    TradeSignal,
)
from .execution import OrderExecutor
from .market_data import MarketDataProvider
from .observability import CycleJournal
from ..analytics.performance import PerformanceRecalculator
from ..config import EngineConfig, TickerSelection
from ..errors import AgentTraderError, InsufficientCapital, PersistenceError
from ..store.base import PersistenceStore
from ..strategy.position_sizing import confidence_threshold
from ..strategy.rules import generate_signal, recommended_tickers

logger = logging.getLogger("agent_trader.agents.orchestrator")


class TickerSelector:
    """
    Chooses the ticker an agent evaluates this cycle from its strategy basket.

    ROUND_ROBIN walks each agent's basket in order across cycles.
    RANDOM draws from a generator seeded once at construction.
    """

    def __init__(self, mode: TickerSelection = TickerSelection.ROUND_ROBIN, seed: Optional[int] = None):
        self.mode = TickerSelection(mode)
        self._rng = random.Random(seed)
        self._cursor: Dict[str, int] = {}

    def pick(self, agent: Agent) -> str:
        basket = recommended_tickers(agent.strategy_type)
        if self.mode == TickerSelection.RANDOM:
            return self._rng.choice(basket)

        index = self._cursor.get(agent.id, 0)
        self._cursor[agent.id] = index + 1
        return basket[index % len(basket)]


class CycleScheduler:
    """
    Runs evaluation cycles over all active agents.

    The store, market data provider and executor are injected; store and
    executor calls are blocking and run in worker threads.
    """

    def __init__(
        self,
        store: PersistenceStore,
        market_data: MarketDataProvider,
        executor: OrderExecutor,
        config: Optional[EngineConfig] = None,
        journal: Optional[CycleJournal] = None,
        ticker_selector: Optional[TickerSelector] = None,
    ):
        self.config = config or EngineConfig()
        self.store = store
        self.market_data = market_data
        self.executor = executor
        self.journal = journal
        self.tickers = ticker_selector or TickerSelector(
            self.config.ticker_selection, self.config.ticker_seed
        )

        logger.info(f"Scheduler initialized - {self.config.describe()}")

    async def run_cycle(self) -> BatchReport:
        """
        Run one complete cycle.

        Returns:
            BatchReport with one result per active agent, in store order

        Raises:
            PersistenceError: the active agents could not be listed
        """
        start_time = time.time()
        report = BatchReport()
        logger.info(f"=== CYCLE START {report.cycle_id[:8]} ===")

        try:
            agents = await asyncio.to_thread(self.store.get_active_agents)
        except PersistenceError as e:
            logger.error(f"Cycle aborted, could not list active agents: {e}")
            raise
        except Exception as e:
            logger.error(f"Cycle aborted, could not list active agents: {e}")
            raise PersistenceError(f"Failed to list active agents: {e}") from e

        logger.info(f"Evaluating {len(agents)} active agents")

        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        assignments = [(agent, self.tickers.pick(agent)) for agent in agents]
        results: List[AgentCycleResult] = await asyncio.gather(*(
            self._run_agent_bounded(semaphore, agent, ticker)
            for agent, ticker in assignments
        ))

        report.results = list(results)
        report.processed_count = len(agents)
        report.duration_ms = (time.time() - start_time) * 1000

        if self.journal is not None:
            await asyncio.to_thread(self.journal.log_cycle, report)

        logger.info(
            f"=== CYCLE END === {report.message}: {report.executed_count} executed, "
            f"{report.held_count} held, {report.failed_count} failed"
        )
        return report

    async def _run_agent_bounded(
        self,
        semaphore: asyncio.Semaphore,
        agent: Agent,
        ticker: str,
    ) -> AgentCycleResult:
        timeout = self.config.per_agent_timeout_seconds
        async with semaphore:
            try:
                return await asyncio.wait_for(self._run_agent(agent, ticker), timeout=timeout)
            except asyncio.TimeoutError:
                logger.error(f"Agent {agent.id} timed out after {timeout}s on {ticker}")
                return self._failed(agent, ticker, f"Timed out after {timeout}s")
            except AgentTraderError as e:
                logger.error(f"Agent {agent.id} failed on {ticker}: {e}")
                return self._failed(agent, ticker, str(e))
            except Exception as e:
                logger.exception(f"Unexpected error for agent {agent.id} on {ticker}")
                return self._failed(agent, ticker, f"Unexpected error: {e}")

    async def _run_agent(self, agent: Agent, ticker: str) -> AgentCycleResult:
        snapshot = await self.market_data.get_quote(ticker)
        signal = generate_signal(agent, snapshot)
        threshold = confidence_threshold(agent.risk_tolerance)

        if signal.is_hold or signal.confidence < threshold:
            logger.debug(
                f"Agent {agent.id} holds {snapshot.ticker}: {signal.action.value} "
                f"confidence {signal.confidence:.2f} vs threshold {threshold:.2f}"
            )
            return self._result(agent, snapshot, signal, CycleOutcome.HELD)

        quantity = signal.suggested_quantity or 1
        try:
            execution = await asyncio.to_thread(
                self.executor.execute,
                agent.id,
                snapshot.ticker,
                signal.action,
                quantity,
                snapshot.price,
                signal.reasoning,
                agent.strategy_type,
            )
        except InsufficientCapital as e:
            logger.info(f"Agent {agent.id} declined {signal.action.value} {quantity} {snapshot.ticker}: {e}")
            return self._result(
                agent, snapshot, signal, CycleOutcome.HELD, quantity=quantity, error=str(e)
            )

        if self.journal is not None:
            await asyncio.to_thread(self.journal.log_trade, execution.trade)

        return self._result(
            agent,
            snapshot,
            signal,
            CycleOutcome.EXECUTED,
            quantity=quantity,
            trade_id=execution.trade.id,
            new_capital=execution.new_capital,
        )

    @staticmethod
    def _result(
        agent: Agent,
        snapshot: MarketSnapshot,
        signal: TradeSignal,
        outcome: CycleOutcome,
        **extra,
    ) -> AgentCycleResult:
        return AgentCycleResult(
            agent_id=agent.id,
            agent_name=agent.name,
            ticker=snapshot.ticker,
            action=signal.action if outcome == CycleOutcome.EXECUTED else TradeAction.HOLD,
            signal_action=signal.action,
            price=snapshot.price,
            confidence=signal.confidence,
            reasoning=signal.reasoning,
            outcome=outcome,
            success=True,
            **extra,
        )

    @staticmethod
    def _failed(agent: Agent, ticker: str, error: str) -> AgentCycleResult:
        return AgentCycleResult(
            agent_id=agent.id,
            agent_name=agent.name,
            ticker=ticker,
            outcome=CycleOutcome.FAILED,
            success=False,
            error=error,
        )


def build_scheduler(
    config: EngineConfig,
    store: PersistenceStore,
    market_data: MarketDataProvider,
) -> CycleScheduler:
    """Wire executor, recalculator and journal from configuration."""
    recalculator = PerformanceRecalculator(store, seed=config.performance_seed)
    executor = OrderExecutor(
        store,
        recalculator=recalculator if config.recompute_performance else None,
    )
    journal = CycleJournal.from_config(config) if config.journal_enabled else None
    return CycleScheduler(store, market_data, executor, config=config, journal=journal)
