"""
Pydantic schemas for the agent decision & execution engine.
"""
from enum import Enum
from typing import Optional, List
from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StrategyType(str, Enum):
    MOMENTUM = "momentum"
    MEAN_REVERSION = "mean_reversion"
    VALUE = "value"
    GROWTH = "growth"
    DIVIDEND = "dividend"
    ARBITRAGE = "arbitrage"
    SWING = "swing"
    SCALPING = "scalping"
    BREAKOUT = "breakout"
    CONTRARIAN = "contrarian"


STRATEGY_ALIASES = {
    "value_investing": StrategyType.VALUE.value,
    "growth_investing": StrategyType.GROWTH.value,
    "dividend_investing": StrategyType.DIVIDEND.value,
    "swing_trading": StrategyType.SWING.value,
}


class RiskTolerance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AgentStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPED = "stopped"


class TradeAction(str, Enum):
    BUY = "buy"
    SELL = "sell"
    SELL_SHORT = "sell_short"
    BUY_TO_COVER = "buy_to_cover"
    HOLD = "hold"

    @property
    def is_debit(self) -> bool:
        """Buys and covers spend capital."""
        return self in (TradeAction.BUY, TradeAction.BUY_TO_COVER)

    @property
    def is_credit(self) -> bool:
        """Sells and shorts bring capital in."""
        return self in (TradeAction.SELL, TradeAction.SELL_SHORT)


class CycleOutcome(str, Enum):
    EXECUTED = "executed"
    HELD = "held"
    FAILED = "failed"


class Agent(BaseModel):
    """A capital-bearing strategy executor as held by the persistence store."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    strategy_type: str = Field(description="StrategyType value; unknown strings are kept and hold")
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM
    status: AgentStatus = AgentStatus.ACTIVE
    current_capital: float
    initial_capital: float
    last_trade_at: Optional[datetime] = None

    total_trades: int = 0
    winning_trades: int = 0
    win_rate: float = 0.0
    total_return: float = 0.0

    @field_validator("strategy_type", mode="before")
    @classmethod
    def normalize_strategy(cls, v) -> str:
        if isinstance(v, StrategyType):
            return v.value
        value = (v or "").strip().lower()
        return STRATEGY_ALIASES.get(value, value)

    @property
    def strategy(self) -> Optional[StrategyType]:
        """The known strategy, or None for unknown/unset types."""
        try:
            return StrategyType(self.strategy_type)
        except ValueError:
            return None

    @property
    def total_return_pct(self) -> float:
        if self.initial_capital <= 0:
            return 0.0
        return (self.current_capital - self.initial_capital) / self.initial_capital * 100


class MarketSnapshot(BaseModel):
    """Point-in-time quote for one ticker. Fetched fresh each cycle, never persisted."""
    ticker: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: float = 0.0
    high: float = 0.0
    low: float = 0.0
    open: float = 0.0
    previous_close: float = 0.0
    timestamp: datetime = Field(default_factory=utcnow)

    @field_validator("ticker")
    @classmethod
    def uppercase_ticker(cls, v: str) -> str:
        return v.upper().strip()


class TradeSignal(BaseModel):
    """A strategy's recommendation for one agent in one cycle."""
    action: TradeAction
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    suggested_quantity: Optional[int] = Field(default=None, ge=0)

    @property
    def is_hold(self) -> bool:
        return self.action == TradeAction.HOLD


class TradeRecord(BaseModel):
    """One executed paper trade. Immutable once persisted."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    agent_id: str
    ticker: str
    side: TradeAction
    quantity: int = Field(gt=0)
    price: float = Field(gt=0)
    total_value: float
    executed_at: datetime = Field(default_factory=utcnow)
    status: str = "executed"
    reasoning: Optional[str] = None
    trade_type: str = "paper"

    @field_validator("ticker")
    @classmethod
    def uppercase_ticker(cls, v: str) -> str:
        return v.upper().strip()

    @property
    def cash_flow(self) -> float:
        """Signed effect on capital: negative for buys/covers, positive for sells/shorts."""
        if self.side.is_debit:
            return -self.total_value
        if self.side.is_credit:
            return self.total_value
        return 0.0


class PerformanceMetrics(BaseModel):
    """Current performance snapshot for one agent, recomputed from the ledger."""
    agent_id: str
    calculated_at: datetime = Field(default_factory=utcnow)
    total_trades: int = 0
    winning_trades: int = 0
    total_pnl: float = 0.0
    win_rate: float = 0.0
    total_volume: float = 0.0
    max_drawdown: float = 0.0


class ExecutionResult(BaseModel):
    """Outcome of a successful order execution."""
    trade: TradeRecord
    new_capital: float


class AgentCycleResult(BaseModel):
    """Per-agent entry in a batch report."""
    agent_id: str
    agent_name: str = ""
    ticker: Optional[str] = None
    action: Optional[TradeAction] = None
    signal_action: Optional[TradeAction] = None
    quantity: Optional[int] = None
    price: Optional[float] = None
    confidence: Optional[float] = None
    reasoning: Optional[str] = None
    outcome: CycleOutcome
    success: bool
    trade_id: Optional[str] = None
    new_capital: Optional[float] = None
    error: Optional[str] = None


class BatchReport(BaseModel):
    """Complete result from one scheduler cycle."""
    cycle_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = Field(default_factory=utcnow)
    duration_ms: float = 0.0
    processed_count: int = 0
    results: List[AgentCycleResult] = Field(default_factory=list)

    def _count(self, outcome: CycleOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def executed_count(self) -> int:
        return self._count(CycleOutcome.EXECUTED)

    @property
    def held_count(self) -> int:
        return self._count(CycleOutcome.HELD)

    @property
    def failed_count(self) -> int:
        return self._count(CycleOutcome.FAILED)

    @property
    def message(self) -> str:
        return f"Processed {self.processed_count} agents"
