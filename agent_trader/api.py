"""
FastAPI Agent Trading Service - HTTP surface for the decision & execution engine.

Endpoints:
- POST /api/trading/run-agents        one cycle over all active agents
- POST /api/trading/execute           one paper trade for one agent
- GET  /api/trading/cycles            recent journalled cycle reports
- GET  /api/agents/leaderboard        active agents by total return
- GET  /api/agents/{id}/performance   current performance metrics
- GET  /api/agents/{id}/trades        trade ledger, newest first
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from .config import EngineConfig, load_config
from .agents.market_data import MarketDataProvider, PolygonMarketData
from .agents.orchestrator import CycleScheduler, build_scheduler
from .agents.schemas import AgentStatus, TradeAction
from .errors import (
    AgentNotFound,
    CapitalReconciliationError,
    InsufficientCapital,
    InvalidOrder,
    PersistenceError,
)
from .store.base import PersistenceStore
from .store.sql import SqlAlchemyStore

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [AGENT_TRADER] %(levelname)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("agent_trader")


_cfg: Optional[EngineConfig] = None
_store: Optional[PersistenceStore] = None
_market_data: Optional[MarketDataProvider] = None
_scheduler: Optional[CycleScheduler] = None


def init_service(
    cfg: EngineConfig,
    store: Optional[PersistenceStore] = None,
    market_data: Optional[MarketDataProvider] = None,
) -> CycleScheduler:
    """Wire the service globals. Defaults to the SQL store and Polygon quotes."""
    global _cfg, _store, _market_data, _scheduler
    if store is None:
        store = SqlAlchemyStore(cfg.database_url)
        store.init_db()
    if market_data is None:
        market_data = PolygonMarketData.from_config(cfg)

    _cfg = cfg
    _store = store
    _market_data = market_data
    _scheduler = build_scheduler(cfg, store, market_data)
    return _scheduler


async def shutdown_service():
    global _cfg, _store, _market_data, _scheduler
    aclose = getattr(_market_data, "aclose", None)
    if aclose is not None:
        await aclose()
    _cfg = _store = _market_data = _scheduler = None


def get_scheduler() -> CycleScheduler:
    if _scheduler is None:
        raise HTTPException(status_code=503, detail="Agent trading service not initialized")
    return _scheduler


def get_store() -> PersistenceStore:
    if _store is None:
        raise HTTPException(status_code=503, detail="Agent trading service not initialized")
    return _store


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Agent Trading Service...")
    if _scheduler is None:
        cfg = load_config()
        logging.getLogger("agent_trader").setLevel(cfg.log_level)
        if not cfg.polygon_api_key:
            logger.warning("POLYGON_API_KEY not set. Quotes will fail.")
        init_service(cfg)
    logger.info(f"Engine config: {_cfg.describe()}")

    yield

    await shutdown_service()
    logger.info("Agent Trading Service shutdown complete")


app = FastAPI(
    title="Agent Trading Service",
    version="1.0.0",
    lifespan=lifespan
)


class ExecuteRequest(BaseModel):
    """Paper trade request. Accepts camelCase or snake_case keys."""
    model_config = ConfigDict(populate_by_name=True)

    agent_id: Optional[str] = Field(default=None, alias="agentId")
    ticker: Optional[str] = None
    action: Optional[str] = None
    quantity: Optional[float] = None
    price: Optional[float] = None
    strategy: Optional[str] = None
    reasoning: Optional[str] = None


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Request logging middleware."""
    start_time = datetime.now(timezone.utc)
    response = await call_next(request)
    duration = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    logger.info(f"{request.method} {request.url.path} - {response.status_code} ({duration:.1f}ms)")
    return response


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "agent_trader",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/api/trading/run-agents")
async def run_agents():
    """Run one evaluation cycle over every active agent."""
    scheduler = get_scheduler()
    try:
        report = await scheduler.run_cycle()
    except PersistenceError as e:
        logger.error(f"Run-agents failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch agents")

    if report.processed_count == 0:
        return {"message": "No active agents found", "cycle_id": report.cycle_id, "results": []}

    return {
        "message": report.message,
        "cycle_id": report.cycle_id,
        "duration_ms": report.duration_ms,
        "executed": report.executed_count,
        "held": report.held_count,
        "failed": report.failed_count,
        "results": [r.model_dump(mode="json") for r in report.results],
    }


@app.post("/api/trading/execute")
async def execute_trade(body: ExecuteRequest):
    """Execute a single paper trade."""
    scheduler = get_scheduler()

    if not body.agent_id or not body.ticker or not body.action or not body.quantity or not body.price:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if body.action == TradeAction.HOLD.value:
        raise HTTPException(status_code=400, detail="Invalid action: hold")

    try:
        result = await asyncio.to_thread(
            scheduler.executor.execute,
            body.agent_id,
            body.ticker,
            body.action,
            body.quantity,
            body.price,
            body.reasoning,
            body.strategy,
        )
    except (InvalidOrder, InsufficientCapital) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AgentNotFound:
        raise HTTPException(status_code=404, detail="Agent not found")
    except CapitalReconciliationError as e:
        logger.error(f"Trade recorded but capital not updated: {e}")
        raise HTTPException(status_code=500, detail="Trade recorded but capital update failed")
    except PersistenceError as e:
        logger.error(f"Trade execution error: {e}")
        raise HTTPException(status_code=500, detail="Failed to execute trade")

    trade = result.trade
    if scheduler.journal is not None:
        await asyncio.to_thread(scheduler.journal.log_trade, trade)

    return {
        "success": True,
        "trade": {
            "id": trade.id,
            "ticker": trade.ticker,
            "action": trade.side.value,
            "quantity": trade.quantity,
            "price": trade.price,
            "totalValue": trade.total_value,
            "executedAt": trade.executed_at.isoformat(),
        },
        "newCapital": result.new_capital,
    }


@app.get("/api/trading/cycles")
async def recent_cycles(limit: int = Query(default=10, ge=1, le=100)):
    """Most recent cycle reports from the journal, newest first."""
    scheduler = get_scheduler()
    if scheduler.journal is None:
        raise HTTPException(status_code=404, detail="Cycle journal disabled")
    cycles = await asyncio.to_thread(scheduler.journal.recent_cycles, limit)
    return {"cycles": cycles, "count": len(cycles)}


@app.get("/api/agents/leaderboard")
async def leaderboard(limit: int = Query(default=10, ge=1, le=100)):
    """Active agents ordered by total return percentage, best first."""
    store = get_store()
    try:
        agents = await asyncio.to_thread(store.list_agents, AgentStatus.ACTIVE)
    except PersistenceError as e:
        logger.error(f"Error fetching agent leaderboard: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch leaderboard")

    ranked = sorted(agents, key=lambda a: a.total_return_pct, reverse=True)[:limit]
    return {
        "agents": [
            {
                "id": a.id,
                "name": a.name,
                "strategy_type": a.strategy_type,
                "total_return_pct": round(a.total_return_pct, 4),
                "current_capital": a.current_capital,
                "win_rate": a.win_rate,
                "total_trades": a.total_trades,
                "last_trade_at": a.last_trade_at.isoformat() if a.last_trade_at else None,
            }
            for a in ranked
        ]
    }


@app.get("/api/agents/{agent_id}/performance")
async def agent_performance(agent_id: str):
    store = get_store()
    try:
        await asyncio.to_thread(store.get_agent, agent_id)
        metrics = await asyncio.to_thread(store.get_performance_metrics, agent_id)
    except AgentNotFound:
        raise HTTPException(status_code=404, detail="Agent not found")
    except PersistenceError as e:
        logger.error(f"Error fetching performance data: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch performance data")

    if metrics is None:
        raise HTTPException(status_code=404, detail="No performance metrics for agent")
    return metrics.model_dump(mode="json")


@app.get("/api/agents/{agent_id}/trades")
async def agent_trades(agent_id: str, limit: int = Query(default=50, ge=1, le=500)):
    store = get_store()
    try:
        await asyncio.to_thread(store.get_agent, agent_id)
        trades = await asyncio.to_thread(store.get_trades, agent_id, limit)
    except AgentNotFound:
        raise HTTPException(status_code=404, detail="Agent not found")
    except PersistenceError as e:
        logger.error(f"Error fetching trades: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch trades")

    return {
        "trades": [t.model_dump(mode="json") for t in trades],
        "count": len(trades),
        "limit": limit,
    }


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.getenv("AGENT_TRADER_PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
