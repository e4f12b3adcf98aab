"""
SQLAlchemy-backed PersistenceStore.

Tables:
- agents               one row per agent, capital and derived counters
- trades               append-only paper trade ledger
- performance_metrics  one current row per agent (upserted)
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Column, String, Float, DateTime, Integer, ForeignKey, Text, create_engine,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..agents.schemas import (
    Agent,
    AgentStatus,
    PerformanceMetrics,
    TradeAction,
    TradeRecord,
)
from ..errors import AgentNotFound, PersistenceError

logger = logging.getLogger("agent_trader.store.sql")

Base = declarative_base()


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AgentRow(Base):
    __tablename__ = "agents"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, default="")
    strategy_type = Column(String, nullable=False)
    risk_tolerance = Column(String, nullable=False, default="medium")
    status = Column(String, nullable=False, default="active", index=True)
    current_capital = Column(Float, nullable=False)
    initial_capital = Column(Float, nullable=False)
    last_trade_at = Column(DateTime(timezone=True), nullable=True)
    total_trades = Column(Integer, nullable=False, default=0)
    winning_trades = Column(Integer, nullable=False, default=0)
    win_rate = Column(Float, nullable=False, default=0.0)
    total_return = Column(Float, nullable=False, default=0.0)

    def to_model(self) -> Agent:
        return Agent(
            id=self.id,
            name=self.name,
            strategy_type=self.strategy_type,
            risk_tolerance=self.risk_tolerance,
            status=self.status,
            current_capital=self.current_capital,
            initial_capital=self.initial_capital,
            last_trade_at=_aware(self.last_trade_at),
            total_trades=self.total_trades,
            winning_trades=self.winning_trades,
            win_rate=self.win_rate,
            total_return=self.total_return,
        )


class TradeRow(Base):
    __tablename__ = "trades"

    id = Column(String, primary_key=True)
    agent_id = Column(String, ForeignKey("agents.id"), nullable=False, index=True)
    ticker = Column(String, nullable=False)
    side = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    total_value = Column(Float, nullable=False)
    executed_at = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String, nullable=False, default="executed")
    reasoning = Column(Text, nullable=True)
    trade_type = Column(String, nullable=False, default="paper")

    def to_model(self) -> TradeRecord:
        return TradeRecord(
            id=self.id,
            agent_id=self.agent_id,
            ticker=self.ticker,
            side=TradeAction(self.side),
            quantity=self.quantity,
            price=self.price,
            total_value=self.total_value,
            executed_at=_aware(self.executed_at),
            status=self.status,
            reasoning=self.reasoning,
            trade_type=self.trade_type,
        )


class PerformanceMetricsRow(Base):
    __tablename__ = "performance_metrics"

    agent_id = Column(String, ForeignKey("agents.id"), primary_key=True)
    calculated_at = Column(DateTime(timezone=True), nullable=False)
    total_trades = Column(Integer, nullable=False, default=0)
    winning_trades = Column(Integer, nullable=False, default=0)
    total_pnl = Column(Float, nullable=False, default=0.0)
    win_rate = Column(Float, nullable=False, default=0.0)
    total_volume = Column(Float, nullable=False, default=0.0)
    max_drawdown = Column(Float, nullable=False, default=0.0)

    def to_model(self) -> PerformanceMetrics:
        return PerformanceMetrics(
            agent_id=self.agent_id,
            calculated_at=_aware(self.calculated_at),
            total_trades=self.total_trades,
            winning_trades=self.winning_trades,
            total_pnl=self.total_pnl,
            win_rate=self.win_rate,
            total_volume=self.total_volume,
            max_drawdown=self.max_drawdown,
        )


class SqlAlchemyStore:
    """Relational store; works against SQLite locally and PostgreSQL in deployment."""

    def __init__(self, database_url: str = "sqlite:///./agent_trader.db", echo: bool = False):
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection so worker threads see the same in-memory database
            self.engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        elif database_url.startswith("sqlite"):
            self.engine = create_engine(
                database_url, echo=echo, connect_args={"check_same_thread": False}
            )
        else:
            self.engine = create_engine(database_url, echo=echo)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_db(self):
        """Create all tables."""
        try:
            logger.info("Initializing database and creating tables...")
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Error initializing database tables: {e}")
            raise PersistenceError(f"Failed to initialize database: {e}") from e

    def add_agent(self, agent: Agent) -> Agent:
        """Seed an agent record."""
        db = self.SessionLocal()
        try:
            db.merge(AgentRow(
                id=agent.id,
                name=agent.name,
                strategy_type=agent.strategy_type,
                risk_tolerance=agent.risk_tolerance.value,
                status=agent.status.value,
                current_capital=agent.current_capital,
                initial_capital=agent.initial_capital,
                last_trade_at=agent.last_trade_at,
                total_trades=agent.total_trades,
                winning_trades=agent.winning_trades,
                win_rate=agent.win_rate,
                total_return=agent.total_return,
            ))
            db.commit()
            return agent
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to add agent {agent.id}: {e}") from e
        finally:
            db.close()

    def get_active_agents(self) -> List[Agent]:
        return self.list_agents(status=AgentStatus.ACTIVE)

    def list_agents(self, status: Optional[AgentStatus] = None) -> List[Agent]:
        db = self.SessionLocal()
        try:
            query = db.query(AgentRow)
            if status is not None:
                query = query.filter(AgentRow.status == AgentStatus(status).value)
            return [row.to_model() for row in query.order_by(AgentRow.id).all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list agents: {e}") from e
        finally:
            db.close()

    def get_agent(self, agent_id: str) -> Agent:
        db = self.SessionLocal()
        try:
            row = db.get(AgentRow, agent_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load agent {agent_id}: {e}") from e
        finally:
            db.close()
        if row is None:
            raise AgentNotFound(agent_id)
        return row.to_model()

    def update_agent_capital(self, agent_id: str, new_capital: float, last_trade_at: datetime) -> None:
        db = self.SessionLocal()
        try:
            updated = (
                db.query(AgentRow)
                .filter(AgentRow.id == agent_id)
                .update({"current_capital": new_capital, "last_trade_at": last_trade_at})
            )
            if updated == 0:
                db.rollback()
                raise AgentNotFound(agent_id)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to update capital for agent {agent_id}: {e}") from e
        finally:
            db.close()

    def insert_trade(self, record: TradeRecord) -> TradeRecord:
        db = self.SessionLocal()
        try:
            db.add(TradeRow(
                id=record.id,
                agent_id=record.agent_id,
                ticker=record.ticker,
                side=record.side.value,
                quantity=record.quantity,
                price=record.price,
                total_value=record.total_value,
                executed_at=record.executed_at,
                status=record.status,
                reasoning=record.reasoning,
                trade_type=record.trade_type,
            ))
            db.commit()
            return record
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to insert trade for agent {record.agent_id}: {e}") from e
        finally:
            db.close()

    def get_executed_trades(self, agent_id: str) -> List[TradeRecord]:
        db = self.SessionLocal()
        try:
            rows = (
                db.query(TradeRow)
                .filter(TradeRow.agent_id == agent_id, TradeRow.status == "executed")
                .order_by(TradeRow.executed_at.asc())
                .all()
            )
            return [row.to_model() for row in rows]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load trades for agent {agent_id}: {e}") from e
        finally:
            db.close()

    def get_trades(self, agent_id: str, limit: Optional[int] = None) -> List[TradeRecord]:
        db = self.SessionLocal()
        try:
            query = (
                db.query(TradeRow)
                .filter(TradeRow.agent_id == agent_id)
                .order_by(TradeRow.executed_at.desc())
            )
            if limit:
                query = query.limit(limit)
            return [row.to_model() for row in query.all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load trades for agent {agent_id}: {e}") from e
        finally:
            db.close()

    def upsert_performance_metrics(self, agent_id: str, metrics: PerformanceMetrics) -> None:
        """Replace the agent's current metrics row and mirror the counters onto the agent."""
        db = self.SessionLocal()
        try:
            row = db.get(PerformanceMetricsRow, agent_id)
            if row is None:
                row = PerformanceMetricsRow(agent_id=agent_id)
                db.add(row)
            row.calculated_at = metrics.calculated_at
            row.total_trades = metrics.total_trades
            row.winning_trades = metrics.winning_trades
            row.total_pnl = metrics.total_pnl
            row.win_rate = metrics.win_rate
            row.total_volume = metrics.total_volume
            row.max_drawdown = metrics.max_drawdown

            db.query(AgentRow).filter(AgentRow.id == agent_id).update({
                "total_trades": metrics.total_trades,
                "winning_trades": metrics.winning_trades,
                "win_rate": metrics.win_rate,
                "total_return": metrics.total_pnl,
            })
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to upsert performance metrics for agent {agent_id}: {e}") from e
        finally:
            db.close()

    def get_performance_metrics(self, agent_id: str) -> Optional[PerformanceMetrics]:
        db = self.SessionLocal()
        try:
            row = db.get(PerformanceMetricsRow, agent_id)
            return row.to_model() if row else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load performance metrics for agent {agent_id}: {e}") from e
        finally:
            db.close()
