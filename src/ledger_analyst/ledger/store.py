"""SQLAlchemy-backed store for balance snapshots (the persistent cache tier)."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ledger_analyst.ledger.models import AccountBalance

logger = structlog.get_logger(__name__)

Base = declarative_base()


class BalanceSnapshotORM(Base):
    """One full set of account balances."""

    __tablename__ = "balance_cache"

    id = Column(Integer, primary_key=True, autoincrement=True)
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    account_count = Column(Integer, nullable=False, default=0)
    truncated = Column(Boolean, nullable=False, default=False)


@dataclass
class StoredSnapshot:
    """A snapshot read back from the store."""

    balances: dict[str, AccountBalance]
    created_at: datetime
    account_count: int
    truncated: bool = False

    def age_seconds(self, now: datetime) -> float:
        return (now - self.created_at).total_seconds()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class SnapshotStore:
    """Keeps the most recent ``history`` balance snapshots in a SQL database."""

    def __init__(self, database_url: str, history: int = 5, echo: bool = False):
        connect_args: dict[str, Any] = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self._engine = create_engine(database_url, connect_args=connect_args, echo=echo)
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self._engine,
        )
        self.history = max(history, 1)

    def _session(self) -> Session:
        return self._session_factory()

    def init_schema(self) -> None:
        """Create the snapshot table if it does not exist."""
        Base.metadata.create_all(bind=self._engine)
        logger.info("balance_cache_table_ready")

    def latest(self) -> StoredSnapshot | None:
        """Return the newest snapshot, or None when the table is empty."""
        with self._session() as db:
            row = db.execute(
                select(BalanceSnapshotORM)
                .order_by(BalanceSnapshotORM.created_at.desc(), BalanceSnapshotORM.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            if row is None:
                return None
            return StoredSnapshot(
                balances={
                    code: AccountBalance.from_dict(item) for code, item in (row.data or {}).items()
                },
                created_at=_as_utc(row.created_at),
                account_count=row.account_count,
                truncated=bool(row.truncated),
            )

    def save(
        self,
        balances: dict[str, AccountBalance],
        created_at: datetime,
        truncated: bool = False,
    ) -> None:
        """Insert a snapshot and prune everything beyond the newest ``history``."""
        self.init_schema()
        with self._session() as db:
            db.add(
                BalanceSnapshotORM(
                    data={code: balance.to_dict() for code, balance in balances.items()},
                    created_at=created_at,
                    account_count=len(balances),
                    truncated=truncated,
                )
            )
            db.flush()

            keep = select(BalanceSnapshotORM.id).order_by(
                BalanceSnapshotORM.created_at.desc(), BalanceSnapshotORM.id.desc()
            ).limit(self.history)
            keep_ids = list(db.execute(keep).scalars())
            stale = db.execute(
                select(BalanceSnapshotORM).where(BalanceSnapshotORM.id.not_in(keep_ids))
            ).scalars().all()
            for row in stale:
                db.delete(row)

            db.commit()
        logger.info("balance_snapshot_saved", accounts=len(balances), truncated=truncated)

    def count(self) -> int:
        with self._session() as db:
            return len(db.execute(select(BalanceSnapshotORM.id)).scalars().all())

    def dispose(self) -> None:
        self._engine.dispose()
