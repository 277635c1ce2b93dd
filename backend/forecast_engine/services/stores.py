"""
Collaborators consumed by the forecasting core, and their SQLAlchemy implementations.

The core only depends on the protocols. Each SQL implementation opens a fresh
session per call from a sessionmaker, so one instance can be shared by tasks
running on different worker threads.
"""
from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Protocol, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from forecast_engine.exceptions import NotFound
from forecast_engine.models.forecast_anomaly import ForecastAnomaly
from forecast_engine.models.forecast_config import ForecastConfig
from forecast_engine.models.forecast_performance import ForecastPerformance
from forecast_engine.models.forecast_result import ForecastResult
from forecast_engine.models.transaction import Transaction
from forecast_engine.models.user import User
from forecast_engine.services.series import SeriesPoint


# ---------- Contracts ----------

class SeriesSource(Protocol):
    def daily_totals(
        self,
        user_id: int,
        from_date: date,
        to_date: date,
        *,
        category: Optional[str] = None,
        transaction_type: Optional[str] = None,
    ) -> List[SeriesPoint]:
        """Ascending by day, one point per day with at least one record."""
        ...


class UserDirectory(Protocol):
    def find(self, user_id: int) -> User:
        """Return the user or raise NotFound."""
        ...


class ConfigStore(Protocol):
    def save(self, config: ForecastConfig) -> ForecastConfig: ...

    def find(self, config_id: int) -> Optional[ForecastConfig]: ...

    def get_or_create(self, user: User, config: ForecastConfig) -> ForecastConfig: ...


class ResultStore(Protocol):
    def save_all(self, results: Sequence[ForecastResult]) -> List[ForecastResult]: ...

    def save_performance(self, row: ForecastPerformance) -> ForecastPerformance: ...


class AnomalyStore(Protocol):
    def save_all(self, anomalies: Sequence[ForecastAnomaly]) -> List[ForecastAnomaly]: ...


# ---------- SQLAlchemy implementations ----------

class SqlSeriesSource:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def daily_totals(
        self,
        user_id: int,
        from_date: date,
        to_date: date,
        *,
        category: Optional[str] = None,
        transaction_type: Optional[str] = None,
    ) -> List[SeriesPoint]:
        stmt = (
            select(Transaction.txn_date, func.sum(Transaction.amount))
            .where(
                Transaction.user_id == user_id,
                Transaction.txn_date >= from_date,
                Transaction.txn_date <= to_date,
            )
        )
        if category:
            stmt = stmt.where(Transaction.category == category)
        if transaction_type:
            stmt = stmt.where(Transaction.type == transaction_type.upper())
        stmt = stmt.group_by(Transaction.txn_date).order_by(Transaction.txn_date.asc())

        with self._session_factory() as db:
            rows = db.execute(stmt).all()
        return [SeriesPoint(day=d, value=float(total or 0.0)) for d, total in rows]


class SqlUserDirectory:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def find(self, user_id: int) -> User:
        with self._session_factory() as db:
            user = db.get(User, user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user


class SqlConfigStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def save(self, config: ForecastConfig) -> ForecastConfig:
        with self._session_factory() as db:
            db.add(config)
            db.commit()
        return config

    def find(self, config_id: int) -> Optional[ForecastConfig]:
        with self._session_factory() as db:
            return db.get(ForecastConfig, config_id)

    def get_or_create(self, user: User, config: ForecastConfig) -> ForecastConfig:
        """Register an unsaved config for ``user``; resolve a saved one by id."""
        if config.id is None:
            if config.user_id is None:
                config.user_id = user.id
            return self.save(config)
        found = self.find(config.id)
        if found is None:
            raise NotFound("ForecastConfig", config.id)
        return found

    def list_for_user(self, user_id: int) -> List[ForecastConfig]:
        stmt = (
            select(ForecastConfig)
            .where(ForecastConfig.user_id == user_id)
            .order_by(ForecastConfig.id.asc())
        )
        with self._session_factory() as db:
            return list(db.execute(stmt).scalars().all())

    def owners(self) -> List[int]:
        stmt = select(ForecastConfig.user_id).distinct().order_by(ForecastConfig.user_id.asc())
        with self._session_factory() as db:
            return [int(uid) for uid in db.execute(stmt).scalars().all()]


class SqlResultStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def save_all(self, results: Sequence[ForecastResult]) -> List[ForecastResult]:
        rows = list(results)
        with self._session_factory() as db:
            db.add_all(rows)
            db.commit()
        return rows

    def save_performance(self, row: ForecastPerformance) -> ForecastPerformance:
        with self._session_factory() as db:
            db.add(row)
            db.commit()
        return row

    def find_for_user_between(self, user_id: int, from_date: date, to_date: date) -> List[ForecastResult]:
        stmt = (
            select(ForecastResult)
            .where(
                ForecastResult.user_id == user_id,
                ForecastResult.target_date >= from_date,
                ForecastResult.target_date <= to_date,
            )
            .order_by(ForecastResult.target_date.asc(), ForecastResult.id.asc())
        )
        with self._session_factory() as db:
            return list(db.execute(stmt).scalars().all())


class SqlAnomalyStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def save_all(self, anomalies: Iterable[ForecastAnomaly]) -> List[ForecastAnomaly]:
        rows = list(anomalies)
        with self._session_factory() as db:
            db.add_all(rows)
            db.commit()
        return rows


__all__ = [
    "SeriesSource",
    "UserDirectory",
    "ConfigStore",
    "ResultStore",
    "AnomalyStore",
    "SqlSeriesSource",
    "SqlUserDirectory",
    "SqlConfigStore",
    "SqlResultStore",
    "SqlAnomalyStore",
]
