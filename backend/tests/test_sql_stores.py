from datetime import date, timedelta
from decimal import Decimal

import pytest

from forecast_engine.exceptions import NotFound
from forecast_engine.models import (
    ForecastAnomaly,
    ForecastConfig,
    ForecastPerformance,
    ForecastResult,
    Transaction,
    User,
)
from forecast_engine.services.engine import build_engine
from forecast_engine.services.stores import (
    SqlAnomalyStore,
    SqlConfigStore,
    SqlResultStore,
    SqlSeriesSource,
    SqlUserDirectory,
)

DAY = date(2024, 4, 1)


@pytest.fixture
def seeded(db):
    user = User(email="alice@example.com", is_active=True)
    db.add(user)
    db.commit()

    rows = [
        Transaction(user_id=user.id, txn_date=DAY, amount=Decimal("10.00"), category="food", type="EXPENSE"),
        Transaction(user_id=user.id, txn_date=DAY, amount=Decimal("5.50"), category="fuel", type="EXPENSE"),
        Transaction(user_id=user.id, txn_date=DAY + timedelta(days=2), amount=Decimal("100.00"),
                    category="salary", type="INCOME"),
        Transaction(user_id=user.id, txn_date=DAY + timedelta(days=3), amount=Decimal("7.25"),
                    category="food", type="EXPENSE"),
    ]
    db.add_all(rows)
    db.commit()
    return user


def test_daily_totals_groups_by_day_and_skips_empty_days(session_factory, seeded):
    src = SqlSeriesSource(session_factory)
    points = src.daily_totals(seeded.id, DAY, DAY + timedelta(days=5))

    assert [p.day for p in points] == [DAY, DAY + timedelta(days=2), DAY + timedelta(days=3)]
    assert [p.value for p in points] == pytest.approx([15.5, 100.0, 7.25])


def test_daily_totals_filters(session_factory, seeded):
    src = SqlSeriesSource(session_factory)
    food = src.daily_totals(seeded.id, DAY, DAY + timedelta(days=5), category="food")
    assert [p.value for p in food] == pytest.approx([10.0, 7.25])

    income = src.daily_totals(seeded.id, DAY, DAY + timedelta(days=5), transaction_type="income")
    assert [p.day for p in income] == [DAY + timedelta(days=2)]


def test_daily_totals_respects_range(session_factory, seeded):
    src = SqlSeriesSource(session_factory)
    points = src.daily_totals(seeded.id, DAY + timedelta(days=1), DAY + timedelta(days=2))
    assert [p.day for p in points] == [DAY + timedelta(days=2)]


def test_user_directory(session_factory, seeded):
    users = SqlUserDirectory(session_factory)
    assert users.find(seeded.id).email == "alice@example.com"
    with pytest.raises(NotFound):
        users.find(seeded.id + 100)


def test_config_get_or_create(session_factory, seeded):
    store = SqlConfigStore(session_factory)
    cfg = ForecastConfig(algorithm="SMA", window_size=3)

    saved = store.get_or_create(seeded, cfg)
    assert saved.id is not None
    assert saved.user_id == seeded.id

    again = store.get_or_create(seeded, ForecastConfig(id=saved.id, algorithm="SMA"))
    assert again.id == saved.id
    assert again.window_size == 3

    with pytest.raises(NotFound):
        store.get_or_create(seeded, ForecastConfig(id=saved.id + 50, algorithm="SMA"))

    assert [c.id for c in store.list_for_user(seeded.id)] == [saved.id]
    assert store.owners() == [seeded.id]


def test_result_and_anomaly_stores(session_factory, seeded):
    cfg = SqlConfigStore(session_factory).save(ForecastConfig(user_id=seeded.id, algorithm="EWMA"))
    results = SqlResultStore(session_factory)
    rows = [
        ForecastResult(config_id=cfg.id, user_id=seeded.id, target_date=DAY + timedelta(days=i),
                       forecast_value=float(i))
        for i in range(3)
    ]
    results.save_all(rows)
    results.save_performance(
        ForecastPerformance(config_id=cfg.id, user_id=seeded.id, mape=12.5, horizon_days=3, lookback_days=30)
    )

    found = results.find_for_user_between(seeded.id, DAY, DAY + timedelta(days=1))
    assert [r.forecast_value for r in found] == [0.0, 1.0]

    anomalies = SqlAnomalyStore(session_factory).save_all(
        [ForecastAnomaly(user_id=seeded.id, event_date=DAY, anomaly_value=99.0, zscore=4.2,
                         params_json={"threshold_sigma": 3.0})]
    )
    assert anomalies[0].id is not None


@pytest.mark.anyio
async def test_engine_end_to_end_on_sqlite(session_factory, seeded, settings):
    engine = build_engine(settings, session_factory)
    start = DAY + timedelta(days=4)

    rows = await engine.generate(seeded.id, ForecastConfig(algorithm="LINEAR_REGRESSION"), start, 3)

    assert len(rows) == 3
    stored = SqlResultStore(session_factory).find_for_user_between(seeded.id, start, start + timedelta(days=2))
    assert [r.target_date for r in stored] == [start + timedelta(days=i) for i in range(3)]
    assert [r.forecast_value for r in stored] == pytest.approx([r.forecast_value for r in rows])
