from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from forecast_engine.config import get_settings
from forecast_engine.db.session import get_sessionmaker
from forecast_engine.services.engine import ForecastEngine, build_engine
from forecast_engine.services.stores import SqlConfigStore

logger = logging.getLogger(__name__)


async def run_nightly_forecasts(
    engine: Optional[ForecastEngine] = None,
    config_store: Optional[SqlConfigStore] = None,
    today: Optional[date] = None,
) -> int:
    """
    Nightly batch forecast job.

    For every user owning saved configs, batch-generate the next
    ``NIGHTLY_HORIZON_DAYS`` days starting tomorrow. A failing user is logged
    and skipped. Returns the number of users processed successfully.
    """
    if engine is None:
        engine = build_engine(get_settings())
    settings = engine.settings
    if config_store is None:
        config_store = SqlConfigStore(get_sessionmaker())

    start = (today or datetime.now(timezone.utc).date()) + timedelta(days=1)
    horizon = settings.NIGHTLY_HORIZON_DAYS
    logger.info("nightly_forecasts.start", extra={"start_date": start.isoformat(), "horizon": horizon})

    done = 0
    for user_id in config_store.owners():
        configs = config_store.list_for_user(user_id)
        if not configs:
            continue
        try:
            await engine.batch_generate(user_id, configs, start, horizon)
        except Exception as exc:
            logger.exception("nightly_forecasts.user_error", extra={"user_id": user_id, "error": str(exc)})
            continue
        done += 1

    logger.info("nightly_forecasts.done", extra={"users": done})
    return done
