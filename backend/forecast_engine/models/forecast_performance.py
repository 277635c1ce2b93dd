from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, func

from forecast_engine.db.base import Base


class ForecastPerformance(Base):
    """One row per scored backtest."""

    __tablename__ = "forecast_performance"
    id = Column(Integer, primary_key=True)
    config_id = Column(Integer, ForeignKey("forecast_configs.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    mape = Column(Float, nullable=False)
    horizon_days = Column(Integer, nullable=False)
    lookback_days = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
