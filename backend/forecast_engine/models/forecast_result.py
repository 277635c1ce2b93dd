from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Index, Integer, func

from forecast_engine.db.base import Base


class ForecastResult(Base):
    __tablename__ = "forecast_results"
    id = Column(Integer, primary_key=True)
    config_id = Column(Integer, ForeignKey("forecast_configs.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_date = Column(Date, nullable=False)
    forecast_value = Column(Float, nullable=False)
    confidence_low = Column(Float, nullable=True)
    confidence_high = Column(Float, nullable=True)
    mape = Column(Float, nullable=True)  # set by backtests only
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    __table_args__ = (Index("ix_forecast_results_user_date", "user_id", "target_date"),)
