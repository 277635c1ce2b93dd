from sqlalchemy import JSON, Column, Date, DateTime, Float, ForeignKey, Integer, func
from sqlalchemy.dialects.postgresql import JSONB

from forecast_engine.db.base import Base

JSON_PAYLOAD = JSON().with_variant(JSONB(), "postgresql")


class ForecastAnomaly(Base):
    __tablename__ = "forecast_anomalies"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    config_id = Column(Integer, ForeignKey("forecast_configs.id", ondelete="SET NULL"), nullable=True)
    event_date = Column(Date, nullable=False)
    anomaly_value = Column(Float, nullable=False)
    zscore = Column(Float, nullable=True)
    params_json = Column(JSON_PAYLOAD, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
