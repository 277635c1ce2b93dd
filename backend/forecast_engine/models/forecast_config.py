from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, func

from forecast_engine.db.base import Base


class ForecastConfig(Base):
    """
    Algorithm selector plus its parameters. Only the parameters relevant to
    ``algorithm`` are read; the others are ignored. Never updated once results
    reference it.
    """

    __tablename__ = "forecast_configs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    algorithm = Column(String(64), nullable=False)
    window_size = Column(Integer, nullable=True)         # SMA
    smoothing_factor = Column(Float, nullable=True)      # EWMA alpha
    season_length = Column(Integer, nullable=True)       # seasonal decomposition
    category = Column(String(128), nullable=True)        # optional series filter
    transaction_type = Column(String(64), nullable=True) # optional series filter
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"ForecastConfig(id={self.id!r}, algorithm={self.algorithm!r})"
