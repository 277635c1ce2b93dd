from importlib import import_module

from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import model modules so their tables register with Base.metadata.
# These imports must come before any Base.metadata.create_all(...)
_model_modules = [
    "user",
    "transaction",
    "forecast_config",
    "forecast_result",
    "forecast_performance",
    "forecast_anomaly",
]


def load_models() -> None:
    for _mod in _model_modules:
        import_module(f"forecast_engine.models.{_mod}")
