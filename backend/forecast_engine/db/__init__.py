from .base import Base
from .session import (
    ENGINE as engine,
    SessionLocal,
    get_engine,
    get_sessionmaker,
    init_db,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_engine",
    "get_sessionmaker",
    "init_db",
]
