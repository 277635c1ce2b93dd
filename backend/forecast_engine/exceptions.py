from __future__ import annotations


class ForecastEngineError(Exception):
    """Base class for errors raised by the forecasting core."""


class NotFound(ForecastEngineError, LookupError):
    """An unknown user or configuration identity was referenced."""

    def __init__(self, kind: str, ident) -> None:
        super().__init__(f"{kind} not found: {ident!r}")
        self.kind = kind
        self.ident = ident


class InvalidParameter(ForecastEngineError, ValueError):
    """An algorithm or orchestration precondition was violated."""


__all__ = ["ForecastEngineError", "NotFound", "InvalidParameter"]
