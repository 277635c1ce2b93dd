from .instrument import log_job
from .logging import configure_logging

__all__ = ["log_job", "configure_logging"]
