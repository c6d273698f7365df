# rentlead/logging_config.py
from __future__ import annotations

import logging

from .config import settings

_NOISY = ("httpx", "apscheduler", "uvicorn", "uvicorn.error", "uvicorn.access")


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s:%(name)s:%(message)s",
    )
    # Quiet the usual offenders
    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.WARNING)
