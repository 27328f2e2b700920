from __future__ import annotations

import logging
import logging.config
from typing import Optional

from crm_backend.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a single stdout handler for the app and uvicorn loggers.

    Must run before uvicorn starts so worker processes inherit it.
    """
    resolved = (level or settings.log_level or "INFO").upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                "crm_backend": {"level": resolved, "handlers": ["console"], "propagate": False},
                "uvicorn": {"level": resolved, "handlers": ["console"], "propagate": False},
                "uvicorn.access": {"level": resolved, "handlers": ["console"], "propagate": False},
            },
            "root": {"level": "WARNING", "handlers": ["console"]},
        }
    )

    logging.getLogger("crm_backend.logging").info("Logging configured (level=%s)", resolved)
