from __future__ import annotations

import logging
import sys

# httpx logs full request URLs at INFO, and those carry `secret=` / `access_token=`
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO", service_name: str = "wechat-client") -> logging.Handler:
    """
    Route everything to stdout as `time level service logger message`.

    Existing root handlers are replaced so repeated calls don't duplicate lines.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(fmt=f"%(asctime)s %(levelname)s {service_name} %(name)s %(message)s")
    )
    root.handlers = [handler]

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
