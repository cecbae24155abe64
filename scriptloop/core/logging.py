from __future__ import annotations

import json
import logging
import os
from typing import Any, TextIO

from scriptloop.core.config import LoopConfig

PACKAGE_LOGGER = "scriptloop"
LOG_FILENAME = "loop.log"


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    return logging.getLogger(name)


def configure_logging(
    config: LoopConfig,
    *,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Attach exactly one handler to the package logger.

    Descriptors 1 and 2 carry captured script output and the root logger
    belongs to the executed scripts (a snippet calling ``basicConfig`` must
    not receive loop records), so the package logger never propagates.
    Records go to ``stream`` when given, else to ``<log_dir>/loop.log``,
    else nowhere.
    """
    level_value = getattr(logging, config.log_level.strip().upper(), logging.INFO)
    if config.log_format == "json":
        formatter = logging.Formatter("%(message)s")
    else:
        formatter = logging.Formatter("%(levelname)s %(name)s %(message)s")

    logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    handler: logging.Handler
    if stream is not None:
        handler = logging.StreamHandler(stream)
    elif config.log_dir is not None:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(config.log_dir / LOG_FILENAME, encoding="utf-8")
    else:
        handler = logging.NullHandler()

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(level_value)
    logger.propagate = False
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    # Several loop processes may share one log_dir; pid tells them apart.
    payload = {"event": event, "pid": os.getpid(), **fields}
    logger.log(level, json.dumps(payload, sort_keys=True, default=str))
