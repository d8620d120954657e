from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from core.models import SwitcherConfig


def configure_logger(config: SwitcherConfig) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=config.log_level,
        format="<level>{level: <8}</level> {message}",
        backtrace=False,
        diagnose=False,
    )
    if not config.log_to_file:
        return
    Path(config.logs_dir).mkdir(parents=True, exist_ok=True)
    logger.add(
        Path(config.logs_dir) / "gh_switcher.log",
        serialize=True,
        level="INFO",
        rotation="1 MB",
        retention=5,
        backtrace=False,
        diagnose=False,
    )


class EventLog:
    """Structured audit trail of switcher operations."""

    def __init__(self, config: SwitcherConfig):
        self.config = config

    def event(
        self,
        component: str,
        message: str,
        *,
        payload: dict[str, Any] | None = None,
    ) -> None:
        record = {
            "component": component,
            "message": message,
            "payload": payload or {},
        }
        logger.bind(component=component).info(json.dumps(record, default=str))
