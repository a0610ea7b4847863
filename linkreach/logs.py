"""structlog setup shared by the API process and the queue services."""

import logging

import structlog

from linkreach.config import Config


def _level_number(name: str) -> int:
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    use_json = Config.LOG_JSON if json_logs is None else json_logs
    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_level_number(level or Config.LOG_LEVEL)),
    )
