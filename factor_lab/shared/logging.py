from __future__ import annotations

import logging

import structlog


def setup_logging(
    reset_handlers: bool = True,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    if reset_handlers:
        for h in logging.root.handlers[:]:
            logging.root.removeHandler(h)
    processors = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )
    logging.basicConfig(level=log_level)


def get_logger(name: str):  # 型は環境により異なるため明示は省略
    return structlog.get_logger(name)
