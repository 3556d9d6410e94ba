"""
Logging utilities for GraphFront
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog


def setup_logger(
    name: str = "graphfront",
    level: str = "INFO",
    log_file: Optional[str] = None,
    structured: bool = True
) -> logging.Logger:
    """
    Setup logger with structured logging support

    Library modules log through the standard `logging` module; this
    configures where those records go for a worker process.

    Args:
        name: Logger name
        level: Logging level
        log_file: Optional log file path
        structured: Use structured logging

    Returns:
        Configured logger
    """
    numeric_level = getattr(logging, level.upper())

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    if structured:
        # Shared by structlog events and records from plain `logging` loggers
        shared_processors = [
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                *shared_processors,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )
        formatter = structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer()
            ],
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if structured:
        return structlog.get_logger(name)
    return logger


def get_logger(name: str):
    """Get logger instance"""
    return structlog.get_logger(name)


class WorkerLoggerAdapter:
    """
    Adapter for distributed logging with rank information
    """

    def __init__(self, logger, rank: int, world_size: int):
        self.logger = logger
        self.rank = rank
        self.world_size = world_size

    def _add_rank_info(self, msg: str) -> str:
        return f"[Worker {self.rank}/{self.world_size}] {msg}"

    def debug(self, msg: str, **kwargs):
        self.logger.debug(self._add_rank_info(msg), **kwargs)

    def info(self, msg: str, **kwargs):
        self.logger.info(self._add_rank_info(msg), **kwargs)

    def warning(self, msg: str, **kwargs):
        self.logger.warning(self._add_rank_info(msg), **kwargs)

    def error(self, msg: str, **kwargs):
        self.logger.error(self._add_rank_info(msg), **kwargs)

    def critical(self, msg: str, **kwargs):
        self.logger.critical(self._add_rank_info(msg), **kwargs)
