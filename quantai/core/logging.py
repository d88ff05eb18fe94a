from __future__ import annotations

import os
from pathlib import Path

from loguru import logger as _logger


def _env_flag(name: str) -> bool:
    return str(os.getenv(name, "0")).lower() in {"1", "true", "yes"}


def setup_logging(log_dir: str = "logs", level: str = "INFO") -> None:
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    # Allow env override for log level (e.g., DEBUG)
    level = str(os.getenv("QUANTAI_LOG_LEVEL", level)).upper()

    _logger.remove()
    # Console sink can be disabled when the rich report owns the terminal
    if not _env_flag("QUANTAI_DISABLE_CONSOLE_LOG"):
        _logger.add(
            sink=lambda msg: print(msg, end=""),
            level=level,
            colorize=True,
            backtrace=False,
            diagnose=False,
        )
    _logger.add(
        Path(log_dir) / "quantai.log",
        rotation="10 MB",
        retention=10,
        level=level,
        enqueue=True,
        backtrace=False,
        diagnose=False,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
    )

    # Dedicated LLM trace sink (JSONL), enabled when QUANTAI_LLM_DEBUG is set
    if _env_flag("QUANTAI_LLM_DEBUG"):
        _logger.add(
            Path(log_dir) / "llm.log",
            rotation="10 MB",
            retention=10,
            level="DEBUG",
            enqueue=True,
            backtrace=False,
            diagnose=False,
            filter=lambda record: record["extra"].get("component") == "llm",
            serialize=True,
        )


def get_logger() -> _logger.__class__:
    return _logger


def get_llm_logger() -> _logger.__class__:
    """Return a logger bound for LLM tracing. Only emits to llm.log when LLM debug is enabled."""
    return _logger.bind(component="llm")
