"""Centralized logging service using loguru.

Importing this module configures the sinks once. The ``log_*`` helpers emit
one structured line per LLM call, pipeline stage or history write so a run
can be traced in the daily log file.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from market_research.config import settings

LOG_DIR = Path(settings.log_dir)

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "openai._base_client", "asyncio")


def configure_logging() -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=settings.app_log_level.upper(), colorize=True)
    logger.add(
        LOG_DIR / "market_research_{time:YYYY-MM-DD}.log",
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="00:00",
        retention="7 days",
        compression="zip",
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(settings.noisy_log_level.upper())


configure_logging()


def _emit(label: str, fields: dict[str, Any], *, level: str = "INFO") -> None:
    record = {"timestamp": datetime.now(timezone.utc).isoformat(), **fields}
    logger.opt(depth=2).log(level, f"{label}: {record}")


def log_llm_call(
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Log a completion service call with token usage."""
    _emit(
        "LLM_CALL_FAILED" if error else "LLM_CALL",
        {
            "model": model,
            "caller": caller,
            "tokens": {"in": input_tokens, "out": output_tokens, "total": input_tokens + output_tokens},
            "duration_ms": duration_ms,
            "status": status,
            "error": error,
        },
        level="ERROR" if error else "INFO",
    )


def log_research_step(
    run_id: str,
    step_type: str,
    status: str,
    data: Optional[dict] = None,
) -> None:
    _emit(
        "RESEARCH_STEP",
        {"run_id": run_id, "stage": step_type, "status": status, "data": data},
        level="WARNING" if status == "failed" else "INFO",
    )


def log_db_operation(
    operation: str,
    table: str,
    status: str,
    details: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    """Log a history store write."""
    _emit(
        "DB_OPERATION_FAILED" if error else "DB_OPERATION",
        {"operation": operation, "table": table, "status": status, "details": details, "error": error},
        level="ERROR" if error else "INFO",
    )


def log_event(event_type: str, message: str, **kwargs: Any) -> None:
    _emit("EVENT", {"event_type": event_type, "message": message, **kwargs})
