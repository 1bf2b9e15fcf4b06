"""Loguru set-up shared by the API, the CLI and the research pipeline."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from newsdeck.config import settings

LOG_DIR = Path(settings.log_dir)
LOG_DIR.mkdir(parents=True, exist_ok=True)

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "sse_starlette.sse",
    "httpx",
    "httpcore",
    "openai._base_client",
    "trafilatura",
)

# Research step status -> loguru level; anything else is INFO
STEP_LEVELS = {"degraded": "WARNING", "failed": "ERROR", "superseded": "DEBUG"}

logger.remove()
logger.add(
    sys.stderr,
    format=(
        "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    ),
    level=settings.app_log_level.upper(),
    colorize=True,
)
logger.add(
    LOG_DIR / "newsdeck_{time:YYYY-MM-DD}.log",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    level="DEBUG",
    rotation="00:00",
    retention="7 days",
    compression="zip",
)

for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(settings.noisy_log_level.upper())


def _record(tag: str, level: str, **fields: Any) -> None:
    payload = {"timestamp": datetime.now(timezone.utc).isoformat(), **fields}
    logger.log(level, f"{tag}: {payload}")


def log_llm_call(
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """One line per completion request, failed or not."""
    _record(
        "LLM_CALL_FAILED" if error else "LLM_CALL",
        "ERROR" if error else "INFO",
        model=model,
        caller=caller,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        duration_ms=duration_ms,
        status=status,
        error=error,
    )


def log_research_step(
    article_id: str,
    phase: str,
    status: str,
    data: Optional[dict[str, Any]] = None,
) -> None:
    _record(
        "RESEARCH_STEP",
        STEP_LEVELS.get(status, "INFO"),
        article_id=article_id,
        phase=phase,
        status=status,
        data=data,
    )


def log_event(event_type: str, message: str, **kwargs: Any) -> None:
    _record("EVENT", "INFO", event_type=event_type, message=message, **kwargs)
