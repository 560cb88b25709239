"""
Structured logging for the editor core and the HTTP functions.

Events are short ``area:event`` names. Dimensions travel as
``custom_dimensions`` for the Functions host and are also appended to the
message text so plain console handlers show them.
"""
import logging
import os
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional


LOGGER_NAME = "evermoment"
_LOGGER = logging.getLogger(LOGGER_NAME)


def _dimensions(session_id: Optional[str], dimensions: Dict[str, Any]) -> Dict[str, Any]:
    dims: Dict[str, Any] = {"sessionId": session_id} if session_id else {}
    dims.update({k: v for k, v in dimensions.items() if v is not None})
    return dims


def log(level: int, session_id: Optional[str], message: str, **dimensions: Any) -> None:
    if not _LOGGER.isEnabledFor(level):
        return
    dims = _dimensions(session_id, dimensions)
    text = f"{message} | {dims}" if dims else message
    _LOGGER.log(level, text, extra={"custom_dimensions": dims})


def info(session_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.INFO, session_id, message, **dimensions)


def warning(session_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.WARNING, session_id, message, **dimensions)


def error(session_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.ERROR, session_id, message, **dimensions)


@contextmanager
def timed(session_id: Optional[str], message: str, **dimensions: Any) -> Iterator[Dict[str, Any]]:
    """Log ``message`` with ``durationMs`` when the block completes.

    The yielded dict collects dimensions only known inside the block. Nothing
    is logged if the block raises.
    """
    collected: Dict[str, Any] = dict(dimensions)
    start = time.perf_counter()
    yield collected
    collected["durationMs"] = round((time.perf_counter() - start) * 1000, 1)
    info(session_id, message, **collected)


def configure_logging(level: Optional[str] = None) -> None:
    """Apply EVERMOMENT_LOG_LEVEL and AZURE_SDK_LOG_LEVEL (or ``level``)."""
    sdk_level = (os.getenv("AZURE_SDK_LOG_LEVEL") or "").upper()
    if sdk_level:
        resolved = getattr(logging, sdk_level, logging.INFO)
        logging.getLogger("azure").setLevel(resolved)
        logging.getLogger("azure.cosmos").setLevel(resolved)
    name = (level or os.getenv("EVERMOMENT_LOG_LEVEL") or "INFO").upper()
    _LOGGER.setLevel(getattr(logging, name, logging.INFO))
