from __future__ import annotations
import logging
import os
from typing import Any

# LOG_LEVEL=DEBUG / INFO / WARNING / ERROR
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Call once at program start."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_message(
    logger: logging.Logger,
    direction: str,        # "IN" / "OUT"
    client_id: str | None,
    message: Any,
    note: str = "",
    level: int = logging.DEBUG,
) -> None:
    """Unified trace line for a message crossing the transport."""
    where = client_id if client_id else "*"
    msg_type = message.get("type", "?") if isinstance(message, dict) else "?"
    line = f"[{direction}] {where} type={msg_type}"
    if note:
        line += f" | {note}"
    logger.log(level, line)
