"""
Structured logging for payout runs.

Every line carries timestamp, level and event_type, plus whatever the run bound
(multisig, vault_index) and the call site passed (signature, batch_index,
attempt). LOG_FORMAT=json (default) or console; LOG_LEVEL filters.

No treasury_payouts imports here, so any module can import get_logger.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _normalize_event(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Rename structlog 'event' to event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _processors(log_format: str) -> list[Any]:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors += [_normalize_event, structlog.processors.JSONRenderer()]
    return processors


def configure_structlog() -> None:
    structlog.configure(
        processors=_processors(LOG_FORMAT),
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger bound to the module name.

        logger = get_logger(__name__)
        logger.info("tx_confirmed", signature=sig, attempt=3, confirmation_status="confirmed")
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_run(multisig: str, vault_index: int) -> None:
    """Bind multisig address and vault index to every log line of the current run."""
    structlog.contextvars.bind_contextvars(multisig=multisig, vault_index=vault_index)
