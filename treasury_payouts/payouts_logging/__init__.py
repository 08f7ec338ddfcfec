"""
Structured logging for treasury payouts.

JSON logs with timestamp, level and event_type. Use get_logger() in every module.
"""

from treasury_payouts.payouts_logging.logger import bind_run, get_logger

__all__ = ["bind_run", "get_logger"]
