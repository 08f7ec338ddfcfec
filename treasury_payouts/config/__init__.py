"""
Configuration for a payout run.

Loads settings from environment variables and an optional .env file; CLI flags
override them. Exposes a single validated, immutable-for-the-run config object.
"""

from treasury_payouts.config.settings import MissingMintPolicy, PayoutConfig, get_settings  # noqa: F401

__all__ = ["MissingMintPolicy", "PayoutConfig", "get_settings"]
