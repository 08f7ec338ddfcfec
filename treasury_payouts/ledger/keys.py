"""Signer loading: Solana CLI keypair file (JSON array of 64 bytes) or a base58 secret."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from treasury_payouts.errors import ConfigurationError
from treasury_payouts.payouts_logging import get_logger

logger = get_logger(__name__)


def _keypair_from_secret(raw: str) -> Any:
    """Parse a secret given inline: JSON array of 64 bytes or base58 string."""
    import base58
    from solders.keypair import Keypair

    raw = raw.strip()
    if raw.startswith("["):
        try:
            arr = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError("Keypair JSON is malformed") from e
        if not isinstance(arr, list) or len(arr) < 64:
            raise ConfigurationError("Keypair JSON must be an array of 64 bytes")
        try:
            return Keypair.from_bytes(bytes(arr[:64]))
        except (TypeError, ValueError) as e:
            raise ConfigurationError("Keypair JSON does not hold a valid secret key") from e
    try:
        return Keypair.from_bytes(base58.b58decode(raw))
    except ValueError as e:
        raise ConfigurationError("Keypair is neither a JSON byte array nor a base58 secret") from e


def load_keypair(path: str | Path) -> Any:
    """Load the signer from a keypair file. Raises ConfigurationError if unreadable or invalid."""
    path = Path(path).expanduser()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("keypair_load_failed", path=str(path), error=str(e))
        raise ConfigurationError(f"Cannot read keypair file {path}") from e
    keypair = _keypair_from_secret(raw)
    logger.info("keypair_loaded", signer=str(keypair.pubkey()))
    return keypair
