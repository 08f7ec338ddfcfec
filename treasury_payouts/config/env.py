"""
Environment variable loading for treasury payouts.

- SOLANA_NETWORK: devnet | mainnet (default: mainnet)
- SOLANA_RPC_URL: RPC endpoint (overrides SOLANA_NETWORK)
- SQUADS_PROGRAM_ID / NEXT_PUBLIC_PROGRAM_ID: Squads v4 program override
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

# Project root: config is treasury_payouts/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEVNET_RPC_URL = "https://api.devnet.solana.com"
MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
SQUADS_V4_PROGRAM_ID = "SQDS4ep65T869zMMBKyuUq6aD6EgTu8psMjkvj52pCf"


def load_payouts_env() -> None:
    """Load .env from project root and the working directory. Safe to call multiple times."""
    from dotenv import find_dotenv, load_dotenv

    load_dotenv(_ENV_PATH)
    load_dotenv(find_dotenv(usecwd=True))


def parse_bool_env(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    return default


def get_solana_network() -> str:
    """Return SOLANA_NETWORK from env: devnet | mainnet. Default: mainnet."""
    raw = (os.getenv("SOLANA_NETWORK") or os.getenv("SOLANA_CLUSTER") or "mainnet").strip().lower()
    return "devnet" if raw == "devnet" else "mainnet"


def get_solana_rpc_url() -> str:
    """Resolve RPC URL. Order: SOLANA_RPC_URL > network default."""
    url = (os.getenv("SOLANA_RPC_URL") or "").strip()
    if url:
        return url
    return DEVNET_RPC_URL if get_solana_network() == "devnet" else MAINNET_RPC_URL


def get_squads_program_id() -> str:
    pid = (os.getenv("SQUADS_PROGRAM_ID") or os.getenv("NEXT_PUBLIC_PROGRAM_ID") or "").strip()
    return pid or SQUADS_V4_PROGRAM_ID


def mask_rpc_url(url: str) -> str:
    """Hide API keys embedded in provider URLs before logging."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
