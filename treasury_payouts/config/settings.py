"""
Payout run settings.

Every field defaults from an environment variable (after .env is loaded) and may
be overridden explicitly, e.g. from CLI flags. Validation happens once in
__post_init__; a bad value raises ConfigurationError before any network call.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from treasury_payouts.config.env import (
    get_solana_rpc_url,
    get_squads_program_id,
    load_payouts_env,
    parse_bool_env,
)
from treasury_payouts.errors import ConfigurationError

DEFAULT_RECORDS_PER_TX = 5
DEFAULT_TX_PER_BATCH = 250
DEFAULT_COMPUTE_UNITS = 80_000
DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS = 200_000
DEFAULT_MAX_ATTEMPTS = 120
DEFAULT_POLL_INTERVAL_SEC = 0.5
DEFAULT_COMMITMENT = "confirmed"
COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")
# Tried on every run unless PAYOUT_LOOKUP_TABLES is set; set it empty to disable.
DEFAULT_LOOKUP_TABLES = ("9gioRTKjaKv5P2u3YmVNL3LoCUBqTZHNsGUJXQiN8ueC",)


class MissingMintPolicy(str, Enum):
    """What to do when a mint account cannot be fetched."""

    DEFAULT = "default"  # assume DEFAULT_DECIMALS and the classic token program, log a warning
    FAIL = "fail"  # abort the run before any submission


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def _env_optional_int(name: str) -> int | None:
    raw = (os.getenv(name) or "").strip()
    return _env_int(name, 0) if raw else None


def _env_list(name: str, default: tuple[str, ...] = ()) -> list[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class PayoutConfig:
    """Config for one payout run (env or explicit)."""

    rpc_url: str = field(default_factory=get_solana_rpc_url)
    multisig_address: str = field(default_factory=lambda: (os.getenv("PAYOUT_MULTISIG_ADDRESS") or "").strip())
    keypair_path: str = field(default_factory=lambda: (os.getenv("PAYOUT_KEYPAIR_PATH") or "").strip())
    csv_path: str = field(default_factory=lambda: (os.getenv("PAYOUT_CSV_PATH") or "").strip())
    vault_index: int = field(default_factory=lambda: _env_int("PAYOUT_VAULT_INDEX", 0))
    records_per_tx: int = field(default_factory=lambda: _env_int("PAYOUT_RECORDS_PER_TX", DEFAULT_RECORDS_PER_TX))
    tx_per_batch: int = field(default_factory=lambda: _env_int("PAYOUT_TX_PER_BATCH", DEFAULT_TX_PER_BATCH))
    max_instructions_per_tx: int | None = field(
        default_factory=lambda: _env_optional_int("PAYOUT_MAX_INSTRUCTIONS_PER_TX")
    )
    compute_units: int = field(default_factory=lambda: _env_int("PAYOUT_COMPUTE_UNITS", DEFAULT_COMPUTE_UNITS))
    priority_fee_micro_lamports: int = field(
        default_factory=lambda: _env_int("PAYOUT_PRIORITY_FEE", DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS)
    )
    max_attempts: int = field(default_factory=lambda: _env_int("PAYOUT_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS))
    poll_interval_sec: float = field(
        default_factory=lambda: _env_float("PAYOUT_POLL_INTERVAL_SEC", DEFAULT_POLL_INTERVAL_SEC)
    )
    commitment: str = field(default_factory=lambda: (os.getenv("PAYOUT_COMMITMENT") or DEFAULT_COMMITMENT).strip().lower())
    missing_mint_policy: MissingMintPolicy = field(
        default_factory=lambda: (os.getenv("PAYOUT_MISSING_MINT_POLICY") or MissingMintPolicy.DEFAULT.value).strip().lower()
    )
    lookup_tables: list[str] = field(default_factory=lambda: _env_list("PAYOUT_LOOKUP_TABLES", DEFAULT_LOOKUP_TABLES))
    program_id: str = field(default_factory=get_squads_program_id)
    dry_run: bool = field(default_factory=lambda: parse_bool_env("DRY_RUN", False))

    def __post_init__(self) -> None:
        try:
            self.missing_mint_policy = MissingMintPolicy(self.missing_mint_policy)
        except ValueError as e:
            raise ConfigurationError(
                f"missing_mint_policy must be one of {[p.value for p in MissingMintPolicy]}, "
                f"got {self.missing_mint_policy!r}"
            ) from e
        if self.commitment not in COMMITMENT_LEVELS:
            raise ConfigurationError(f"commitment must be one of {COMMITMENT_LEVELS}, got {self.commitment!r}")
        if self.records_per_tx < 1:
            raise ConfigurationError(f"records_per_tx must be >= 1, got {self.records_per_tx}")
        if self.tx_per_batch < 1:
            raise ConfigurationError(f"tx_per_batch must be >= 1, got {self.tx_per_batch}")
        if self.max_instructions_per_tx is not None and self.max_instructions_per_tx < 1:
            raise ConfigurationError(f"max_instructions_per_tx must be >= 1, got {self.max_instructions_per_tx}")
        if not 0 <= self.vault_index <= 255:
            raise ConfigurationError(f"vault_index must fit in a u8, got {self.vault_index}")
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.poll_interval_sec < 0:
            raise ConfigurationError(f"poll_interval_sec must be >= 0, got {self.poll_interval_sec}")
        if self.compute_units < 1 or self.priority_fee_micro_lamports < 0:
            raise ConfigurationError("compute_units must be positive and priority fee non-negative")
        for name in ("multisig_address", "program_id"):
            value = getattr(self, name)
            if value:
                _check_pubkey(name, value)
        for table in self.lookup_tables:
            _check_pubkey("lookup_tables", table)

    def require_run_inputs(self) -> None:
        """Check that the inputs a real run needs (multisig, signer, records) are set."""
        missing = [
            name
            for name in ("multisig_address", "keypair_path", "csv_path")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")


def _check_pubkey(name: str, value: str) -> None:
    from solders.pubkey import Pubkey

    try:
        Pubkey.from_string(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} is not a valid address: {value!r}") from e


def get_settings(**overrides: object) -> PayoutConfig:
    """
    Return validated settings: .env + environment, then explicit overrides.

    Overrides whose value is None are ignored so CLI flags that were not given
    fall through to the environment.
    """
    load_payouts_env()
    explicit = {k: v for k, v in overrides.items() if v is not None}
    return PayoutConfig(**explicit)
