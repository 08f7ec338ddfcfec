"""
Mint metadata cache.

One getAccountInfo per distinct mint per run; results are kept for the whole
run and never invalidated. The cache is owned by the pipeline and passed by
reference, never module-global.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID

from treasury_payouts.config.settings import MissingMintPolicy
from treasury_payouts.errors import MintResolutionError
from treasury_payouts.ledger.rpc import TRANSIENT_ERRORS
from treasury_payouts.payouts_logging import get_logger

logger = get_logger(__name__)

DEFAULT_DECIMALS = 9
# SPL mint layout: 4 COption tag + 32 mint_authority + 8 supply, then u8 decimals
MINT_DECIMALS_OFFSET = 44
MINT_MIN_LEN = MINT_DECIMALS_OFFSET + 1


@dataclass(frozen=True)
class MintInfo:
    """Owning token program and decimals; resolved=False means defaults were applied."""

    token_program: Pubkey
    decimals: int
    resolved: bool = True


def parse_mint_decimals(data: bytes) -> int | None:
    if data is None or len(data) < MINT_MIN_LEN:
        return None
    return data[MINT_DECIMALS_OFFSET]


class MintCache:
    """Pipeline-scoped map of mint address -> MintInfo, populated on miss."""

    def __init__(self, ledger: Any, policy: MissingMintPolicy = MissingMintPolicy.DEFAULT) -> None:
        self._ledger = ledger
        self._policy = MissingMintPolicy(policy)
        self._entries: dict[str, MintInfo] = {}

    def __contains__(self, mint: str) -> bool:
        return mint in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, mint: str) -> MintInfo:
        info = self._entries.get(mint)
        if info is None:
            info = self._resolve(mint)
            self._entries[mint] = info
        return info

    def prefetch(self, mints: Iterable[str]) -> None:
        """Resolve every distinct mint up front, in first-seen order."""
        for mint in mints:
            self.get(mint)

    def _resolve(self, mint: str) -> MintInfo:
        decimals = None
        owner = None
        try:
            account = self._ledger.get_account(Pubkey.from_string(mint))
            if account is not None:
                decimals = parse_mint_decimals(account.data)
                owner = account.owner
        except TRANSIENT_ERRORS as e:
            logger.warning("mint_fetch_failed", mint=mint, error=str(e))

        if decimals is not None:
            info = MintInfo(token_program=owner or TOKEN_PROGRAM_ID, decimals=decimals)
            logger.debug("mint_resolved", mint=mint, decimals=decimals, token_program=str(info.token_program))
            return info

        if self._policy is MissingMintPolicy.FAIL:
            logger.error("mint_resolution_failed", mint=mint, policy=self._policy.value)
            raise MintResolutionError(mint)
        logger.warning(
            "mint_resolution_degraded",
            mint=mint,
            assumed_decimals=DEFAULT_DECIMALS,
            token_program=str(TOKEN_PROGRAM_ID),
        )
        return MintInfo(token_program=TOKEN_PROGRAM_ID, decimals=DEFAULT_DECIMALS, resolved=False)
