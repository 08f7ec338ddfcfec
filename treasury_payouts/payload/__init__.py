# Payload generation: mint metadata cache and per-record instruction units.

from treasury_payouts.payload.generator import (
    OperationUnit,
    PayloadGenerator,
    from_base_units,
    to_base_units,
)
from treasury_payouts.payload.mints import DEFAULT_DECIMALS, MintCache, MintInfo

__all__ = [
    "DEFAULT_DECIMALS",
    "MintCache",
    "MintInfo",
    "OperationUnit",
    "PayloadGenerator",
    "from_base_units",
    "to_base_units",
]
