"""
Squads v4 program-derived addresses.

Seeds (program lib): every PDA starts with b"multisig" and the multisig key.
  vault:             [b"multisig", multisig, b"vault", u8 vault_index]
  transaction/batch: [b"multisig", multisig, b"transaction", u64 index]
  proposal:          [... transaction seeds ..., b"proposal"]
  batch transaction: [... transaction seeds ..., b"batch_transaction", u32 position]
"""

from __future__ import annotations

import struct
from typing import Any

from solders.pubkey import Pubkey

from treasury_payouts.config.env import SQUADS_V4_PROGRAM_ID

SEED_PREFIX = b"multisig"
SEED_VAULT = b"vault"
SEED_TRANSACTION = b"transaction"
SEED_PROPOSAL = b"proposal"
SEED_BATCH_TRANSACTION = b"batch_transaction"

DEFAULT_PROGRAM_ID = Pubkey.from_string(SQUADS_V4_PROGRAM_ID)


def _transaction_seeds(multisig: Pubkey, index: int) -> list[bytes]:
    return [SEED_PREFIX, bytes(multisig), SEED_TRANSACTION, struct.pack("<Q", index)]


def get_vault_pda(multisig: Pubkey, vault_index: int, program_id: Pubkey = DEFAULT_PROGRAM_ID) -> Pubkey:
    pda, _ = Pubkey.find_program_address(
        [SEED_PREFIX, bytes(multisig), SEED_VAULT, bytes([vault_index])], program_id
    )
    return pda


def get_transaction_pda(multisig: Pubkey, index: int, program_id: Pubkey = DEFAULT_PROGRAM_ID) -> Pubkey:
    """Transaction account for `index`; for a batch this is the batch account itself."""
    pda, _ = Pubkey.find_program_address(_transaction_seeds(multisig, index), program_id)
    return pda


def get_proposal_pda(multisig: Pubkey, index: int, program_id: Pubkey = DEFAULT_PROGRAM_ID) -> Pubkey:
    pda, _ = Pubkey.find_program_address(
        _transaction_seeds(multisig, index) + [SEED_PROPOSAL], program_id
    )
    return pda


def get_batch_transaction_pda(
    multisig: Pubkey,
    batch_index: int,
    position: int,
    program_id: Pubkey = DEFAULT_PROGRAM_ID,
) -> Pubkey:
    """Account holding the `position`-th (1-based) transaction of a batch."""
    pda, _ = Pubkey.find_program_address(
        _transaction_seeds(multisig, batch_index)
        + [SEED_BATCH_TRANSACTION, struct.pack("<I", position)],
        program_id,
    )
    return pda


def resolve_program_id(program_id: Any) -> Pubkey:
    """Accept a Pubkey, a base58 string, or None (default Squads v4 program)."""
    if program_id is None or program_id == "":
        return DEFAULT_PROGRAM_ID
    if isinstance(program_id, Pubkey):
        return program_id
    return Pubkey.from_string(str(program_id))
