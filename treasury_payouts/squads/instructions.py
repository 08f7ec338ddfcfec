"""
Squads v4 instruction builders used by the batch workflow.

Anchor: instruction discriminator = first 8 bytes of sha256("global:<instruction_name>"),
followed by borsh-encoded args. Account order matches the program's Accounts structs.
"""

from __future__ import annotations

import hashlib
import struct

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYS_PROGRAM_ID

from treasury_payouts.squads.pdas import (
    DEFAULT_PROGRAM_ID,
    get_batch_transaction_pda,
    get_proposal_pda,
    get_transaction_pda,
)


def anchor_discriminator(name: str, namespace: str = "global") -> bytes:
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:8]


BATCH_CREATE_DISCRIMINATOR = anchor_discriminator("batch_create")
PROPOSAL_CREATE_DISCRIMINATOR = anchor_discriminator("proposal_create")
BATCH_ADD_TRANSACTION_DISCRIMINATOR = anchor_discriminator("batch_add_transaction")
PROPOSAL_ACTIVATE_DISCRIMINATOR = anchor_discriminator("proposal_activate")


def _borsh_option_string(value: str | None) -> bytes:
    if value is None:
        return b"\x00"
    raw = value.encode("utf-8")
    return b"\x01" + struct.pack("<I", len(raw)) + raw


def _borsh_bytes(value: bytes) -> bytes:
    return struct.pack("<I", len(value)) + value


def batch_create(
    multisig: Pubkey,
    batch_index: int,
    creator: Pubkey,
    rent_payer: Pubkey,
    vault_index: int,
    memo: str | None = None,
    program_id: Pubkey = DEFAULT_PROGRAM_ID,
) -> Instruction:
    """Create the batch account at `batch_index` (BatchCreateArgs { vault_index: u8, memo: Option<String> })."""
    batch = get_transaction_pda(multisig, batch_index, program_id)
    data = BATCH_CREATE_DISCRIMINATOR + bytes([vault_index]) + _borsh_option_string(memo)
    accounts = [
        AccountMeta(pubkey=multisig, is_signer=False, is_writable=True),
        AccountMeta(pubkey=creator, is_signer=True, is_writable=False),
        AccountMeta(pubkey=rent_payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=batch, is_signer=False, is_writable=True),
        AccountMeta(pubkey=SYS_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id=program_id, data=data, accounts=accounts)


def proposal_create(
    multisig: Pubkey,
    transaction_index: int,
    creator: Pubkey,
    rent_payer: Pubkey,
    draft: bool = True,
    program_id: Pubkey = DEFAULT_PROGRAM_ID,
) -> Instruction:
    """Create the proposal for `transaction_index` (ProposalCreateArgs { transaction_index: u64, draft: bool })."""
    proposal = get_proposal_pda(multisig, transaction_index, program_id)
    data = PROPOSAL_CREATE_DISCRIMINATOR + struct.pack("<Q?", transaction_index, draft)
    accounts = [
        AccountMeta(pubkey=multisig, is_signer=False, is_writable=False),
        AccountMeta(pubkey=proposal, is_signer=False, is_writable=True),
        AccountMeta(pubkey=creator, is_signer=True, is_writable=False),
        AccountMeta(pubkey=rent_payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=SYS_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id=program_id, data=data, accounts=accounts)


def batch_add_transaction(
    multisig: Pubkey,
    batch_index: int,
    position: int,
    member: Pubkey,
    rent_payer: Pubkey,
    transaction_message: bytes,
    ephemeral_signers: int = 0,
    program_id: Pubkey = DEFAULT_PROGRAM_ID,
) -> Instruction:
    """
    Append one transaction to a draft batch.

    `position` is 1-based within the batch; `transaction_message` is the
    Squads-encoded message (see squads.message.compile_transaction_message).
    """
    if position < 1:
        raise ValueError(f"batch position is 1-based, got {position}")
    proposal = get_proposal_pda(multisig, batch_index, program_id)
    batch = get_transaction_pda(multisig, batch_index, program_id)
    transaction = get_batch_transaction_pda(multisig, batch_index, position, program_id)
    data = (
        BATCH_ADD_TRANSACTION_DISCRIMINATOR
        + bytes([ephemeral_signers])
        + _borsh_bytes(transaction_message)
    )
    accounts = [
        AccountMeta(pubkey=multisig, is_signer=False, is_writable=False),
        AccountMeta(pubkey=proposal, is_signer=False, is_writable=False),
        AccountMeta(pubkey=batch, is_signer=False, is_writable=True),
        AccountMeta(pubkey=member, is_signer=True, is_writable=False),
        AccountMeta(pubkey=rent_payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=transaction, is_signer=False, is_writable=True),
        AccountMeta(pubkey=SYS_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id=program_id, data=data, accounts=accounts)


def proposal_activate(
    multisig: Pubkey,
    transaction_index: int,
    member: Pubkey,
    program_id: Pubkey = DEFAULT_PROGRAM_ID,
) -> Instruction:
    """Move a draft proposal to Active so members can vote."""
    proposal = get_proposal_pda(multisig, transaction_index, program_id)
    accounts = [
        AccountMeta(pubkey=multisig, is_signer=False, is_writable=False),
        AccountMeta(pubkey=member, is_signer=True, is_writable=True),
        AccountMeta(pubkey=proposal, is_signer=False, is_writable=True),
    ]
    return Instruction(program_id=program_id, data=PROPOSAL_ACTIVATE_DISCRIMINATOR, accounts=accounts)
