"""
Pytest tests for the Squads v4 codecs: discriminators, instruction layouts,
PDA derivation, multisig account decoding and the vault message encoding.
"""

from __future__ import annotations

import hashlib
import struct

import pytest
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from treasury_payouts.squads import (
    DEFAULT_PROGRAM_ID,
    Member,
    MultisigAccount,
    batch_add_transaction,
    batch_create,
    compile_transaction_message,
    decode_multisig,
    encode_multisig,
    get_batch_transaction_pda,
    get_proposal_pda,
    get_transaction_pda,
    get_vault_pda,
    proposal_activate,
    proposal_create,
    resolve_program_id,
)
from treasury_payouts.squads.instructions import (
    BATCH_ADD_TRANSACTION_DISCRIMINATOR,
    BATCH_CREATE_DISCRIMINATOR,
    PROPOSAL_CREATE_DISCRIMINATOR,
    anchor_discriminator,
)

MULTISIG = Pubkey.from_string("9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka")
MEMBER = Pubkey.from_string("7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ")


def _account(**kwargs) -> MultisigAccount:
    fields = dict(
        create_key=Pubkey.new_unique(),
        config_authority=Pubkey.default(),
        threshold=2,
        time_lock=0,
        transaction_index=17,
        stale_transaction_index=3,
        rent_collector=None,
        bump=254,
        members=[Member(key=MEMBER, permissions=7), Member(key=Pubkey.new_unique(), permissions=2)],
    )
    fields.update(kwargs)
    return MultisigAccount(**fields)


def test_anchor_discriminator_is_sha256_prefix():
    assert anchor_discriminator("batch_create") == hashlib.sha256(b"global:batch_create").digest()[:8]
    assert BATCH_CREATE_DISCRIMINATOR == anchor_discriminator("batch_create")
    assert len({BATCH_CREATE_DISCRIMINATOR, PROPOSAL_CREATE_DISCRIMINATOR, BATCH_ADD_TRANSACTION_DISCRIMINATOR}) == 3


def test_pdas_are_distinct_per_index_and_position():
    batch = get_transaction_pda(MULTISIG, 42)
    proposal = get_proposal_pda(MULTISIG, 42)
    entries = {get_batch_transaction_pda(MULTISIG, 42, p) for p in range(1, 6)}
    assert batch != proposal
    assert len(entries) == 5
    assert batch not in entries
    assert get_transaction_pda(MULTISIG, 43) != batch
    assert get_vault_pda(MULTISIG, 0) != get_vault_pda(MULTISIG, 1)


def test_vault_pda_matches_seed_layout():
    expected, _ = Pubkey.find_program_address(
        [b"multisig", bytes(MULTISIG), b"vault", bytes([0])], DEFAULT_PROGRAM_ID
    )
    assert get_vault_pda(MULTISIG, 0) == expected


def test_batch_create_layout():
    ix = batch_create(MULTISIG, 42, MEMBER, MEMBER, vault_index=3)
    assert ix.program_id == DEFAULT_PROGRAM_ID
    assert bytes(ix.data) == BATCH_CREATE_DISCRIMINATOR + b"\x03" + b"\x00"
    assert ix.accounts[0].pubkey == MULTISIG
    assert ix.accounts[3].pubkey == get_transaction_pda(MULTISIG, 42)
    assert ix.accounts[1].is_signer and ix.accounts[2].is_signer


def test_batch_create_with_memo():
    ix = batch_create(MULTISIG, 1, MEMBER, MEMBER, vault_index=0, memo="march")
    assert bytes(ix.data)[8:] == b"\x00" + b"\x01" + struct.pack("<I", 5) + b"march"


def test_proposal_create_is_draft():
    ix = proposal_create(MULTISIG, 42, MEMBER, MEMBER, draft=True)
    data = bytes(ix.data)
    assert data[:8] == PROPOSAL_CREATE_DISCRIMINATOR
    assert struct.unpack("<Q?", data[8:]) == (42, True)
    assert ix.accounts[1].pubkey == get_proposal_pda(MULTISIG, 42)


def test_batch_add_transaction_layout():
    message = b"\x01\x02\x03"
    ix = batch_add_transaction(MULTISIG, 42, 2, MEMBER, MEMBER, message)
    data = bytes(ix.data)
    assert data[:8] == BATCH_ADD_TRANSACTION_DISCRIMINATOR
    assert data[8] == 0  # ephemeral signers
    assert struct.unpack_from("<I", data, 9)[0] == len(message)
    assert data[13:] == message
    assert ix.accounts[5].pubkey == get_batch_transaction_pda(MULTISIG, 42, 2)
    assert ix.accounts[2].pubkey == get_transaction_pda(MULTISIG, 42)


def test_batch_add_transaction_rejects_position_zero():
    with pytest.raises(ValueError, match="1-based"):
        batch_add_transaction(MULTISIG, 42, 0, MEMBER, MEMBER, b"")


def test_proposal_activate_targets_proposal():
    ix = proposal_activate(MULTISIG, 42, MEMBER)
    assert ix.accounts[2].pubkey == get_proposal_pda(MULTISIG, 42)
    assert ix.accounts[1].is_signer


def test_multisig_round_trip():
    account = _account(rent_collector=Pubkey.new_unique())
    decoded = decode_multisig(encode_multisig(account))
    assert decoded == account
    assert decoded.is_member(MEMBER)
    assert decoded.find_member(MEMBER).can_initiate()
    assert not decoded.members[1].can_initiate()


def test_decode_rejects_foreign_account():
    data = bytearray(encode_multisig(_account()))
    data[0] ^= 0xFF
    with pytest.raises(ValueError, match="not a Squads"):
        decode_multisig(bytes(data))


@pytest.mark.parametrize("cut", [10, 40, 100])
def test_decode_rejects_truncated_account(cut):
    data = encode_multisig(_account())
    with pytest.raises(ValueError, match="truncated"):
        decode_multisig(data[:-cut])


def test_compiled_message_header_and_instruction():
    vault = Pubkey.new_unique()
    destination = Pubkey.new_unique()
    program = Pubkey.new_unique()
    ix = Instruction(
        program_id=program,
        data=b"\x0c\x01",
        accounts=[
            AccountMeta(pubkey=vault, is_signer=True, is_writable=True),
            AccountMeta(pubkey=destination, is_signer=False, is_writable=True),
        ],
    )

    encoded = compile_transaction_message(vault, [ix])

    assert encoded[:3] == bytes([1, 1, 1])
    assert encoded[3] == 3
    keys = [encoded[4 + 32 * i: 4 + 32 * (i + 1)] for i in range(3)]
    assert keys == [bytes(vault), bytes(destination), bytes(program)]
    rest = encoded[4 + 96:]
    # one instruction: program index 2, accounts [0, 1], u16-prefixed data
    assert rest[:1] == b"\x01"
    assert rest[1:1 + 1 + 1 + 2] == bytes([2, 2, 0, 1])
    assert rest[5:7] == struct.pack("<H", 2)
    assert rest[7:9] == b"\x0c\x01"
    assert rest[9:] == b"\x00"  # no address table lookups


def test_resolve_program_id():
    custom = Pubkey.new_unique()
    assert resolve_program_id(None) == DEFAULT_PROGRAM_ID
    assert resolve_program_id("") == DEFAULT_PROGRAM_ID
    assert resolve_program_id(custom) == custom
    assert resolve_program_id(str(custom)) == custom
