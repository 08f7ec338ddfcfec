"""
Squads "vault transaction message" encoding.

Squads stores the inner transaction of a batch entry in its own compact form
(small vecs with u8 length prefixes; instruction data has a u16 prefix):

    u8  num_signers
    u8  num_writable_signers
    u8  num_writable_non_signers
    u8-vec<Pubkey>                   account_keys
    u8-vec<CompiledInstruction>      instructions
        u8 program_id_index, u8-vec<u8> account_indexes, u16-vec<u8> data
    u8-vec<AddressTableLookup>       address_table_lookups
        Pubkey account_key, u8-vec<u8> writable_indexes, u8-vec<u8> readonly_indexes

The account ordering is the one a v0 message compile produces, so we compile
with solders and re-encode.
"""

from __future__ import annotations

import struct
from typing import Any, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey


def _small_vec(items: Sequence[bytes] | bytes, length_format: str = "<B") -> bytes:
    if isinstance(items, (bytes, bytearray)):
        return struct.pack(length_format, len(items)) + bytes(items)
    return struct.pack(length_format, len(items)) + b"".join(items)


def encode_message_v0(message: MessageV0) -> bytes:
    """Re-encode a compiled v0 message in the Squads small-vec layout."""
    header = message.header
    account_keys = list(message.account_keys)
    num_signers = header.num_required_signatures
    num_writable_signers = num_signers - header.num_readonly_signed_accounts
    num_writable_non_signers = len(account_keys) - num_signers - header.num_readonly_unsigned_accounts

    instructions = [
        bytes([ix.program_id_index])
        + _small_vec(bytes(ix.accounts))
        + _small_vec(bytes(ix.data), "<H")
        for ix in message.instructions
    ]
    lookups = [
        bytes(lookup.account_key)
        + _small_vec(bytes(lookup.writable_indexes))
        + _small_vec(bytes(lookup.readonly_indexes))
        for lookup in message.address_table_lookups
    ]
    try:
        return (
            bytes([num_signers, num_writable_signers, num_writable_non_signers])
            + _small_vec([bytes(key) for key in account_keys])
            + _small_vec(instructions)
            + _small_vec(lookups)
        )
    except struct.error as e:
        raise ValueError("Transaction message exceeds Squads small-vec limits") from e


def compile_transaction_message(
    vault: Pubkey,
    instructions: Sequence[Instruction],
    lookup_tables: Sequence[Any] = (),
) -> bytes:
    """
    Compile `instructions` with the vault as payer into Squads message bytes.

    The blockhash is a placeholder: the vault transaction is executed later and
    Squads substitutes its own.
    """
    message = MessageV0.try_compile(vault, list(instructions), list(lookup_tables), Hash.default())
    return encode_message_v0(message)
