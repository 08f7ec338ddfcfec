"""
Squads v4 Multisig account decoding.

Layout: 8 discriminator + 32 create_key + 32 config_authority + u16 threshold
+ u32 time_lock + u64 transaction_index + u64 stale_transaction_index
+ Option<Pubkey> rent_collector + u8 bump + Vec<Member{32 key, u8 permissions}>.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from solders.pubkey import Pubkey

from treasury_payouts.squads.instructions import anchor_discriminator

MULTISIG_ACCOUNT_DISCRIMINATOR = anchor_discriminator("Multisig", namespace="account")

PERMISSION_INITIATE = 1
PERMISSION_VOTE = 2
PERMISSION_EXECUTE = 4

_HEADER = struct.Struct("<32s32sHIQQ")


@dataclass(frozen=True)
class Member:
    key: Pubkey
    permissions: int

    def can_initiate(self) -> bool:
        return bool(self.permissions & PERMISSION_INITIATE)


@dataclass(frozen=True)
class MultisigAccount:
    create_key: Pubkey
    config_authority: Pubkey
    threshold: int
    time_lock: int
    transaction_index: int
    stale_transaction_index: int
    rent_collector: Pubkey | None
    bump: int
    members: list[Member] = field(default_factory=list)

    def find_member(self, key: Pubkey) -> Member | None:
        for member in self.members:
            if member.key == key:
                return member
        return None

    def is_member(self, key: Pubkey) -> bool:
        return self.find_member(key) is not None


def _read_pubkey(data: bytes, offset: int) -> Pubkey:
    if offset + 32 > len(data):
        raise IndexError(offset)
    return Pubkey.from_bytes(data[offset:offset + 32])


def decode_multisig(data: bytes) -> MultisigAccount:
    """Decode Multisig account data. Raises ValueError on wrong discriminator or truncated data."""
    if len(data) < 8 or data[:8] != MULTISIG_ACCOUNT_DISCRIMINATOR:
        raise ValueError("Account is not a Squads v4 Multisig")
    try:
        offset = 8
        create_key, config_authority, threshold, time_lock, tx_index, stale_index = _HEADER.unpack_from(data, offset)
        offset += _HEADER.size
        rent_collector = None
        has_collector = data[offset]
        offset += 1
        if has_collector:
            rent_collector = _read_pubkey(data, offset)
            offset += 32
        bump = data[offset]
        offset += 1
        (count,) = struct.unpack_from("<I", data, offset)
        offset += 4
        members = []
        for _ in range(count):
            key = _read_pubkey(data, offset)
            permissions = data[offset + 32]
            offset += 33
            members.append(Member(key=key, permissions=permissions))
    except (struct.error, IndexError) as e:
        raise ValueError("Multisig account data is truncated") from e
    return MultisigAccount(
        create_key=Pubkey.from_bytes(create_key),
        config_authority=Pubkey.from_bytes(config_authority),
        threshold=threshold,
        time_lock=time_lock,
        transaction_index=tx_index,
        stale_transaction_index=stale_index,
        rent_collector=rent_collector,
        bump=bump,
        members=members,
    )


def encode_multisig(account: MultisigAccount) -> bytes:
    """Inverse of decode_multisig; used to seed local ledgers and fixtures."""
    out = bytearray(MULTISIG_ACCOUNT_DISCRIMINATOR)
    out += _HEADER.pack(
        bytes(account.create_key),
        bytes(account.config_authority),
        account.threshold,
        account.time_lock,
        account.transaction_index,
        account.stale_transaction_index,
    )
    if account.rent_collector is None:
        out.append(0)
    else:
        out.append(1)
        out += bytes(account.rent_collector)
    out.append(account.bump)
    out += struct.pack("<I", len(account.members))
    for member in account.members:
        out += bytes(member.key)
        out.append(member.permissions)
    return bytes(out)
