"""
Payload generator: one TransferRecord -> one OperationUnit.

The unit holds, in order:
  1. create-associated-token-account (idempotent) for the receiver, paid by the vault;
  2. transfer_checked from the vault's ATA to the receiver's ATA.
Both run later inside the vault transaction, so the vault is payer and authority.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Iterable

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    create_idempotent_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)

from treasury_payouts.errors import RecordError
from treasury_payouts.ingestion.records import TransferRecord, parse_amount
from treasury_payouts.payload.mints import MintCache, MintInfo

TOKEN_PROGRAMS = (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID)


@dataclass(frozen=True)
class OperationUnit:
    """The instructions for one record; never split or reordered."""

    record: TransferRecord
    instructions: tuple[Instruction, ...]
    amount_base_units: int
    decimals: int

    def __len__(self) -> int:
        return len(self.instructions)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """round(amount * 10**decimals), half away from zero, as an int."""
    with localcontext() as ctx:
        ctx.prec = 80
        return int(amount.scaleb(decimals).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_base_units(base_units: int, decimals: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(base_units).scaleb(-decimals)


class PayloadGenerator:
    """Builds OperationUnits for transfers paid out of `vault`."""

    def __init__(self, mint_cache: MintCache, vault: Pubkey) -> None:
        self._mints = mint_cache
        self._vault = vault

    def generate(self, record: TransferRecord) -> OperationUnit:
        info: MintInfo = self._mints.get(record.token_address)
        amount = parse_amount(record.amount, record.row_number)
        try:
            base_units = to_base_units(amount, info.decimals)
        except InvalidOperation as e:
            raise RecordError(f"amount {record.amount} overflows u64 base units", record.row_number) from e
        if base_units <= 0:
            raise RecordError(
                f"amount {record.amount} is below one base unit at {info.decimals} decimals",
                record.row_number,
            )
        if base_units >= 2**64:
            raise RecordError(f"amount {record.amount} overflows u64 base units", record.row_number)

        mint = Pubkey.from_string(record.token_address)
        receiver = Pubkey.from_string(record.receiver_address)
        if info.token_program not in TOKEN_PROGRAMS:
            raise RecordError(
                f"{record.token_address} is not a token mint (owner {info.token_program})",
                record.row_number,
            )
        source = get_associated_token_address(self._vault, mint, info.token_program)
        destination = get_associated_token_address(receiver, mint, info.token_program)
        create_ix = create_idempotent_associated_token_account(
            self._vault, receiver, mint, info.token_program
        )
        transfer_ix = transfer_checked(
            TransferCheckedParams(
                program_id=info.token_program,
                source=source,
                mint=mint,
                dest=destination,
                owner=self._vault,
                amount=base_units,
                decimals=info.decimals,
                signers=[],
            )
        )
        return OperationUnit(
            record=record,
            instructions=(create_ix, transfer_ix),
            amount_base_units=base_units,
            decimals=info.decimals,
        )

    def generate_all(self, records: Iterable[TransferRecord]) -> list[OperationUnit]:
        records = list(records)
        self._mints.prefetch(r.token_address for r in records)
        return [self.generate(r) for r in records]
