"""
Two-level chunking of operation units. Pure: no I/O, no ledger access.

Level 1: OperationUnits -> TransactionUnits of at most `records_per_tx` units
(optionally also bounded by an instruction ceiling).
Level 2: TransactionUnits -> SubmissionGroups of at most `tx_per_batch` units.
Order is preserved at both levels and an OperationUnit is never split.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from solders.instruction import Instruction

from treasury_payouts.errors import ConfigurationError
from treasury_payouts.payload.generator import OperationUnit
from treasury_payouts.payouts_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransactionUnit:
    """Operation units that travel together as one vault transaction."""

    operations: tuple[OperationUnit, ...]

    @property
    def instructions(self) -> list[Instruction]:
        return [ix for op in self.operations for ix in op.instructions]

    @property
    def record_count(self) -> int:
        return len(self.operations)


@dataclass(frozen=True)
class SubmissionGroup:
    """Transaction units submitted under one multisig batch; ordinal is 1-based within the run."""

    ordinal: int
    units: tuple[TransactionUnit, ...]

    def __len__(self) -> int:
        return len(self.units)


def chunk_operation_units(
    operations: Sequence[OperationUnit],
    records_per_tx: int,
    max_instructions: int | None = None,
) -> list[TransactionUnit]:
    """Level 1. With no instruction ceiling this yields ceil(N / records_per_tx) units."""
    if records_per_tx < 1:
        raise ConfigurationError(f"records_per_tx must be >= 1, got {records_per_tx}")
    if max_instructions is not None and max_instructions < 1:
        raise ConfigurationError(f"max_instructions must be >= 1, got {max_instructions}")

    units: list[TransactionUnit] = []
    current: list[OperationUnit] = []
    current_ix = 0
    for op in operations:
        full = len(current) >= records_per_tx
        too_big = (
            max_instructions is not None
            and current
            and current_ix + len(op.instructions) > max_instructions
        )
        if full or too_big:
            units.append(TransactionUnit(tuple(current)))
            current, current_ix = [], 0
        if max_instructions is not None and len(op.instructions) > max_instructions:
            logger.warning(
                "operation_unit_oversized",
                row_number=op.record.row_number,
                instruction_count=len(op.instructions),
                max_instructions=max_instructions,
            )
        current.append(op)
        current_ix += len(op.instructions)
    if current:
        units.append(TransactionUnit(tuple(current)))
    return units


def chunk_transaction_units(units: Sequence[TransactionUnit], tx_per_batch: int) -> list[SubmissionGroup]:
    """Level 2: ceil(T / tx_per_batch) groups, ordinals starting at 1."""
    if tx_per_batch < 1:
        raise ConfigurationError(f"tx_per_batch must be >= 1, got {tx_per_batch}")
    return [
        SubmissionGroup(ordinal=n, units=tuple(units[i:i + tx_per_batch]))
        for n, i in enumerate(range(0, len(units), tx_per_batch), start=1)
    ]


def build_groups(
    operations: Sequence[OperationUnit],
    records_per_tx: int,
    tx_per_batch: int,
    max_instructions: int | None = None,
) -> list[SubmissionGroup]:
    units = chunk_operation_units(operations, records_per_tx, max_instructions)
    groups = chunk_transaction_units(units, tx_per_batch)
    logger.info(
        "payout_batched",
        record_count=len(operations),
        transaction_unit_count=len(units),
        group_count=len(groups),
        records_per_tx=records_per_tx,
        tx_per_batch=tx_per_batch,
    )
    return groups
