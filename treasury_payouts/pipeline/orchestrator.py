"""
Batch orchestrator: drives one SubmissionGroup through the Squads batch workflow.

  1. open      batch_create + proposal_create(draft) in one transaction
  2. append    batch_add_transaction per unit, positions 1..n within the batch
  3. activate  proposal_activate

Each phase must be confirmed before the next one is sent. Appends are never
parallelised: the batch-transaction account is derived from the position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from solders.pubkey import Pubkey

from treasury_payouts.errors import OrphanedBatchError, SubmissionError
from treasury_payouts.payouts_logging import get_logger
from treasury_payouts.pipeline.batcher import SubmissionGroup
from treasury_payouts.pipeline.submission import SubmissionEngine, SubmissionOutcome
from treasury_payouts.squads import (
    DEFAULT_PROGRAM_ID,
    batch_add_transaction,
    batch_create,
    compile_transaction_message,
    proposal_activate,
    proposal_create,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class BatchHandle:
    """batch_index = multisig transaction_index at run start + ordinal."""

    batch_index: int
    ordinal: int


@dataclass
class GroupReport:
    handle: BatchHandle
    transaction_count: int
    record_count: int
    open_outcome: SubmissionOutcome | None = None
    append_outcomes: list[SubmissionOutcome] = field(default_factory=list)
    activate_outcome: SubmissionOutcome | None = None

    @property
    def submission_count(self) -> int:
        return (
            int(self.open_outcome is not None)
            + len(self.append_outcomes)
            + int(self.activate_outcome is not None)
        )


class BatchOrchestrator:
    def __init__(
        self,
        engine: SubmissionEngine,
        multisig: Pubkey,
        vault: Pubkey,
        vault_index: int,
        *,
        lookup_tables: Sequence[Any] = (),
        program_id: Pubkey = DEFAULT_PROGRAM_ID,
    ) -> None:
        self._engine = engine
        self._multisig = multisig
        self._vault = vault
        self._vault_index = vault_index
        self._lookup_tables = list(lookup_tables)
        self._program_id = program_id

    def run_group(self, group: SubmissionGroup, handle: BatchHandle) -> GroupReport:
        """
        Open, fill and activate one batch.

        Raises SubmissionError if the open transaction failed on-chain or was never
        built (nothing left to cancel). Raises OrphanedBatchError for anything else:
        an open that timed out may still land, and a failure after the batch was
        opened leaves it in draft.
        """
        member = self._engine.signer_pubkey
        index = handle.batch_index
        report = GroupReport(
            handle=handle,
            transaction_count=len(group.units),
            record_count=sum(unit.record_count for unit in group.units),
        )
        log = logger.bind(batch_index=index, ordinal=handle.ordinal)
        # Encode every entry before anything lands on-chain.
        messages = [
            compile_transaction_message(self._vault, unit.instructions, self._lookup_tables)
            for unit in group.units
        ]
        log.info("batch_open_started", transaction_count=report.transaction_count)

        try:
            report.open_outcome = self._engine.submit(
                [
                    batch_create(
                        self._multisig, index, member, member, self._vault_index,
                        memo=None, program_id=self._program_id,
                    ),
                    proposal_create(
                        self._multisig, index, member, member,
                        draft=True, program_id=self._program_id,
                    ),
                ],
                label=f"batch {index} open",
            )
        except SubmissionError as e:
            if e.reason != "timeout":
                raise
            log.error("batch_orphaned", phase="open", appended=0, total=len(group.units), error=str(e))
            raise OrphanedBatchError(index, "open", 0, len(group.units), e) from e
        log.info("batch_opened", signature=report.open_outcome.signature)

        phase = "append"
        try:
            for position, (unit, message) in enumerate(zip(group.units, messages), start=1):
                outcome = self._engine.submit(
                    [
                        batch_add_transaction(
                            self._multisig, index, position, member, member, message,
                            ephemeral_signers=0, program_id=self._program_id,
                        )
                    ],
                    label=f"batch {index} append {position}/{len(group.units)}",
                )
                report.append_outcomes.append(outcome)
                log.info(
                    "batch_transaction_appended",
                    position=position,
                    record_count=unit.record_count,
                    signature=outcome.signature,
                )

            phase = "activate"
            report.activate_outcome = self._engine.submit(
                [proposal_activate(self._multisig, index, member, program_id=self._program_id)],
                label=f"batch {index} activate",
            )
        except SubmissionError as e:
            log.error(
                "batch_orphaned",
                phase=phase,
                appended=len(report.append_outcomes),
                total=len(group.units),
                error=str(e),
            )
            raise OrphanedBatchError(index, phase, len(report.append_outcomes), len(group.units), e) from e

        log.info(
            "batch_activated",
            signature=report.activate_outcome.signature,
            record_count=report.record_count,
        )
        return report
