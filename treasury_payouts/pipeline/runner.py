"""
Top-level payout pipeline.

Reads the multisig once (membership + transaction index), derives the vault,
generates and batches the payload, then runs every group through the
orchestrator strictly in order. Nothing here retries: a SubmissionError from
any group ends the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from solders.pubkey import Pubkey

from treasury_payouts.config.settings import PayoutConfig
from treasury_payouts.errors import ConfigurationError, MembershipError
from treasury_payouts.ingestion.records import TransferRecord
from treasury_payouts.ledger.lookup_tables import load_lookup_tables
from treasury_payouts.payload.generator import PayloadGenerator
from treasury_payouts.payload.mints import MintCache
from treasury_payouts.payouts_logging import get_logger
from treasury_payouts.pipeline.batcher import SubmissionGroup, build_groups
from treasury_payouts.pipeline.orchestrator import BatchHandle, BatchOrchestrator, GroupReport
from treasury_payouts.pipeline.submission import SubmissionEngine
from treasury_payouts.squads import MultisigAccount, decode_multisig, get_vault_pda, resolve_program_id

logger = get_logger(__name__)


@dataclass
class PayoutPlan:
    """What a run would submit: one handle per group, in order."""

    multisig: MultisigAccount
    vault: Pubkey
    groups: list[SubmissionGroup]
    handles: list[BatchHandle]

    @property
    def transaction_count(self) -> int:
        return sum(len(g) for g in self.groups)

    @property
    def submission_count(self) -> int:
        """open + appends + activate, per group."""
        return sum(len(g) + 2 for g in self.groups)


@dataclass
class RunReport:
    vault: Pubkey
    record_count: int
    groups: list[GroupReport] = field(default_factory=list)
    dry_run: bool = False

    @property
    def submission_count(self) -> int:
        return sum(g.submission_count for g in self.groups)

    @property
    def batch_indices(self) -> list[int]:
        return [g.handle.batch_index for g in self.groups]


def assign_batch_handles(current_index: int, group_count: int) -> list[BatchHandle]:
    """Handles for `group_count` groups: current_index + 1, + 2, ... with no gaps."""
    return [
        BatchHandle(batch_index=current_index + ordinal, ordinal=ordinal)
        for ordinal in range(1, group_count + 1)
    ]


class PayoutPipeline:
    """One payout run against one multisig vault, with one signer."""

    def __init__(
        self,
        config: PayoutConfig,
        ledger: Any,
        signer: Any,
        *,
        engine: SubmissionEngine | None = None,
    ) -> None:
        if not config.multisig_address:
            raise ConfigurationError("multisig_address is required")
        self._config = config
        self._ledger = ledger
        self._signer = signer
        self._program_id = resolve_program_id(config.program_id)
        self._multisig = Pubkey.from_string(config.multisig_address)
        self._engine = engine or SubmissionEngine.from_config(ledger, signer, config)
        self.mint_cache = MintCache(ledger, config.missing_mint_policy)

    def load_multisig(self) -> MultisigAccount:
        """Read the multisig and check the signer is a member. No submission happens before this."""
        account = self._ledger.get_account(self._multisig)
        if account is None:
            raise ConfigurationError(f"Multisig account {self._multisig} not found")
        try:
            multisig = decode_multisig(account.data)
        except ValueError as e:
            raise ConfigurationError(f"{self._multisig}: {e}") from e

        signer = self._signer.pubkey()
        member = multisig.find_member(signer)
        if member is None:
            logger.error("signer_not_member", signer=str(signer), multisig=str(self._multisig))
            raise MembershipError(str(signer), str(self._multisig))
        if not member.can_initiate():
            logger.warning("signer_cannot_initiate", signer=str(signer), permissions=member.permissions)
        logger.info(
            "multisig_loaded",
            multisig=str(self._multisig),
            transaction_index=multisig.transaction_index,
            threshold=multisig.threshold,
            member_count=len(multisig.members),
        )
        return multisig

    def plan(self, records: Sequence[TransferRecord]) -> PayoutPlan:
        """Everything up to submission: membership, vault, payload, batching, handles."""
        multisig = self.load_multisig()
        vault = get_vault_pda(self._multisig, self._config.vault_index, self._program_id)
        generator = PayloadGenerator(self.mint_cache, vault)
        operations = generator.generate_all(records)
        groups = build_groups(
            operations,
            self._config.records_per_tx,
            self._config.tx_per_batch,
            self._config.max_instructions_per_tx,
        )
        handles = assign_batch_handles(multisig.transaction_index, len(groups))
        logger.info(
            "payout_planned",
            vault=str(vault),
            record_count=len(records),
            mint_count=len(self.mint_cache),
            batch_indices=[h.batch_index for h in handles],
        )
        return PayoutPlan(multisig=multisig, vault=vault, groups=groups, handles=handles)

    def run(self, records: Sequence[TransferRecord]) -> RunReport:
        plan = self.plan(records)
        report = RunReport(vault=plan.vault, record_count=len(records), dry_run=self._config.dry_run)
        if self._config.dry_run:
            logger.info(
                "payout_dry_run",
                group_count=len(plan.groups),
                transaction_count=plan.transaction_count,
                submission_count=plan.submission_count,
            )
            return report
        if not plan.groups:
            logger.info("payout_nothing_to_submit")
            return report

        lookup_tables = load_lookup_tables(self._ledger, self._config.lookup_tables)
        orchestrator = BatchOrchestrator(
            self._engine,
            self._multisig,
            plan.vault,
            self._config.vault_index,
            lookup_tables=lookup_tables,
            program_id=self._program_id,
        )
        for group, handle in zip(plan.groups, plan.handles):
            report.groups.append(orchestrator.run_group(group, handle))

        logger.info(
            "payout_completed",
            batch_indices=report.batch_indices,
            submission_count=report.submission_count,
            record_count=report.record_count,
        )
        return report
