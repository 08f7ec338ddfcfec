# Batch construction and resilient submission pipeline.

from treasury_payouts.pipeline.batcher import (
    SubmissionGroup,
    TransactionUnit,
    build_groups,
    chunk_operation_units,
    chunk_transaction_units,
)
from treasury_payouts.pipeline.orchestrator import BatchHandle, BatchOrchestrator, GroupReport
from treasury_payouts.pipeline.runner import PayoutPipeline, PayoutPlan, RunReport, assign_batch_handles
from treasury_payouts.pipeline.submission import SubmissionEngine, SubmissionOutcome, SubmissionState

__all__ = [
    "BatchHandle",
    "BatchOrchestrator",
    "GroupReport",
    "PayoutPipeline",
    "PayoutPlan",
    "RunReport",
    "SubmissionEngine",
    "SubmissionGroup",
    "SubmissionOutcome",
    "SubmissionState",
    "TransactionUnit",
    "assign_batch_handles",
    "build_groups",
    "chunk_operation_units",
    "chunk_transaction_units",
]
