"""
Error taxonomy for a payout run.

ConfigurationError and its subclasses are raised before any ledger-mutating
submission. SubmissionError is fatal for the rest of the run; OrphanedBatchError
additionally names a batch that was opened on-chain and must be cancelled by hand.
"""

from __future__ import annotations

from typing import Any


class PayoutError(Exception):
    """Base class for all payout pipeline errors."""


class ConfigurationError(PayoutError):
    """Invalid or inaccessible configuration (credential, ceilings, addresses)."""


class MembershipError(ConfigurationError):
    """The configured signer is not a member of the multisig."""

    def __init__(self, signer: str, multisig: str):
        super().__init__(f"Signer {signer} is not a member of multisig {multisig}")
        self.signer = signer
        self.multisig = multisig


class RecordError(ConfigurationError):
    """A transfer record in the input cannot be used."""

    def __init__(self, message: str, row_number: int | None = None):
        prefix = f"Row {row_number}: " if row_number is not None else ""
        super().__init__(prefix + message)
        self.row_number = row_number


class MintResolutionError(PayoutError):
    """Mint account could not be fetched and the policy forbids defaulting."""

    def __init__(self, mint: str):
        super().__init__(f"Mint account {mint} could not be fetched")
        self.mint = mint


class LedgerError(PayoutError):
    """An RPC call failed or returned an unusable response. Treated as transient while polling."""


class SubmissionError(PayoutError):
    """A transaction did not reach the target confirmation depth."""

    def __init__(
        self,
        message: str,
        *,
        signature: str | None = None,
        attempts: int = 0,
        reason: str = "timeout",
        last_status: Any = None,
    ):
        super().__init__(message)
        self.signature = signature
        self.attempts = attempts
        self.reason = reason
        self.last_status = last_status


class OrphanedBatchError(SubmissionError):
    """
    A batch was (or, for an unconfirmed open, may have been) opened on-chain but
    the run failed before it was activated.

    The batch and its draft proposal stay on-chain; an operator must cancel
    them manually using batch_index.
    """

    def __init__(
        self,
        batch_index: int,
        phase: str,
        appended: int,
        total: int,
        cause: SubmissionError,
    ):
        if phase == "open":
            message = f"Batch {batch_index} may be open on-chain: open was not confirmed ({cause})"
        else:
            message = (
                f"Batch {batch_index} left open on-chain: {phase} failed after "
                f"{appended}/{total} transactions appended ({cause})"
            )
        super().__init__(
            message,
            signature=cause.signature,
            attempts=cause.attempts,
            reason=cause.reason,
            last_status=cause.last_status,
        )
        self.batch_index = batch_index
        self.phase = phase
        self.appended = appended
        self.total = total
