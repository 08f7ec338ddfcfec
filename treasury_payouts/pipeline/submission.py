"""
Submission engine: sign, broadcast and confirm one transaction at a time.

States per submission: BUILT -> BROADCAST -> POLLING -> FINALIZED | FAILED.

- BUILT: compute-unit limit and priority-fee price are prepended, the message is
  compiled (v0) against the latest blockhash and signed by the single signer.
- BROADCAST: the signed bytes are sent once with skip_preflight.
- POLLING: at most max_attempts iterations, poll_interval_sec apart. Each
  iteration reads the signature status; below the target depth the identical
  signed bytes are re-sent (same blockhash and signature, so replays are
  harmless). Transient ledger errors (LedgerError, OSError) on a poll or re-send
  count as an attempt and are not raised; anything else propagates.
- FINALIZED: status at or above the target depth.
- FAILED: attempts exhausted, or the status carries an execution error.
  Either way SubmissionError is raised; a partial status is never returned.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.transaction import VersionedTransaction

from treasury_payouts.config.settings import (
    DEFAULT_COMMITMENT,
    DEFAULT_COMPUTE_UNITS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_POLL_INTERVAL_SEC,
    DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS,
    PayoutConfig,
)
from treasury_payouts.errors import SubmissionError
from treasury_payouts.ledger.rpc import TRANSIENT_ERRORS
from treasury_payouts.payouts_logging import get_logger

logger = get_logger(__name__)

COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


class SubmissionState(str, Enum):
    BUILT = "built"
    BROADCAST = "broadcast"
    POLLING = "polling"
    FINALIZED = "finalized"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of one submission; final_status is processed | confirmed | finalized | failed."""

    signature: str
    final_status: str
    attempt_count: int
    label: str = ""
    slot: int | None = None
    err: Any = None


def reaches(status: str | None, target: str) -> bool:
    """True if `status` is at least as durable as `target`."""
    if status is None or status not in COMMITMENT_RANK:
        return False
    return COMMITMENT_RANK[status] >= COMMITMENT_RANK[target]


class SubmissionEngine:
    """Drives instruction lists through the submit/confirm state machine, one at a time."""

    def __init__(
        self,
        ledger: Any,
        signer: Any,
        *,
        compute_units: int = DEFAULT_COMPUTE_UNITS,
        priority_fee_micro_lamports: int = DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
        commitment: str = DEFAULT_COMMITMENT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if commitment not in COMMITMENT_RANK:
            raise ValueError(f"Unknown commitment {commitment!r}")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._ledger = ledger
        self._signer = signer
        self._compute_units = compute_units
        self._priority_fee = priority_fee_micro_lamports
        self._max_attempts = max_attempts
        self._poll_interval = poll_interval_sec
        self._commitment = commitment
        self._sleep = sleep
        self.history: list[SubmissionOutcome] = []

    @classmethod
    def from_config(cls, ledger: Any, signer: Any, config: PayoutConfig, **kwargs: Any) -> "SubmissionEngine":
        return cls(
            ledger,
            signer,
            compute_units=config.compute_units,
            priority_fee_micro_lamports=config.priority_fee_micro_lamports,
            max_attempts=config.max_attempts,
            poll_interval_sec=config.poll_interval_sec,
            commitment=config.commitment,
            **kwargs,
        )

    @property
    def signer_pubkey(self) -> Any:
        return self._signer.pubkey()

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def build(self, instructions: Sequence[Instruction]) -> VersionedTransaction:
        """BUILT: prepend fee controls, compile against the latest blockhash, sign."""
        blockhash = self._ledger.get_latest_blockhash()
        message = MessageV0.try_compile(
            self._signer.pubkey(),
            [
                set_compute_unit_limit(self._compute_units),
                set_compute_unit_price(self._priority_fee),
                *instructions,
            ],
            [],
            blockhash,
        )
        return VersionedTransaction(message, [self._signer])

    def submit(
        self,
        instructions: Sequence[Instruction],
        *,
        label: str = "",
        commitment: str | None = None,
    ) -> SubmissionOutcome:
        """Build, broadcast and confirm. Returns at/above target depth or raises SubmissionError."""
        target = commitment or self._commitment
        try:
            tx = self.build(instructions)
        except TRANSIENT_ERRORS as e:
            logger.error("tx_build_failed", label=label, error=str(e))
            raise SubmissionError(f"{label or 'transaction'}: build failed: {e}", reason="build_failed") from e

        raw = bytes(tx)
        signature = str(tx.signatures[0])
        logger.debug("tx_state", label=label, signature=signature, state=SubmissionState.BUILT.value)

        try:
            self._ledger.send_raw_transaction(raw)
            logger.info("tx_sent", label=label, signature=signature, instruction_count=len(instructions) + 2)
        except TRANSIENT_ERRORS as e:
            # The signature is known locally; polling re-sends the same bytes.
            logger.warning("tx_send_failed", label=label, signature=signature, error=str(e))

        return self.confirm(raw, signature, label=label, commitment=target)

    def confirm(
        self,
        raw: bytes,
        signature: str,
        *,
        label: str = "",
        commitment: str | None = None,
    ) -> SubmissionOutcome:
        """POLLING: poll status, re-broadcast below target depth, stop at max_attempts."""
        target = commitment or self._commitment
        last_status = None
        attempts = 0
        while attempts < self._max_attempts:
            attempts += 1
            status = None
            try:
                status = self._ledger.get_signature_status(signature)
            except TRANSIENT_ERRORS as e:
                logger.warning("tx_confirm_poll_error", label=label, signature=signature, attempt=attempts, error=str(e))
            if status is not None:
                last_status = status
                if status.err is not None:
                    return self._fail(
                        signature, label, attempts, last_status, "execution_error",
                        f"{label or 'transaction'} {signature} failed on-chain: {status.err}",
                    )
                if reaches(status.confirmation_status, target):
                    outcome = SubmissionOutcome(
                        signature=signature,
                        final_status=status.confirmation_status,
                        attempt_count=attempts,
                        label=label,
                        slot=status.slot,
                    )
                    self.history.append(outcome)
                    logger.info(
                        "tx_confirmed",
                        label=label,
                        signature=signature,
                        confirmation_status=status.confirmation_status,
                        slot=status.slot,
                        attempt=attempts,
                    )
                    return outcome

            try:
                self._ledger.send_raw_transaction(raw)
            except TRANSIENT_ERRORS as e:
                logger.debug("tx_rebroadcast_failed", label=label, signature=signature, attempt=attempts, error=str(e))
            if attempts < self._max_attempts:
                self._sleep(self._poll_interval)

        return self._fail(
            signature, label, attempts, last_status, "timeout",
            f"{label or 'transaction'} {signature} not {target} after {attempts} attempts",
        )

    def _fail(
        self,
        signature: str,
        label: str,
        attempts: int,
        last_status: Any,
        reason: str,
        message: str,
    ) -> SubmissionOutcome:
        self.history.append(
            SubmissionOutcome(
                signature=signature,
                final_status=SubmissionState.FAILED.value,
                attempt_count=attempts,
                label=label,
                slot=getattr(last_status, "slot", None),
                err=getattr(last_status, "err", None),
            )
        )
        logger.error(
            "tx_confirm_failed",
            label=label,
            signature=signature,
            reason=reason,
            attempt=attempts,
            last_confirmation_status=getattr(last_status, "confirmation_status", None),
        )
        raise SubmissionError(
            message,
            signature=signature,
            attempts=attempts,
            reason=reason,
            last_status=last_status,
        )
