"""
Ledger RPC adapter over solana-py's synchronous Client.

Normalises the handful of responses the pipeline needs (account reads, latest
blockhash, signature statuses, raw broadcast) into small plain dataclasses so the
rest of the code never touches solana-py response wrappers. Every call may raise;
retry discipline lives in the submission engine, not here.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any

from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from treasury_payouts.config.env import mask_rpc_url
from treasury_payouts.errors import LedgerError
from treasury_payouts.payouts_logging import get_logger

logger = get_logger(__name__)

# Errors a poll or broadcast may hit and recover from on the next attempt.
TRANSIENT_ERRORS = (LedgerError, OSError)


@dataclass(frozen=True)
class AccountSnapshot:
    """Raw account data and owning program, as read from the ledger."""

    data: bytes
    owner: Any  # solders Pubkey


@dataclass(frozen=True)
class SignatureStatus:
    """Status of one signature; confirmation_status is processed | confirmed | finalized | None."""

    confirmation_status: str | None
    err: Any = None
    slot: int | None = None


def _unwrap_value(resp: Any) -> Any:
    """solana-py responses expose .value; older ones nest it under .result."""
    value = getattr(resp, "value", None)
    if value is None and hasattr(resp, "result"):
        value = getattr(resp.result, "value", None)
    return value


def _raw_bytes_from_account_data(data: object) -> bytes | None:
    """Normalize account.data to bytes. Handles bytes, base64 str, [base64, encoding] list, list of ints."""
    if data is None:
        return None
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str):
        return base64.b64decode(data)
    if isinstance(data, (list, tuple)) and data:
        first = data[0]
        if isinstance(first, str):
            return base64.b64decode(first)
        if isinstance(first, int):
            return bytes(data)
    return None


def _status_name(confirmation_status: Any) -> str | None:
    """Map solders TransactionConfirmationStatus (or a plain string) to its lowercase name."""
    if confirmation_status is None:
        return None
    if isinstance(confirmation_status, str):
        return confirmation_status.lower()
    # compared by equality: the solders enum is not hashable in every release
    if confirmation_status == TransactionConfirmationStatus.Finalized:
        return "finalized"
    if confirmation_status == TransactionConfirmationStatus.Confirmed:
        return "confirmed"
    if confirmation_status == TransactionConfirmationStatus.Processed:
        return "processed"
    return str(confirmation_status).rsplit(".", 1)[-1].lower()


class LedgerClient:
    """Thin synchronous facade over solana.rpc.api.Client. RPC failures surface as LedgerError."""

    def __init__(self, rpc_url: str, client: Any | None = None) -> None:
        self._rpc_url = rpc_url
        self._client = client

    def _client_ensure(self) -> Any:
        if self._client is None:
            from solana.rpc.api import Client

            self._client = Client(self._rpc_url)
            logger.debug("ledger_client_created", rpc_url=mask_rpc_url(self._rpc_url))
        return self._client

    def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        try:
            return getattr(self._client_ensure(), method)(*args, **kwargs)
        except (SolanaRpcException, RPCException) as e:
            raise LedgerError(f"{method} failed: {e}") from e

    def get_account(self, address: Any) -> AccountSnapshot | None:
        """Return account data and owner, or None if the account does not exist."""
        account = _unwrap_value(self._call("get_account_info", address, encoding="base64"))
        if account is None:
            return None
        data = _raw_bytes_from_account_data(getattr(account, "data", None))
        if data is None:
            return None
        return AccountSnapshot(data=data, owner=getattr(account, "owner", None))

    def get_latest_blockhash(self) -> Any:
        """Return the latest blockhash (solders Hash)."""
        value = _unwrap_value(self._call("get_latest_blockhash"))
        blockhash = getattr(value, "blockhash", None)
        if blockhash is None:
            raise LedgerError("No blockhash in getLatestBlockhash response")
        return blockhash

    def send_raw_transaction(self, raw: bytes) -> str:
        """Broadcast signed bytes without preflight simulation; return the signature."""
        resp = self._call("send_raw_transaction", raw, opts=TxOpts(skip_preflight=True))
        value = _unwrap_value(resp)
        if value is None:
            raise LedgerError(f"sendTransaction returned no signature: {resp}")
        return str(value)

    def get_signature_status(self, signature: str) -> SignatureStatus | None:
        """Return the status for one signature, or None if the node has not seen it."""
        statuses = _unwrap_value(self._call("get_signature_statuses", [Signature.from_string(signature)]))
        if not statuses or statuses[0] is None:
            return None
        st = statuses[0]
        return SignatureStatus(
            confirmation_status=_status_name(getattr(st, "confirmation_status", None)),
            err=getattr(st, "err", None),
            slot=getattr(st, "slot", None),
        )
