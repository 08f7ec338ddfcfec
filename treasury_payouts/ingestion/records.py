"""
Transfer record source: CSV of token_address, receiver, amount.

Expected format:
    token_address,receiver,amount
    EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v,9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka,"1,250.50"

Header names are case- and whitespace-insensitive. The whole file is read
before anything is submitted.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path

from solders.pubkey import Pubkey

from treasury_payouts.errors import RecordError
from treasury_payouts.payouts_logging import get_logger

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("token_address", "receiver", "amount")


@dataclass(frozen=True)
class TransferRecord:
    """One payout: `amount` is decimal text in whole tokens, e.g. "12.5"."""

    token_address: str
    receiver_address: str
    amount: str
    row_number: int | None = None


def parse_amount(text: str, row_number: int | None = None) -> Decimal:
    """Parse decimal amount text, dropping thousands separators. Must be positive."""
    cleaned = text.strip().replace(",", "").replace("_", "")
    try:
        value = Decimal(cleaned)
    except InvalidOperation as e:
        raise RecordError(f"invalid amount {text!r}", row_number) from e
    if not value.is_finite() or value <= 0:
        raise RecordError(f"amount must be a positive number, got {text!r}", row_number)
    return value


def _check_address(label: str, value: str, row_number: int) -> None:
    if not value:
        raise RecordError(f"missing {label}", row_number)
    try:
        Pubkey.from_string(value)
    except ValueError as e:
        raise RecordError(f"invalid {label} {value!r}", row_number) from e


def read_records(filepath: str | Path) -> list[TransferRecord]:
    """Read and validate all records. Raises RecordError naming the first bad row."""
    filepath = Path(filepath)
    try:
        f = open(filepath, "r", newline="", encoding="utf-8-sig")
    except OSError as e:
        raise RecordError(f"cannot open {filepath}: {e}") from e

    records: list[TransferRecord] = []
    with f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise RecordError("CSV file is empty or has no headers")
        headers = {h.strip().lower() for h in reader.fieldnames if h}
        missing = [c for c in REQUIRED_COLUMNS if c not in headers]
        if missing:
            raise RecordError(f"CSV is missing columns: {', '.join(missing)}")

        for row_number, row in enumerate(reader, start=2):
            normalized = {
                (k or "").strip().lower(): (v or "").strip() for k, v in row.items()
            }
            if not any(normalized.values()):
                continue
            token = normalized["token_address"]
            receiver = normalized["receiver"]
            amount = normalized["amount"]
            _check_address("token_address", token, row_number)
            _check_address("receiver", receiver, row_number)
            parse_amount(amount, row_number)
            records.append(
                TransferRecord(
                    token_address=token,
                    receiver_address=receiver,
                    amount=amount,
                    row_number=row_number,
                )
            )

    logger.info("records_loaded", path=str(filepath), record_count=len(records))
    return records
