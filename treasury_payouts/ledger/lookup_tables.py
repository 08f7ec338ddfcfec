"""Address lookup table loading. Layout: 56-byte metadata header, then 32-byte addresses."""

from __future__ import annotations

from typing import Any, Sequence

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.pubkey import Pubkey

from treasury_payouts.ledger.rpc import TRANSIENT_ERRORS
from treasury_payouts.payouts_logging import get_logger

logger = get_logger(__name__)

LOOKUP_TABLE_META_SIZE = 56


def decode_lookup_table(key: Pubkey, data: bytes) -> AddressLookupTableAccount:
    if len(data) < LOOKUP_TABLE_META_SIZE or (len(data) - LOOKUP_TABLE_META_SIZE) % 32:
        raise ValueError(f"Malformed address lookup table {key}")
    body = data[LOOKUP_TABLE_META_SIZE:]
    addresses = [Pubkey.from_bytes(body[i:i + 32]) for i in range(0, len(body), 32)]
    return AddressLookupTableAccount(key=key, addresses=addresses)


def load_lookup_tables(ledger: Any, addresses: Sequence[str]) -> list[AddressLookupTableAccount]:
    """
    Fetch lookup tables by address. A table that cannot be fetched or decoded
    is skipped and logged at debug: lookup tables only compact transactions.
    """
    tables: list[AddressLookupTableAccount] = []
    for address in addresses:
        key = Pubkey.from_string(address)
        try:
            account = ledger.get_account(key)
            if account is None:
                logger.debug("lookup_table_missing", address=address)
                continue
            tables.append(decode_lookup_table(key, account.data))
        except TRANSIENT_ERRORS + (ValueError,) as e:
            logger.debug("lookup_table_load_failed", address=address, error=str(e))
            continue
        logger.info("lookup_table_loaded", address=address, address_count=len(tables[-1].addresses))
    return tables
