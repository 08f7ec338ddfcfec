# Ledger access: RPC adapter and signer loading.

from treasury_payouts.ledger.keys import load_keypair
from treasury_payouts.ledger.lookup_tables import load_lookup_tables
from treasury_payouts.ledger.rpc import TRANSIENT_ERRORS, AccountSnapshot, LedgerClient, SignatureStatus

__all__ = ["TRANSIENT_ERRORS", "AccountSnapshot", "LedgerClient", "SignatureStatus", "load_keypair", "load_lookup_tables"]
