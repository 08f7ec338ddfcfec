"""
Pytest fixtures for treasury payout tests.

FakeLedger stands in for LedgerClient: in-memory accounts, recorded broadcasts,
and a scriptable signature-status source. No network access.
"""

from __future__ import annotations

from collections import Counter
from typing import Callable

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction
from spl.token.constants import TOKEN_PROGRAM_ID

from treasury_payouts.config import PayoutConfig
from treasury_payouts.ingestion import TransferRecord
from treasury_payouts.ledger import AccountSnapshot, SignatureStatus
from treasury_payouts.squads import Member, MultisigAccount, encode_multisig

StatusFn = Callable[[str, int], "SignatureStatus | None"]


def confirmed_immediately(signature: str, poll: int) -> SignatureStatus:
    return SignatureStatus(confirmation_status="confirmed", slot=100 + poll)


class FakeLedger:
    def __init__(self, status_fn: StatusFn = confirmed_immediately) -> None:
        self.accounts: dict[Pubkey, AccountSnapshot] = {}
        self.blockhash = Hash.new_unique()
        self.status_fn = status_fn
        self.sent: list[bytes] = []
        self.broadcasts: Counter[str] = Counter()
        self.polls: Counter[str] = Counter()
        self.submitted: list[VersionedTransaction] = []
        self.account_reads: Counter[Pubkey] = Counter()
        self.send_error: Exception | None = None

    def get_account(self, address: Pubkey) -> AccountSnapshot | None:
        self.account_reads[address] += 1
        return self.accounts.get(address)

    def get_latest_blockhash(self) -> Hash:
        return self.blockhash

    def send_raw_transaction(self, raw: bytes) -> str:
        tx = VersionedTransaction.from_bytes(raw)
        signature = str(tx.signatures[0])
        if signature not in self.broadcasts:
            self.submitted.append(tx)
        self.broadcasts[signature] += 1
        self.sent.append(raw)
        if self.send_error is not None:
            raise self.send_error
        return signature

    def get_signature_status(self, signature: str) -> SignatureStatus | None:
        self.polls[signature] += 1
        return self.status_fn(signature, self.polls[signature])


def mint_data(decimals: int) -> bytes:
    data = bytearray(82)
    data[44] = decimals
    return bytes(data)


@pytest.fixture
def signer() -> Keypair:
    return Keypair()


@pytest.fixture
def multisig_address() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def make_ledger():
    """FakeLedger factory taking a status_fn(signature, poll_number)."""
    return FakeLedger


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def seed_multisig(ledger, multisig_address, signer):
    """Store a multisig account; returns a function to (re)seed with custom members/index."""

    def _seed(transaction_index: int = 7, members: list[Pubkey] | None = None) -> MultisigAccount:
        keys = [signer.pubkey(), Pubkey.new_unique()] if members is None else members
        account = MultisigAccount(
            create_key=Pubkey.new_unique(),
            config_authority=Pubkey.default(),
            threshold=2,
            time_lock=0,
            transaction_index=transaction_index,
            stale_transaction_index=0,
            rent_collector=None,
            bump=255,
            members=[Member(key=k, permissions=7) for k in keys],
        )
        ledger.accounts[multisig_address] = AccountSnapshot(
            data=encode_multisig(account), owner=Pubkey.new_unique()
        )
        return account

    return _seed


@pytest.fixture
def seed_mint(ledger):
    def _seed(decimals: int = 6, owner: Pubkey = TOKEN_PROGRAM_ID) -> Pubkey:
        mint = Pubkey.new_unique()
        ledger.accounts[mint] = AccountSnapshot(data=mint_data(decimals), owner=owner)
        return mint

    return _seed


@pytest.fixture
def make_records():
    def _make(count: int, mint: Pubkey, amount: str = "1.5") -> list[TransferRecord]:
        return [
            TransferRecord(
                token_address=str(mint),
                receiver_address=str(Pubkey.new_unique()),
                amount=amount,
                row_number=i + 2,
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def config(multisig_address, monkeypatch) -> PayoutConfig:
    for name in ("PAYOUT_LOOKUP_TABLES", "DRY_RUN", "PAYOUT_COMMITMENT", "PAYOUT_MISSING_MINT_POLICY"):
        monkeypatch.delenv(name, raising=False)
    return PayoutConfig(
        rpc_url="http://localhost:8899",
        multisig_address=str(multisig_address),
        keypair_path="unused.json",
        csv_path="unused.csv",
        vault_index=0,
        records_per_tx=5,
        tx_per_batch=250,
        max_instructions_per_tx=None,
        max_attempts=10,
        poll_interval_sec=0.0,
        commitment="confirmed",
        missing_mint_policy="default",
        lookup_tables=[],
        program_id="",
        dry_run=False,
    )
