"""
Tests for the submission engine state machine: confirmation depth, attempt
ceiling, re-broadcast of identical bytes, execution errors, transient failures.
"""

from __future__ import annotations

import pytest
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from treasury_payouts.errors import LedgerError, SubmissionError
from treasury_payouts.ledger import SignatureStatus
from treasury_payouts.pipeline import SubmissionEngine
from treasury_payouts.pipeline.submission import reaches

COMPUTE_BUDGET_PROGRAM_ID = Pubkey.from_string("ComputeBudget111111111111111111111111111111")
MEMO_LIKE = Instruction(program_id=Pubkey.new_unique(), data=b"hello", accounts=[])


def _engine(ledger, signer, **kwargs) -> tuple[SubmissionEngine, list[float]]:
    sleeps: list[float] = []
    kwargs.setdefault("max_attempts", 120)
    kwargs.setdefault("poll_interval_sec", 0.5)
    engine = SubmissionEngine(ledger, signer, sleep=sleeps.append, **kwargs)
    return engine, sleeps


def test_build_prepends_compute_budget_instructions(ledger, signer):
    engine, _ = _engine(ledger, signer, compute_units=80_000, priority_fee_micro_lamports=200_000)
    tx = engine.build([MEMO_LIKE])
    message = tx.message
    programs = [message.account_keys[ix.program_id_index] for ix in message.instructions]
    assert programs[:2] == [COMPUTE_BUDGET_PROGRAM_ID, COMPUTE_BUDGET_PROGRAM_ID]
    assert programs[2] == MEMO_LIKE.program_id
    assert message.account_keys[0] == signer.pubkey()
    assert message.recent_blockhash == ledger.blockhash
    assert len(tx.signatures) == 1


def test_confirmed_on_third_poll(make_ledger, signer):
    ledger = make_ledger(
        lambda sig, poll: SignatureStatus("confirmed", slot=9) if poll >= 3 else SignatureStatus("processed")
    )
    engine, sleeps = _engine(ledger, signer)
    outcome = engine.submit([MEMO_LIKE], label="memo")

    assert outcome.attempt_count == 3
    assert outcome.final_status == "confirmed"
    assert outcome.slot == 9
    assert ledger.polls[outcome.signature] == 3
    # initial send + one re-send per unconfirmed poll
    assert ledger.broadcasts[outcome.signature] == 3
    assert sleeps == [0.5, 0.5]
    assert len(set(ledger.sent)) == 1  # identical bytes every time


def test_never_confirmed_fails_after_exactly_max_attempts(make_ledger, signer):
    ledger = make_ledger(lambda sig, poll: None)
    engine, sleeps = _engine(ledger, signer, max_attempts=120)
    with pytest.raises(SubmissionError) as exc:
        engine.submit([MEMO_LIKE])

    err = exc.value
    assert err.reason == "timeout"
    assert err.attempts == 120
    assert ledger.polls[err.signature] == 120
    assert len(sleeps) == 119
    assert engine.history[-1].final_status == "failed"


def test_processed_does_not_satisfy_confirmed_target(make_ledger, signer):
    ledger = make_ledger(lambda sig, poll: SignatureStatus("processed"))
    engine, _ = _engine(ledger, signer, max_attempts=5)
    with pytest.raises(SubmissionError) as exc:
        engine.submit([MEMO_LIKE])
    assert exc.value.attempts == 5
    assert exc.value.last_status.confirmation_status == "processed"


def test_finalized_satisfies_confirmed_target(make_ledger, signer):
    ledger = make_ledger(lambda sig, poll: SignatureStatus("finalized"))
    engine, _ = _engine(ledger, signer)
    outcome = engine.submit([MEMO_LIKE])
    assert outcome.final_status == "finalized"
    assert outcome.attempt_count == 1
    assert ledger.broadcasts[outcome.signature] == 1


def test_per_call_commitment_override(make_ledger, signer):
    ledger = make_ledger(lambda sig, poll: SignatureStatus("processed"))
    engine, _ = _engine(ledger, signer)
    assert engine.submit([MEMO_LIKE], commitment="processed").attempt_count == 1


def test_execution_error_fails_immediately(make_ledger, signer):
    ledger = make_ledger(lambda sig, poll: SignatureStatus("confirmed", err={"InstructionError": [2, "Custom"]}))
    engine, _ = _engine(ledger, signer)
    with pytest.raises(SubmissionError) as exc:
        engine.submit([MEMO_LIKE])
    assert exc.value.reason == "execution_error"
    assert exc.value.attempts == 1


def test_poll_errors_count_against_ceiling(make_ledger, signer):
    def flaky(sig, poll):
        if poll < 4:
            raise ConnectionError("rpc timeout")
        return SignatureStatus("confirmed")

    ledger = make_ledger(flaky)
    engine, _ = _engine(ledger, signer)
    assert engine.submit([MEMO_LIKE]).attempt_count == 4


def test_send_failures_are_swallowed_while_polling(make_ledger, signer):
    ledger = make_ledger(lambda sig, poll: SignatureStatus("confirmed") if poll == 2 else None)
    ledger.send_error = ConnectionError("node dropped")
    engine, _ = _engine(ledger, signer)
    outcome = engine.submit([MEMO_LIKE])
    assert outcome.attempt_count == 2
    assert ledger.broadcasts[outcome.signature] == 2


def test_ledger_errors_while_polling_are_retried(make_ledger, signer):
    def flaky(sig, poll):
        if poll == 1:
            raise LedgerError("get_signature_statuses failed: 503")
        return SignatureStatus("confirmed")

    ledger = make_ledger(flaky)
    engine, _ = _engine(ledger, signer)
    assert engine.submit([MEMO_LIKE]).attempt_count == 2


@pytest.mark.parametrize("error", [TypeError("bad argument"), ImportError("no module named solana.rpc.types")])
def test_programming_error_on_send_propagates(ledger, signer, error):
    ledger.send_error = error
    engine, sleeps = _engine(ledger, signer)
    with pytest.raises(type(error)):
        engine.submit([MEMO_LIKE])
    assert sleeps == []


def test_programming_error_while_polling_propagates(make_ledger, signer):
    def broken(sig, poll):
        raise AttributeError("'NoneType' object has no attribute 'value'")

    ledger = make_ledger(broken)
    engine, _ = _engine(ledger, signer)
    with pytest.raises(AttributeError):
        engine.submit([MEMO_LIKE])
    assert sum(ledger.polls.values()) == 1


def test_invalid_commitment_rejected(ledger, signer):
    with pytest.raises(ValueError):
        SubmissionEngine(ledger, signer, commitment="max")


@pytest.mark.parametrize(
    "status,target,expected",
    [
        ("processed", "processed", True),
        ("processed", "confirmed", False),
        ("confirmed", "confirmed", True),
        ("finalized", "confirmed", True),
        ("confirmed", "finalized", False),
        (None, "processed", False),
    ],
)
def test_reaches_orders_confirmation_depth(status, target, expected):
    assert reaches(status, target) is expected
