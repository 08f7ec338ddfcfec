# Squads v4 multisig program: PDAs, batch instructions, account and message codecs.

from treasury_payouts.squads.accounts import Member, MultisigAccount, decode_multisig, encode_multisig
from treasury_payouts.squads.instructions import (
    batch_add_transaction,
    batch_create,
    proposal_activate,
    proposal_create,
)
from treasury_payouts.squads.message import compile_transaction_message
from treasury_payouts.squads.pdas import (
    DEFAULT_PROGRAM_ID,
    get_batch_transaction_pda,
    get_proposal_pda,
    get_transaction_pda,
    get_vault_pda,
    resolve_program_id,
)

__all__ = [
    "DEFAULT_PROGRAM_ID",
    "Member",
    "MultisigAccount",
    "batch_add_transaction",
    "batch_create",
    "compile_transaction_message",
    "decode_multisig",
    "encode_multisig",
    "get_batch_transaction_pda",
    "get_proposal_pda",
    "get_transaction_pda",
    "get_vault_pda",
    "proposal_activate",
    "proposal_create",
    "resolve_program_id",
]
