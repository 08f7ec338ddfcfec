"""
Treasury Payouts: bulk SPL-token distribution from a Squads v4 multisig vault.

Turns a flat list of (token, receiver, amount) records into multisig batches:
each batch is opened, filled with transfer sub-transactions, and activated for
voting. Approval and execution happen later, by the multisig members.
"""

__version__ = "0.1.0"
