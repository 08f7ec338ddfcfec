#!/usr/bin/env python3
"""
Bulk token payouts from a Squads multisig vault.

Usage:
  treasury-payouts --ms-address <MULTISIG> --wallet-keypair-path ~/.config/solana/id.json \\
      --csv-file-path payouts.csv [--vault-index 0] [--rpc-url URL] [--dry-run]

Env (overridden by flags): SOLANA_RPC_URL, PAYOUT_MULTISIG_ADDRESS, PAYOUT_KEYPAIR_PATH,
PAYOUT_CSV_PATH, PAYOUT_VAULT_INDEX, PAYOUT_COMMITMENT, PAYOUT_MISSING_MINT_POLICY,
PAYOUT_LOOKUP_TABLES, SQUADS_PROGRAM_ID, DRY_RUN, LOG_LEVEL, LOG_FORMAT.

Exit codes: 0 ok, 1 submission or unexpected failure, 2 configuration error,
3 batch left open on-chain (cancel it manually).
"""

from __future__ import annotations

import argparse
import sys

from treasury_payouts.config import get_settings
from treasury_payouts.config.env import mask_rpc_url
from treasury_payouts.errors import ConfigurationError, OrphanedBatchError, PayoutError, SubmissionError
from treasury_payouts.ingestion import read_records
from treasury_payouts.ledger import LedgerClient, load_keypair
from treasury_payouts.payouts_logging import bind_run, get_logger
from treasury_payouts.pipeline import PayoutPipeline

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_ORPHANED = 3


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="treasury-payouts",
        description="Distribute SPL tokens from a Squads multisig vault via batch proposals.",
    )
    p.add_argument("--ms-address", "--msAddress", dest="multisig_address", help="Multisig address")
    p.add_argument("--wallet-keypair-path", "--walletKeypairPath", dest="keypair_path", help="Signer keypair JSON file")
    p.add_argument("--rpc-url", "--rpcUrl", dest="rpc_url", help="RPC URL (default: SOLANA_RPC_URL or mainnet)")
    p.add_argument("--csv-file-path", "--csvFilePath", dest="csv_path", help="CSV of token_address,receiver,amount")
    p.add_argument("--vault-index", "--vaultIndex", dest="vault_index", type=int, help="Vault index (default 0)")
    p.add_argument("--records-per-tx", dest="records_per_tx", type=int, help="Transfers per vault transaction (default 5)")
    p.add_argument("--tx-per-batch", dest="tx_per_batch", type=int, help="Vault transactions per batch (default 250)")
    p.add_argument(
        "--max-instructions-per-tx",
        dest="max_instructions_per_tx",
        type=int,
        help="Cap on instructions per vault transaction; records are never split",
    )
    p.add_argument("--commitment", choices=("processed", "confirmed", "finalized"), help="Target confirmation depth")
    p.add_argument(
        "--missing-mint-policy",
        dest="missing_mint_policy",
        choices=("default", "fail"),
        help="When a mint cannot be fetched: assume 9 decimals (default) or abort (fail)",
    )
    p.add_argument("--lookup-table", dest="lookup_tables", action="append", help="Address lookup table (repeatable; replaces the default)")
    p.add_argument("--dry-run", dest="dry_run", action="store_true", default=None, help="Plan only; submit nothing")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = get_settings(**vars(args))
        config.require_run_inputs()
        signer = load_keypair(config.keypair_path)
        records = read_records(config.csv_path)
    except ConfigurationError as e:
        logger.error("payout_config_error", error=str(e))
        return EXIT_CONFIG

    bind_run(config.multisig_address, config.vault_index)
    logger.info(
        "payout_started",
        rpc_url=mask_rpc_url(config.rpc_url),
        signer=str(signer.pubkey()),
        record_count=len(records),
        dry_run=config.dry_run,
    )
    try:
        pipeline = PayoutPipeline(config, LedgerClient(config.rpc_url), signer)
        report = pipeline.run(records)
    except ConfigurationError as e:
        logger.error("payout_config_error", error=str(e))
        return EXIT_CONFIG
    except OrphanedBatchError as e:
        logger.error(
            "payout_aborted_batch_orphaned",
            batch_index=e.batch_index,
            phase=e.phase,
            appended=e.appended,
            total=e.total,
            signature=e.signature,
            action="cancel the batch manually before re-running",
        )
        return EXIT_ORPHANED
    except (SubmissionError, PayoutError) as e:
        logger.error("payout_aborted", error=str(e), signature=getattr(e, "signature", None))
        return EXIT_FAILED
    except Exception as e:
        logger.exception("payout_unexpected_error", error=str(e))
        return EXIT_FAILED

    logger.info(
        "payout_finished",
        batch_indices=report.batch_indices,
        submission_count=report.submission_count,
        dry_run=report.dry_run,
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
