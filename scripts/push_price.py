#!/usr/bin/env python3
"""
Push a price to an Agoric price feed round.

Submits the price through the oracle's PushPrice invitation, waits for the
submission to show up on chain and retries up to SUBMIT_RETRIES times.
Exits 0 when the submission is confirmed, 1 otherwise.

Usage:
    # Submit unit price 9450000 for round 42 of ATOM-USD
    python scripts/push_price.py --feed ATOM-USD --price 9450000 --round 42

    # Show the feed's latest round and whether this oracle submitted to it
    python scripts/push_price.py --feed ATOM-USD --status

Environment Variables:
    AGORIC_RPC - RPC endpoint of the Agoric node
    FROM - Oracle address submitting prices
    SUBMIT_RETRIES - Submission attempts per job (default 3)
    SEND_CHECK_INTERVAL - Seconds to wait before checking a submission (default 45)
    HISTORY_SCAN_LIMIT - Offers scanned when checking submissions (default 5)
    CHAIN_ID, AGD_BIN, KEYRING_BACKEND, KEYRING_HOME - Wallet CLI settings
    DB_FILE - SQLite job state file
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from oracle_middleware.chain import (
    AgdWalletWriter,
    ChainError,
    VStorageClient,
    VStorageFeedRegistry,
)
from oracle_middleware.config import ConfigError, MiddlewareConfig
from oracle_middleware.logs import setup_logging
from oracle_middleware.oracle import PriceSubmitter, RoundResolver
from oracle_middleware.storage import JobStore

logger = logging.getLogger(__name__)


def build_submitter(config: MiddlewareConfig) -> PriceSubmitter:
    """Wire the submitter to the chain and the job store."""
    reader = VStorageClient(config.agoric_rpc)
    resolver = RoundResolver(
        reader,
        VStorageFeedRegistry(reader),
        oracle=config.from_address,
        history_scan_limit=config.history_scan_limit,
    )
    writer = AgdWalletWriter(config.agoric_rpc, chain_id=config.chain_id, agd_bin=config.agd_bin)
    jobs = JobStore(config.db_file)
    return PriceSubmitter(resolver, writer, jobs, jobs, config)


def show_status(submitter: PriceSubmitter, feed: str) -> None:
    """Print the feed's latest round."""
    info = submitter.resolver.resolve_round(feed)
    print("\n" + "=" * 70)
    print(f"{feed} Round Status")
    print("=" * 70)
    print(f"  Round: {info.round_id}")
    print(f"  Started at: {info.started_at}")
    print(f"  Started by: {info.started_by}")
    print(f"  Submitted by {submitter.config.from_address}: {'Yes' if info.submission_made else 'No'}")
    print("=" * 70)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Push a price to an Agoric price feed round",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/push_price.py --feed ATOM-USD --price 9450000 --round 42
  python scripts/push_price.py --feed ATOM-USD --status
        """,
    )
    parser.add_argument("--feed", required=True, help="Feed name (e.g., ATOM-USD)")
    parser.add_argument("--price", type=int, metavar="UNITS", help="Unit price to push")
    parser.add_argument("--round", type=int, dest="round_id", metavar="N", help="Round to push to")
    parser.add_argument(
        "--from",
        dest="from_address",
        default=None,
        help="Submitting oracle address (default: $FROM)",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Show the feed's latest round and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    if not args.status and (args.price is None or args.round_id is None):
        parser.error("--price and --round are required unless --status is given")

    setup_logging("push_price", verbose=args.verbose)

    try:
        config = MiddlewareConfig.from_env()
    except ConfigError as e:
        logger.error(f"ERROR LOADING ENV VARS: {e}")
        return 1

    submitter = build_submitter(config)

    try:
        if args.status:
            show_status(submitter, args.feed)
            return 0

        confirmed = submitter.submit(args.price, args.feed, args.round_id, args.from_address)
    except ChainError as e:
        logger.error(f"Submission for {args.feed} round {args.round_id} failed: {e}")
        return 1

    return 0 if confirmed else 1


if __name__ == "__main__":
    sys.exit(main())
