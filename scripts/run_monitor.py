#!/usr/bin/env python3
"""
Run the Oracle Monitor

Polls the chain for every oracle listed in the oracle file, tracks the
prices each one submitted and exposes them as Prometheus metrics.

Usage:
    # Run forever, metrics on $MONITOR_PORT
    python scripts/run_monitor.py

    # Single pass, no metrics server
    python scripts/run_monitor.py --once

Environment Variables:
    AGORIC_RPC - RPC endpoint of the Agoric node
    ORACLE_FILE - JSON file of monitored oracles (default config/oracles.json)
    MONITOR_STATE_FILE - JSON file holding monitor state (default data/monitor_state.json)
    MONITOR_POLL_INTERVAL - Seconds between polls (default 60)
    MONITOR_PORT - Port of the metrics server (default 3001)
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from prometheus_client import start_http_server

from oracle_middleware.chain import VStorageClient, VStorageFeedRegistry
from oracle_middleware.config import ConfigError, MonitorConfig
from oracle_middleware.logs import setup_logging
from oracle_middleware.monitor import MonitorError, MonitorMetrics, OracleMonitor, load_oracles
from oracle_middleware.oracle import ObservationReconciler, RoundResolver

logger = logging.getLogger(__name__)


def build_monitor(config: MonitorConfig, metrics: MonitorMetrics) -> OracleMonitor:
    """Wire the monitor to the chain."""
    reader = VStorageClient(config.agoric_rpc)
    registry = VStorageFeedRegistry(reader)

    # The monitor never submits, so the resolver needs no default oracle
    resolver = RoundResolver(reader, registry, oracle="", history_scan_limit=config.history_scan_limit)
    reconciler = ObservationReconciler(reader, resolver, metrics, config.history_scan_limit)

    return OracleMonitor(
        registry,
        resolver,
        reconciler,
        load_oracles(config.oracle_file),
        config.state_file,
    )


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Monitor Agoric oracle submissions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single reconciliation pass and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()
    setup_logging("monitor", verbose=args.verbose)

    try:
        config = MonitorConfig.from_env()
    except ConfigError as e:
        logger.error(f"ERROR LOADING ENV VARS: {e}")
        return 1

    metrics = MonitorMetrics()

    try:
        monitor = build_monitor(config, metrics)
    except MonitorError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Monitoring {len(monitor.oracles)} oracle(s)")

    try:
        if args.once:
            monitor.run(config.poll_interval_seconds, max_cycles=1)
            return 0

        start_http_server(config.metrics_port, registry=metrics.registry)
        logger.info(f"Metrics available on port {config.metrics_port}")
        monitor.run(config.poll_interval_seconds)
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user...")

    return 0


if __name__ == "__main__":
    sys.exit(main())
