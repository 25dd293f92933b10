"""
Oracle monitor service.

Polls the chain for every configured oracle, reconciles its submitted
prices into persisted observation state and keeps the Prometheus gauges
current. Oracles are processed one after another, so a given oracle's
state is never reconciled by two passes at once.

Oracle file format:
    {"agoric1...": {"oracleName": "Oracle 1"}, ...}

State file format:
    {"agoric1...": {"last_offer_id": 1700000000000,
                    "values": {"ATOM-USD": {"price": 9.5, "id": ..., "round": 42}}}}
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Optional

from ..chain.base import ChainError, FeedRegistry
from ..oracle.models import OracleDetails, OracleObservationState
from ..oracle.reconcile import ObservationReconciler
from ..oracle.rounds import RoundResolver

logger = logging.getLogger(__name__)


class MonitorError(Exception):
    """Raised when monitor files cannot be read or written."""

    pass


def load_oracles(path: Path) -> dict[str, str]:
    """
    Load monitored oracles.

    Returns:
        Oracle address to oracle name.
    """
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise MonitorError(f"Failed to load oracles from {path}: {e}") from e

    if not isinstance(data, dict):
        raise MonitorError(f"{path} must map oracle addresses to details")

    return {
        address: (details or {}).get("oracleName", address)
        for address, details in data.items()
    }


class OracleMonitor:
    """
    Periodic reconciliation of all monitored oracles.

    Attributes:
        oracles: Oracle address to oracle name.
        states: Latest observation state per oracle address.
    """

    def __init__(
        self,
        registry: FeedRegistry,
        resolver: RoundResolver,
        reconciler: ObservationReconciler,
        oracles: dict[str, str],
        state_path: Path,
    ):
        self.registry = registry
        self.resolver = resolver
        self.reconciler = reconciler
        self.oracles = oracles
        self.state_path = Path(state_path)
        self.states: dict[str, OracleObservationState] = {}

    def load_state(self) -> bool:
        """
        Load persisted states.

        Returns:
            True if a state file was loaded, False otherwise.
        """
        if not self.state_path.exists():
            logger.info(f"No monitor state at {self.state_path}, starting fresh")
            return False

        try:
            with open(self.state_path) as f:
                data = json.load(f)
            self.states = {
                oracle: OracleObservationState.from_dict(state)
                for oracle, state in data.items()
            }
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Failed to load monitor state: {e}")
            return False

        logger.info(f"Loaded monitor state for {len(self.states)} oracles")
        return True

    def save_state(self) -> None:
        """Persist all states, replacing the file atomically."""
        data = {oracle: state.to_dict() for oracle, state in self.states.items()}
        tmp_path = self.state_path.with_suffix(self.state_path.suffix + ".tmp")

        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.state_path)
        except OSError as e:
            logger.error(f"Failed to save monitor state: {e}")
            raise MonitorError(f"Failed to save state: {e}") from e

    def oracle_details(self, oracle: str) -> OracleDetails:
        """Current invitation id to feed mapping for an oracle."""
        invitations = self.registry.resolve_invitations(oracle)
        return OracleDetails(
            oracle_name=self.oracles.get(oracle, oracle),
            feeds={invitation_id: feed for feed, invitation_id in invitations.items()},
        )

    def amounts_in(self, feeds: set[str]) -> dict[str, int]:
        """Amount in per feed; feeds whose quote cannot be read are left out."""
        amounts = {}
        for feed in sorted(feeds):
            try:
                amounts[feed] = self.resolver.amount_in(feed)
            except ChainError as e:
                logger.error(f"Failed to read amountIn for {feed}: {e}")
        return amounts

    def run_once(self) -> int:
        """
        Reconcile every oracle once.

        Returns:
            Number of oracles whose state changed.
        """
        details_by_oracle: dict[str, OracleDetails] = {}
        for oracle in self.oracles:
            try:
                details_by_oracle[oracle] = self.oracle_details(oracle)
            except ChainError as e:
                logger.error(f"Failed to resolve feeds for {oracle}: {e}")

        feeds = {feed for details in details_by_oracle.values() for feed in details.feeds.values()}
        amounts = self.amounts_in(feeds)

        changed = 0
        for oracle, details in details_by_oracle.items():
            prior = self.states.get(oracle) or OracleObservationState.empty()
            try:
                state = self.reconciler.reconcile(oracle, details, prior, amounts)
            except ChainError as e:
                logger.error(f"Failed to reconcile {oracle}: {e}")
                continue

            if state is not prior:
                self.states[oracle] = state
                changed += 1

        if changed:
            self.save_state()
        return changed

    def run(self, poll_interval: float, max_cycles: Optional[int] = None) -> None:
        """
        Poll until stopped (or for `max_cycles` cycles).

        Args:
            poll_interval: Seconds between cycles.
            max_cycles: Number of cycles to run, None to run forever.
        """
        self.load_state()

        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            cycles += 1
            try:
                changed = self.run_once()
                logger.info(f"Monitor cycle {cycles} done, {changed} oracle(s) updated")
            except (ChainError, MonitorError) as e:
                logger.error(f"Monitor cycle {cycles} failed: {e}")

            if max_cycles is None or cycles < max_cycles:
                time.sleep(poll_interval)
