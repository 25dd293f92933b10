"""
Abstract collaborator interfaces for chain interactions.

This module defines the narrow interfaces the oracle core consumes:
ledger reads (vstorage), ledger writes (wallet actions), the feed
invitation registry, the per-feed in-progress flag, job persistence and
the metrics sink. Concrete implementations live in `vstorage.py`,
`wallet.py`, `storage/jobs.py` and `monitor/metrics.py`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator


@dataclass(frozen=True)
class PurseBalance:
    """
    Balance of a single purse in an oracle's smart wallet.

    Attributes:
        brand: Brand keyword (e.g., 'BLD', 'IST').
        value: Balance in the brand's smallest unit.
    """

    brand: str
    value: int


@dataclass(frozen=True)
class Keyring:
    """Keyring used by the wallet CLI to sign transactions."""

    home: str = ""
    backend: str = "test"


class ChainError(Exception):
    """Base exception for chain-related errors."""

    pass


class ParseError(ChainError):
    """Raised when a vstorage record or CapData payload cannot be decoded."""

    pass


# Round resolution reports undecodable round records under this name
PriceSourceUnavailable = ParseError


class FeedNotRegistered(ChainError):
    """Raised when the oracle holds no invitation for a feed."""

    def __init__(self, feed: str, oracle: str = ""):
        self.feed = feed
        self.oracle = oracle
        suffix = f" for {oracle}" if oracle else ""
        super().__init__(f"Invitation for {feed} not found in oracle invitations{suffix}")


class TransportError(ChainError):
    """Raised when the RPC endpoint cannot be reached."""

    pass


class TransactionError(ChainError):
    """Raised when a wallet action could not be broadcast."""

    pass


class LedgerReader(ABC):
    """Read access to published chain state."""

    @abstractmethod
    def read_latest_round_record(self, feed: str) -> str:
        """
        Read the raw CapData of the latest round for a feed.

        Args:
            feed: Feed name (e.g., 'ATOM-USD').

        Returns:
            The serialized CapData string.
        """
        pass

    @abstractmethod
    def read_latest_price_record(self, feed: str) -> str:
        """Read the raw CapData of the latest price quote for a feed."""
        pass

    @abstractmethod
    def read_submission_history(self, oracle: str) -> Iterator[dict]:
        """
        Lazily iterate an oracle's wallet updates, newest first.

        Args:
            oracle: Oracle address.

        Returns:
            Iterator of decoded wallet update records.
        """
        pass

    @abstractmethod
    def read_balances(self, oracle: str) -> list[PurseBalance]:
        """Read the purse balances of an oracle's wallet."""
        pass

    @abstractmethod
    def read_current_wallet(self, oracle: str) -> dict[str, Any]:
        """Read the decoded current-state record of an oracle's wallet."""
        pass

    @abstractmethod
    def read_instance_names(self) -> list:
        """Read the agoricNames instance entries as (name, BoardRef) pairs."""
        pass


class LedgerWriter(ABC):
    """Write access to the chain through the oracle's smart wallet."""

    @abstractmethod
    def submit_action(self, payload: dict, from_oracle: str, keyring: Keyring) -> None:
        """
        Broadcast a marshalled bridge action.

        Delivery is only observable by reading the ledger afterwards.

        Args:
            payload: CapData of the bridge action.
            from_oracle: Address signing the action.
            keyring: Keyring configuration for signing.

        Raises:
            TransactionError: If the action could not be broadcast.
        """
        pass


class FeedRegistry(ABC):
    """Resolves the invitation ids an oracle uses to push prices."""

    @abstractmethod
    def resolve_invitations(self, oracle: str) -> dict[str, int]:
        """Map feed name to the invitation id of the oracle's price channel."""
        pass


class InProgressFlags(ABC):
    """Per-feed submission lock held outside this process."""

    @abstractmethod
    def is_in_progress(self, feed: str) -> bool:
        pass


class JobRecorder(ABC):
    """Persistence of per-feed job state."""

    @abstractmethod
    def record_submission_attempt(self, feed: str, timestamp: float) -> None:
        pass

    @abstractmethod
    def record_reported_round(self, feed: str, round_id: int) -> None:
        pass


class MetricsSink(ABC):
    """Receiver of oracle observations and balances."""

    @abstractmethod
    def record_observation(
        self,
        oracle_name: str,
        oracle: str,
        feed: str,
        price: float,
        submission_id: int,
        actual_price: float,
        round_id: int,
    ) -> None:
        pass

    @abstractmethod
    def record_balance(self, oracle_name: str, oracle: str, brand: str, value: float) -> None:
        pass
