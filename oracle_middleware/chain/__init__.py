"""
Chain access for the oracle middleware.

This module provides the collaborator interfaces and their Agoric
implementations:
- LedgerReader / VStorageClient: published state via vstorage
- LedgerWriter / AgdWalletWriter: wallet actions via the agd CLI
- FeedRegistry / VStorageFeedRegistry: feed invitation ids
- CapData decoding and smallcaps encoding
"""

from .base import (
    ChainError,
    FeedNotRegistered,
    FeedRegistry,
    InProgressFlags,
    JobRecorder,
    Keyring,
    LedgerReader,
    LedgerWriter,
    MetricsSink,
    ParseError,
    PriceSourceUnavailable,
    PurseBalance,
    TransactionError,
    TransportError,
)
from .capdata import BigInt, BoardRef, decode, serialize_action
from .vstorage import VStorageClient
from .wallet import AgdWalletWriter, VStorageFeedRegistry

__all__ = [
    # Interfaces and types
    "LedgerReader",
    "LedgerWriter",
    "FeedRegistry",
    "InProgressFlags",
    "JobRecorder",
    "MetricsSink",
    "Keyring",
    "PurseBalance",
    "BigInt",
    "BoardRef",
    "decode",
    "serialize_action",
    # Exceptions
    "ChainError",
    "ParseError",
    "PriceSourceUnavailable",
    "FeedNotRegistered",
    "TransportError",
    "TransactionError",
    # Implementations
    "VStorageClient",
    "AgdWalletWriter",
    "VStorageFeedRegistry",
]
