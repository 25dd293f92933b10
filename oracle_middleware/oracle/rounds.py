"""
Round state resolution for price feeds.

Reads a feed's latest round from the chain and determines whether the
oracle has already submitted a price for it, by scanning the oracle's
recent offers newest first.
"""

import logging
from typing import Any, Optional

from ..chain.base import (
    FeedNotRegistered,
    FeedRegistry,
    LedgerReader,
    ParseError,
    PriceSourceUnavailable,
)
from ..chain.capdata import decode
from ..config import DEFAULT_HISTORY_SCAN_LIMIT
from .history import iter_submission_records, scan_history
from .models import RoundInfo, SubmissionRecord

logger = logging.getLogger(__name__)


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, dict):
        # Timestamps are records carrying the value under absValue
        value = value.get("absValue", value.get("digits"))
    if isinstance(value, bool) or value is None:
        raise ParseError(f"Missing or invalid {name}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid {name}: {value!r}") from e


def _decode_record(raw: str, what: str) -> dict:
    record = decode(raw)
    if not isinstance(record, dict):
        raise ParseError(f"{what} record is not a record")
    return record


def parse_round_record(raw: str) -> tuple[int, int, str]:
    """
    Decode a latestRound record.

    Returns:
        Tuple of (round_id, started_at, started_by).

    Raises:
        PriceSourceUnavailable: If the record cannot be decoded.
    """
    try:
        record = _decode_record(raw, "Round")
        return (
            _as_int(record.get("roundId"), "roundId"),
            _as_int(record.get("startedAt"), "startedAt"),
            str(record.get("startedBy") or ""),
        )
    except ParseError as e:
        raise PriceSourceUnavailable(f"Failed to parse CapData for round: {e}") from e


def parse_price_record(raw: str) -> tuple[int, int]:
    """
    Decode a price feed quote.

    Returns:
        Tuple of (amount_in, amount_out) values.

    Raises:
        ParseError: If the record cannot be decoded or amountIn is zero.
    """
    try:
        record = _decode_record(raw, "Price")
        amount_in = _as_int((record.get("amountIn") or {}).get("value"), "amountIn")
        amount_out = _as_int((record.get("amountOut") or {}).get("value"), "amountOut")
    except (ParseError, AttributeError) as e:
        raise ParseError(f"Failed to parse CapData for price: {e}") from e

    if amount_in <= 0:
        raise ParseError(f"Invalid amountIn: {amount_in}")
    return amount_in, amount_out


class RoundResolver:
    """
    Resolves the latest round of a feed for one oracle.

    Every call reads fresh chain state; nothing is cached between calls.

    Example:
        resolver = RoundResolver(reader, registry, oracle="agoric1...")
        info = resolver.resolve_round("ATOM-USD")
        if not info.submission_made:
            ...
    """

    def __init__(
        self,
        reader: LedgerReader,
        registry: FeedRegistry,
        oracle: str,
        history_scan_limit: int = DEFAULT_HISTORY_SCAN_LIMIT,
    ):
        self.reader = reader
        self.registry = registry
        self.oracle = oracle
        self.history_scan_limit = history_scan_limit

    def feed_invitation(self, feed: str, oracle: Optional[str] = None) -> int:
        """
        Look up the invitation id an oracle pushes prices for a feed through.

        Raises:
            FeedNotRegistered: If the oracle holds no invitation for the feed.
        """
        oracle = oracle or self.oracle
        invitations = self.registry.resolve_invitations(oracle)
        if feed not in invitations:
            raise FeedNotRegistered(feed, oracle)
        return invitations[feed]

    def recent_submissions(self, oracle: str) -> list[SubmissionRecord]:
        """Latest status of the oracle's most recent non-errored offers."""
        updates = self.reader.read_submission_history(oracle)
        return scan_history(iter_submission_records(updates), self.history_scan_limit)

    def submission_made(self, oracle: str, invitation_id: int, round_id: int) -> bool:
        """
        Check whether a price push for `round_id` went through.

        Scans newest first and stops at the first push for an older round,
        since pushes for a feed are made in round order.
        """
        for record in self.recent_submissions(oracle):
            if not record.is_push_price or record.prior_submission_id != invitation_id:
                continue
            if record.target_round_id is None:
                continue

            if record.target_round_id == round_id:
                return True
            if record.target_round_id < round_id:
                return False
        return False

    def resolve_round(self, feed: str, oracle: Optional[str] = None) -> RoundInfo:
        """
        Resolve the latest round of a feed.

        Raises:
            PriceSourceUnavailable: If the round record cannot be decoded.
            FeedNotRegistered: If the oracle holds no invitation for the feed.
        """
        oracle = oracle or self.oracle
        round_id, started_at, started_by = parse_round_record(
            self.reader.read_latest_round_record(feed)
        )
        invitation_id = self.feed_invitation(feed, oracle)

        info = RoundInfo(
            round_id=round_id,
            started_at=started_at,
            started_by=started_by,
            submission_made=self.submission_made(oracle, invitation_id, round_id),
        )
        logger.info(f"{feed} Latest Round: {info.round_id}")
        return info

    def amount_in(self, feed: str) -> int:
        """Amount in of the feed's latest quote, the divisor for unit prices."""
        amount_in, _ = parse_price_record(self.reader.read_latest_price_record(feed))
        return amount_in

    def query_price(self, feed: str) -> float:
        """
        Latest aggregated price of a feed (amountOut / amountIn).

        Raises:
            ParseError: If the quote cannot be decoded.
        """
        amount_in, amount_out = parse_price_record(self.reader.read_latest_price_record(feed))
        price = amount_out / amount_in
        logger.info(f"{feed} Price Query: {price}")
        return price
