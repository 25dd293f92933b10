"""
Price submission with confirmation and bounded retries.

A submission is pushed through the oracle's continuing PushPrice
invitation, then confirmed by re-reading the wallet history after a fixed
wait. The round is re-checked before every attempt, so a price is never
pushed into a round that has closed or been surpassed meanwhile.

Every terminal outcome is logged distinctly:
- confirmed on chain
- already satisfied (nothing sent)
- stale round (aborted)
- in progress elsewhere (another submitter holds the feed)
- retries exhausted
Chain and parse errors propagate to the caller.
"""

import logging
import time
from typing import Optional, Union

from ..chain.base import InProgressFlags, JobRecorder, Keyring, LedgerWriter
from ..chain.capdata import BigInt, serialize_action
from ..config import MiddlewareConfig
from .gate import SubmissionDecision, evaluate
from .models import PUSH_PRICE
from .rounds import RoundResolver

logger = logging.getLogger(__name__)


def _client_offer_id() -> int:
    """Fresh offer id: the current time in milliseconds."""
    return int(time.time() * 1000)


def build_push_price_offer(
    invitation_id: int,
    price: Union[int, BigInt],
    round_id: int,
    offer_id: Optional[int] = None,
) -> dict:
    """
    Build a PushPrice offer through a continuing invitation.

    Args:
        invitation_id: The feed's invitation id in the oracle's wallet.
        price: Unit price, already scaled to the feed's amountIn.
        round_id: Round the price is for.
        offer_id: Offer id; defaults to the current time in milliseconds.
    """
    return {
        "id": offer_id if offer_id is not None else _client_offer_id(),
        "invitationSpec": {
            "source": "continuing",
            "previousOffer": int(invitation_id),
            "invitationMakerName": PUSH_PRICE,
            "invitationArgs": [{"unitPrice": BigInt(price), "roundId": int(round_id)}],
        },
        "proposal": {},
    }


class PriceSubmitter:
    """
    Submits a price for a round and waits for it to land on chain.

    Example:
        submitter = PriceSubmitter(resolver, writer, job_store, job_store, config)
        confirmed = submitter.submit(1234500, "ATOM-USD", round_id=42)
    """

    def __init__(
        self,
        resolver: RoundResolver,
        writer: LedgerWriter,
        flags: InProgressFlags,
        jobs: JobRecorder,
        config: MiddlewareConfig,
        keyring: Optional[Keyring] = None,
    ):
        self.resolver = resolver
        self.writer = writer
        self.flags = flags
        self.jobs = jobs
        self.config = config
        self.keyring = keyring or Keyring(
            home=config.keyring_home, backend=config.keyring_backend
        )

    def submit(
        self,
        price: int,
        feed: str,
        round_id: int,
        from_oracle: Optional[str] = None,
    ) -> bool:
        """
        Push `price` for `round_id` of `feed` and confirm it.

        Args:
            price: Unit price as an integer scaled to the feed's amountIn.
            feed: Feed name (e.g., 'ATOM-USD').
            round_id: Round to submit to.
            from_oracle: Submitting address; defaults to the configured one.

        Returns:
            True if a submission for the round is on chain.

        Raises:
            FeedNotRegistered: If the oracle holds no invitation for the feed.
            ParseError: If chain records cannot be decoded.
            ValueError: If the price is negative.
        """
        if int(price) < 0:
            raise ValueError(f"Price must be non-negative, got {price}")

        from_oracle = from_oracle or self.config.from_address
        invitation_id = self.resolver.feed_invitation(feed, from_oracle)

        submitted = self.resolver.submission_made(from_oracle, invitation_id, round_id)
        in_progress = self.flags.is_in_progress(feed)

        if submitted:
            logger.info(f"Price for {feed} round {round_id} already on chain, nothing to send")
        elif in_progress:
            logger.info(f"Submission for {feed} in progress elsewhere, skipping round {round_id}")

        attempt = 0
        while attempt < self.config.max_retries and not submitted and not in_progress:
            latest = self.resolver.resolve_round(feed, from_oracle)
            decision = evaluate(round_id, latest)

            if decision == SubmissionDecision.STALE:
                logger.info(
                    f"Price failed to be submitted for old round: {round_id} "
                    f"({feed} is at round {latest.round_id})"
                )
                return False
            if decision == SubmissionDecision.ALREADY_SATISFIED:
                logger.info(f"Round {round_id} for {feed} already satisfied, nothing to send")
                self.jobs.record_reported_round(feed, round_id)
                return True

            attempt += 1
            logger.info(f"Submitting price for round {round_id} attempt {attempt}")

            offer = build_push_price_offer(invitation_id, int(price), round_id)
            action = serialize_action({"method": "executeOffer", "offer": offer})
            self.writer.submit_action(action, from_oracle, self.keyring)

            self.jobs.record_submission_attempt(feed, time.time())

            time.sleep(self.config.check_interval_seconds)

            submitted = self.resolver.submission_made(from_oracle, invitation_id, round_id)
            in_progress = self.flags.is_in_progress(feed)

        if submitted:
            logger.info(f"Price submitted successfully for round {round_id}")
            self.jobs.record_reported_round(feed, round_id)
        elif in_progress:
            logger.warning(
                f"Stopped submitting for {feed} round {round_id}: submission in progress elsewhere"
            )
        else:
            logger.error(
                f"Price failed to be submitted for round {round_id} after {attempt} attempts"
            )

        return submitted
