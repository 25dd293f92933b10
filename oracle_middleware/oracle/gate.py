"""Eligibility of a price submission for a round."""

from enum import Enum

from .models import RoundInfo


class SubmissionDecision(Enum):
    """What to do with a pending submission."""

    PROCEED = "proceed"
    ALREADY_SATISFIED = "already_satisfied"
    STALE = "stale"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        """Whether the submission must not be sent."""
        return self != SubmissionDecision.PROCEED


def evaluate(target_round: int, resolved: RoundInfo) -> SubmissionDecision:
    """
    Decide whether a price for `target_round` may still be submitted.

    A round that has been surpassed is stale whether or not this oracle
    submitted to it. The current round is satisfied once a submission for it
    is on chain.
    """
    if resolved.round_id > target_round:
        return SubmissionDecision.STALE
    if resolved.round_id == target_round and resolved.submission_made:
        return SubmissionDecision.ALREADY_SATISFIED
    return SubmissionDecision.PROCEED
