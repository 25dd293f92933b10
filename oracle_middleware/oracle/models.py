"""
Data models for oracle submissions, rounds and observation state.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..chain.base import ParseError

logger = logging.getLogger(__name__)

PUSH_PRICE = "PushPrice"


class SubmissionOutcome(Enum):
    """Outcome of a wallet offer as last published."""

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubmissionRecord:
    """
    One published status of an offer made by an oracle.

    Attributes:
        id: Offer id (a millisecond timestamp for price pushes).
        target_round_id: Round the offer pushes a price for.
        unit_price: Raw unit price pushed.
        prior_submission_id: Invitation id the offer continues from.
        outcome: Pending, success or error.
        invitation_maker_name: Continuing invitation used (e.g., 'PushPrice').
    """

    id: int
    target_round_id: Optional[int] = None
    unit_price: Optional[int] = None
    prior_submission_id: Optional[int] = None
    outcome: SubmissionOutcome = SubmissionOutcome.SUCCESS
    invitation_maker_name: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.outcome == SubmissionOutcome.ERROR

    @property
    def is_push_price(self) -> bool:
        return self.invitation_maker_name == PUSH_PRICE

    @classmethod
    def from_wallet_update(cls, update: dict[str, Any]) -> Optional["SubmissionRecord"]:
        """
        Build a record from a decoded wallet update.

        Returns None for updates that are not offer statuses and for offers
        without a numeric id.

        Raises:
            ParseError: If an offer status is malformed.
        """
        if update.get("updated") != "offerStatus":
            return None

        status = update.get("status")
        if not isinstance(status, dict):
            raise ParseError("offerStatus update without a status record")

        try:
            offer_id = int(status["id"])
        except KeyError:
            raise ParseError("offerStatus without an id")
        except (TypeError, ValueError):
            logger.debug(f"Ignoring offer with non-numeric id {status.get('id')!r}")
            return None

        if "error" in status:
            outcome = SubmissionOutcome.ERROR
        elif any(key in status for key in ("numWantsSatisfied", "result", "payouts")):
            outcome = SubmissionOutcome.SUCCESS
        else:
            outcome = SubmissionOutcome.PENDING

        spec = status.get("invitationSpec") or {}
        args = spec.get("invitationArgs") or []
        first_arg = args[0] if args and isinstance(args[0], dict) else {}

        try:
            round_id = first_arg.get("roundId")
            unit_price = first_arg.get("unitPrice")
            previous_offer = spec.get("previousOffer")
            return cls(
                id=offer_id,
                target_round_id=int(round_id) if round_id is not None else None,
                unit_price=int(unit_price) if unit_price is not None else None,
                prior_submission_id=int(previous_offer) if previous_offer is not None else None,
                outcome=outcome,
                invitation_maker_name=spec.get("invitationMakerName"),
            )
        except (TypeError, ValueError) as e:
            raise ParseError(f"Malformed invitation spec in offer {offer_id}: {e}") from e


@dataclass(frozen=True)
class RoundInfo:
    """
    Resolved state of a feed's latest round.

    Attributes:
        round_id: Round number, increasing per feed.
        started_at: Epoch seconds at which the round started.
        started_by: Address that started the round.
        submission_made: Whether the querying oracle already submitted to it.
    """

    round_id: int
    started_at: int
    started_by: str
    submission_made: bool = False


@dataclass(frozen=True)
class FeedObservation:
    """Latest accepted price an oracle submitted for a feed."""

    price: float
    id: int
    round: int

    def to_dict(self) -> dict[str, Any]:
        return {"price": self.price, "id": self.id, "round": self.round}


@dataclass
class OracleObservationState:
    """
    Reconciliation cursor and per-feed observations for one oracle.

    Attributes:
        last_submission_id: Highest offer id already processed.
        values: Latest observation per feed name.
    """

    last_submission_id: int = 0
    values: dict[str, FeedObservation] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "OracleObservationState":
        return cls()

    def last_round(self, feed: str) -> int:
        """Last recorded round for a feed, 0 if none."""
        observation = self.values.get(feed)
        return observation.round if observation else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_offer_id": self.last_submission_id,
            "values": {feed: obs.to_dict() for feed, obs in self.values.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OracleObservationState":
        try:
            last_id = int(data.get("last_offer_id") or 0)
        except (TypeError, ValueError):
            last_id = 0

        values = {}
        for feed, obs in (data.get("values") or {}).items():
            values[feed] = FeedObservation(
                price=float(obs["price"]),
                id=int(obs["id"]),
                round=int(obs["round"]),
            )
        return cls(last_submission_id=last_id, values=values)


@dataclass(frozen=True)
class OracleDetails:
    """
    A monitored oracle.

    Attributes:
        oracle_name: Human-readable name used in metrics.
        feeds: Invitation id to feed name.
    """

    oracle_name: str
    feeds: dict[int, str] = field(default_factory=dict)
