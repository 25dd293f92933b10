"""
Record builders and in-memory chain fakes shared by the tests.
"""

import json
from typing import Optional

from oracle_middleware.chain.base import (
    FeedRegistry,
    InProgressFlags,
    JobRecorder,
    LedgerReader,
    ParseError,
    PurseBalance,
)

ORACLE = "agoric1oracle0000000000000000000000000000"
OTHER_ORACLE = "agoric1oracle1111111111111111111111111111"
ATOM_INVITATION = 1001
OSMO_INVITATION = 1002


# =============================================================================
# Record builders
# =============================================================================


def offer_update(
    offer_id: int,
    round_id: Optional[int],
    unit_price: int = 9_450_000,
    previous_offer: int = ATOM_INVITATION,
    error: Optional[str] = None,
    maker: str = "PushPrice",
    settled: bool = True,
) -> dict:
    """Decoded wallet update for a price push offer."""
    status = {
        "id": offer_id,
        "invitationSpec": {
            "source": "continuing",
            "previousOffer": previous_offer,
            "invitationMakerName": maker,
            "invitationArgs": [{"unitPrice": unit_price, "roundId": round_id}],
        },
        "proposal": {},
    }
    if error:
        status["error"] = error
    elif settled:
        status["numWantsSatisfied"] = 1
    return {"updated": "offerStatus", "status": status}


def capdata(body: dict, slots: Optional[list] = None) -> str:
    """Serialized smallcaps CapData."""
    return json.dumps({"body": "#" + json.dumps(body), "slots": slots or []})


def round_capdata(round_id: int, started_at: int = 1_700_000_000, started_by: str = "agoric1starter") -> str:
    return capdata(
        {
            "roundId": f"+{round_id}",
            "startedAt": {"absValue": f"+{started_at}", "timerBrand": "$0.Alleged: timerBrand"},
            "startedBy": started_by,
        },
        ["board0425"],
    )


def price_capdata(amount_in: int, amount_out: int) -> str:
    return capdata(
        {
            "amountIn": {"brand": "$0.Alleged: ATOM brand", "value": f"+{amount_in}"},
            "amountOut": {"brand": "$1.Alleged: USD brand", "value": f"+{amount_out}"},
            "timer": "$2.Alleged: timerService",
            "timestamp": {"absValue": "+1700000000", "timerBrand": "$3.Alleged: timerBrand"},
        },
        ["board0566", "board0223", "board05674", "board0425"],
    )


# =============================================================================
# Fakes
# =============================================================================


class FakeLedger(LedgerReader):
    """In-memory ledger; history lists are kept newest first."""

    def __init__(self):
        self.rounds: dict[str, str] = {}
        self.prices: dict[str, str] = {}
        self.history: dict[str, list[dict]] = {}
        self.balances: dict[str, list[PurseBalance]] = {}
        self.history_reads = 0

    def publish_round(self, feed: str, round_id: int) -> None:
        self.rounds[feed] = round_capdata(round_id)

    def publish_offer(self, oracle: str, update: dict) -> None:
        self.history.setdefault(oracle, []).insert(0, update)

    def read_latest_round_record(self, feed: str) -> str:
        if feed not in self.rounds:
            raise ParseError(f"No data published for {feed}")
        return self.rounds[feed]

    def read_latest_price_record(self, feed: str) -> str:
        if feed not in self.prices:
            raise ParseError(f"No data published for {feed}")
        return self.prices[feed]

    def read_submission_history(self, oracle: str):
        self.history_reads += 1
        return iter(list(self.history.get(oracle, [])))

    def read_balances(self, oracle: str) -> list[PurseBalance]:
        return list(self.balances.get(oracle, []))

    def read_current_wallet(self, oracle: str) -> dict:
        return {}

    def read_instance_names(self) -> list:
        return []


class FakeRegistry(FeedRegistry):
    def __init__(self, invitations: Optional[dict[str, dict[str, int]]] = None):
        self.invitations = invitations or {}

    def resolve_invitations(self, oracle: str) -> dict[str, int]:
        return dict(self.invitations.get(oracle, {}))


class FakeJobs(JobRecorder, InProgressFlags):
    def __init__(self, in_progress: bool = False):
        self.in_progress = in_progress
        self.attempts: list[tuple[str, float]] = []
        self.reported: list[tuple[str, int]] = []

    def record_submission_attempt(self, feed: str, timestamp: float) -> None:
        self.attempts.append((feed, timestamp))

    def record_reported_round(self, feed: str, round_id: int) -> None:
        self.reported.append((feed, round_id))

    def is_in_progress(self, feed: str) -> bool:
        return self.in_progress

