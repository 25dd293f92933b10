"""
Oracle round submission and reconciliation.

This module provides:
- History scanning of an oracle's wallet offers
- Round state resolution (RoundResolver)
- The submission eligibility gate
- Retry-driven price submission (PriceSubmitter)
- Incremental reconciliation of submitted prices (ObservationReconciler)
"""

from .gate import SubmissionDecision, evaluate
from .history import iter_submission_records, scan_history
from .models import (
    FeedObservation,
    OracleDetails,
    OracleObservationState,
    RoundInfo,
    SubmissionOutcome,
    SubmissionRecord,
)
from .reconcile import ObservationReconciler
from .rounds import RoundResolver, parse_price_record, parse_round_record
from .submitter import PriceSubmitter, build_push_price_offer

__all__ = [
    # Models
    "SubmissionRecord",
    "SubmissionOutcome",
    "RoundInfo",
    "FeedObservation",
    "OracleObservationState",
    "OracleDetails",
    # History and rounds
    "scan_history",
    "iter_submission_records",
    "RoundResolver",
    "parse_round_record",
    "parse_price_record",
    # Submission
    "SubmissionDecision",
    "evaluate",
    "PriceSubmitter",
    "build_push_price_offer",
    # Reconciliation
    "ObservationReconciler",
]
