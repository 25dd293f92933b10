"""
Scanning of an oracle's offer history.

Wallet history is append-only and read newest first. An offer publishes
several statuses over its life, so the same id can appear many times; only
the most recent status of each id counts. History may be arbitrarily deep,
so scans are lazy and stop after a bounded number of distinct offers.
"""

from typing import Iterable, Iterator

from .models import SubmissionRecord


def iter_submission_records(updates: Iterable[dict]) -> Iterator[SubmissionRecord]:
    """Lazily turn decoded wallet updates into submission records."""
    for update in updates:
        record = SubmissionRecord.from_wallet_update(update)
        if record is not None:
            yield record


def scan_history(records: Iterable[SubmissionRecord], limit: int) -> list[SubmissionRecord]:
    """
    Collect the latest status of up to `limit` distinct offers.

    Walks `records` newest first. The first record seen for an id decides
    it: errored offers are dropped and their id is never accepted later.

    Args:
        records: Records ordered newest first; may be lazy and unbounded.
        limit: Maximum number of offers to return.

    Returns:
        Non-errored records, one per id, in walk order.
    """
    accepted: list[SubmissionRecord] = []
    if limit <= 0:
        return accepted

    visited: set[int] = set()
    for record in records:
        if record.id in visited:
            continue
        visited.add(record.id)

        if record.is_error:
            continue

        accepted.append(record)
        if len(accepted) >= limit:
            break

    return accepted
