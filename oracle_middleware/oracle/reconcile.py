"""
Incremental reconciliation of an oracle's submitted prices.

Each pass reads the oracle's recent offers newest first and processes only
those newer than the cursor (`last_submission_id`) left by the previous
pass. Accepted price pushes update the per-feed observation and are
reported to the metrics sink together with the feed's aggregated price.
Oracle balances for the network's staking and fee brands are reported on
every pass.
"""

import logging

from ..chain.base import ChainError, LedgerReader, MetricsSink
from ..config import DEFAULT_HISTORY_SCAN_LIMIT
from .history import iter_submission_records, scan_history
from .models import FeedObservation, OracleDetails, OracleObservationState
from .rounds import RoundResolver

logger = logging.getLogger(__name__)

# Brands whose balances are monitored
MONITORED_BRANDS = ("BLD", "IST")


class ObservationReconciler:
    """
    Brings an oracle's observation state up to date with the chain.

    Callers must not run two passes for the same oracle concurrently.
    """

    def __init__(
        self,
        reader: LedgerReader,
        resolver: RoundResolver,
        metrics: MetricsSink,
        history_scan_limit: int = DEFAULT_HISTORY_SCAN_LIMIT,
    ):
        self.reader = reader
        self.resolver = resolver
        self.metrics = metrics
        self.history_scan_limit = history_scan_limit

    def reconcile(
        self,
        oracle: str,
        details: OracleDetails,
        prior_state: OracleObservationState,
        amounts_in: dict[str, int],
    ) -> OracleObservationState:
        """
        Process offers made since the previous pass.

        Args:
            oracle: Oracle address.
            details: Oracle name and invitation id to feed mapping.
            prior_state: State returned by the previous pass; not modified.
            amounts_in: Amount in per feed, used to turn unit prices into prices.

        Returns:
            A new state if any observation changed, otherwise `prior_state`.
        """
        logger.info(f"Getting prices for {oracle} - {sorted(details.feeds.values())}")

        records = scan_history(
            iter_submission_records(self.reader.read_submission_history(oracle)),
            self.history_scan_limit,
        )
        balances = self.reader.read_balances(oracle)

        cutoff = prior_state.last_submission_id
        state = OracleObservationState(last_submission_id=cutoff, values=dict(prior_state.values))
        changed = False

        for record in records:
            # Everything from here on was handled by an earlier pass
            if record.id <= cutoff:
                break

            if not record.is_push_price or record.is_error:
                continue
            if record.target_round_id is None or record.unit_price is None:
                continue

            feed = details.feeds.get(record.prior_submission_id)
            if feed is None:
                logger.debug(f"Offer {record.id} uses unknown invitation {record.prior_submission_id}")
                continue

            if record.target_round_id <= state.last_round(feed):
                continue

            amount_in = amounts_in.get(feed)
            if not amount_in:
                logger.warning(f"No amountIn for {feed}, skipping offer {record.id}")
                continue

            price = record.unit_price / amount_in
            state.values[feed] = FeedObservation(price=price, id=record.id, round=record.target_round_id)
            state.last_submission_id = max(state.last_submission_id, record.id)
            changed = True

            self.metrics.record_observation(
                details.oracle_name,
                oracle,
                feed,
                price,
                record.id,
                self._actual_price(feed),
                record.target_round_id,
            )

        for balance in balances:
            if any(brand in balance.brand for brand in MONITORED_BRANDS):
                self.metrics.record_balance(
                    details.oracle_name, oracle, balance.brand, float(balance.value)
                )

        return state if changed else prior_state

    def _actual_price(self, feed: str) -> float:
        """Aggregated feed price, or -1 when the quote cannot be read."""
        try:
            return self.resolver.query_price(feed)
        except ChainError as e:
            logger.error(f"ERROR querying price: {feed}: {e}")
            return -1.0
