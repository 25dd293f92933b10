"""
Tests for observation reconciliation.

IMPORTANT: The metrics sink is mocked.
"""

from unittest.mock import MagicMock

import pytest

from oracle_middleware.chain.base import MetricsSink, PurseBalance, TransportError
from oracle_middleware.oracle.models import FeedObservation, OracleDetails, OracleObservationState
from oracle_middleware.oracle.reconcile import ObservationReconciler
from oracle_middleware.oracle.rounds import RoundResolver

from .helpers import ATOM_INVITATION, ORACLE, OSMO_INVITATION, offer_update, price_capdata

DETAILS = OracleDetails(
    oracle_name="Oracle 1",
    feeds={ATOM_INVITATION: "ATOM-USD", OSMO_INVITATION: "OSMO-USD"},
)
AMOUNTS_IN = {"ATOM-USD": 1_000_000, "OSMO-USD": 1_000_000}


@pytest.fixture
def metrics():
    return MagicMock(spec=MetricsSink)


@pytest.fixture
def reconciler(ledger, registry, metrics):
    ledger.prices["ATOM-USD"] = price_capdata(1_000_000, 9_400_000)
    ledger.prices["OSMO-USD"] = price_capdata(1_000_000, 500_000)
    resolver = RoundResolver(ledger, registry, oracle=ORACLE)
    return ObservationReconciler(ledger, resolver, metrics, history_scan_limit=10)


def reconcile(reconciler, state):
    return reconciler.reconcile(ORACLE, DETAILS, state, AMOUNTS_IN)


# =============================================================================
# Test Observations
# =============================================================================


class TestReconcile:
    """Tests for a single pass."""

    def test_first_pass(self, reconciler, ledger, metrics):
        ledger.publish_offer(ORACLE, offer_update(101, 10, unit_price=9_450_000))
        ledger.publish_offer(ORACLE, offer_update(102, 7, unit_price=510_000, previous_offer=OSMO_INVITATION))

        state = reconcile(reconciler, OracleObservationState.empty())

        assert state.last_submission_id == 102
        assert state.values["ATOM-USD"] == FeedObservation(price=9.45, id=101, round=10)
        assert state.values["OSMO-USD"] == FeedObservation(price=0.51, id=102, round=7)
        assert metrics.record_observation.call_count == 2

    def test_metrics_arguments(self, reconciler, ledger, metrics):
        ledger.publish_offer(ORACLE, offer_update(101, 10, unit_price=9_450_000))

        reconcile(reconciler, OracleObservationState.empty())

        metrics.record_observation.assert_called_once_with(
            "Oracle 1", ORACLE, "ATOM-USD", 9.45, 101, pytest.approx(9.4), 10
        )

    def test_idempotent(self, reconciler, ledger, metrics):
        ledger.publish_offer(ORACLE, offer_update(101, 10))
        state = reconcile(reconciler, OracleObservationState.empty())
        metrics.reset_mock()

        again = reconcile(reconciler, state)

        assert again is state
        metrics.record_observation.assert_not_called()

    def test_only_newer_offers_processed(self, reconciler, ledger, metrics):
        for offer_id, round_id, invitation in [
            (95, 1, ATOM_INVITATION),
            (98, 2, ATOM_INVITATION),
            (102, 5, OSMO_INVITATION),
            (105, 3, ATOM_INVITATION),
        ]:
            ledger.publish_offer(ORACLE, offer_update(offer_id, round_id, previous_offer=invitation))
        prior = OracleObservationState(last_submission_id=100)

        state = reconcile(reconciler, prior)

        processed = sorted(c[0][4] for c in metrics.record_observation.call_args_list)
        assert processed == [102, 105]
        assert state.last_submission_id == 105

    def test_prior_state_not_mutated(self, reconciler, ledger):
        observation = FeedObservation(price=9.0, id=50, round=1)
        prior = OracleObservationState(last_submission_id=50, values={"ATOM-USD": observation})
        ledger.publish_offer(ORACLE, offer_update(101, 2))

        state = reconcile(reconciler, prior)

        assert state is not prior
        assert prior.last_submission_id == 50
        assert prior.values == {"ATOM-USD": observation}
        assert state.values["ATOM-USD"].round == 2

    def test_rounds_never_go_back(self, reconciler, ledger):
        prior = OracleObservationState(
            last_submission_id=50,
            values={"ATOM-USD": FeedObservation(price=9.0, id=50, round=10)},
        )
        ledger.publish_offer(ORACLE, offer_update(101, 9))

        state = reconcile(reconciler, prior)

        assert state is prior
        assert state.values["ATOM-USD"].round == 10

    def test_newest_per_feed_wins(self, reconciler, ledger):
        ledger.publish_offer(ORACLE, offer_update(101, 10, unit_price=9_000_000))
        ledger.publish_offer(ORACLE, offer_update(102, 11, unit_price=9_500_000))

        state = reconcile(reconciler, OracleObservationState.empty())

        assert state.values["ATOM-USD"].round == 11
        assert state.values["ATOM-USD"].price == 9.5

    def test_skips_unusable_offers(self, reconciler, ledger, metrics):
        ledger.publish_offer(ORACLE, offer_update(101, 10, error="Error: rejected"))
        ledger.publish_offer(ORACLE, offer_update(102, 10, previous_offer=9999))
        ledger.publish_offer(ORACLE, offer_update(103, None, maker="makeVoteInvitation"))

        state = reconcile(reconciler, OracleObservationState.empty())

        assert state.last_submission_id == 0
        metrics.record_observation.assert_not_called()

    def test_missing_amount_in(self, reconciler, ledger, metrics):
        ledger.publish_offer(ORACLE, offer_update(101, 10))

        state = reconciler.reconcile(ORACLE, DETAILS, OracleObservationState.empty(), {})

        assert state.values == {}
        metrics.record_observation.assert_not_called()

    def test_unreadable_aggregated_price(self, reconciler, ledger, metrics):
        del ledger.prices["ATOM-USD"]
        ledger.publish_offer(ORACLE, offer_update(101, 10))

        reconcile(reconciler, OracleObservationState.empty())

        assert metrics.record_observation.call_args[0][5] == -1.0

    def test_unreachable_aggregated_price(self, reconciler, ledger, metrics):
        reconciler.resolver.query_price = MagicMock(side_effect=TransportError("rpc down"))
        ledger.publish_offer(ORACLE, offer_update(101, 10))

        state = reconcile(reconciler, OracleObservationState.empty())

        assert state.last_submission_id == 101
        assert state.values["ATOM-USD"].round == 10
        assert metrics.record_observation.call_args[0][5] == -1.0


# =============================================================================
# Test Balances
# =============================================================================


class TestBalances:
    def test_monitored_brands_only(self, reconciler, ledger, metrics):
        ledger.balances[ORACLE] = [
            PurseBalance("BLD", 25_000_000),
            PurseBalance("IST", 500),
            PurseBalance("ATOM", 7),
        ]

        reconcile(reconciler, OracleObservationState.empty())

        recorded = {c[0][2]: c[0][3] for c in metrics.record_balance.call_args_list}
        assert recorded == {"BLD": 25_000_000.0, "IST": 500.0}

    def test_balances_recorded_without_new_offers(self, reconciler, ledger, metrics):
        ledger.balances[ORACLE] = [PurseBalance("BLD", 1)]

        state = OracleObservationState.empty()
        assert reconcile(reconciler, state) is state
        metrics.record_balance.assert_called_once_with("Oracle 1", ORACLE, "BLD", 1.0)
