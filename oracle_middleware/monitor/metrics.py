"""
Prometheus metrics for monitored oracles.

Gauges are registered on a dedicated `CollectorRegistry` so several
instances (e.g., in tests) never collide on the default registry.

Typical usage:

    metrics = MonitorMetrics()
    start_http_server(3001, registry=metrics.registry)
    metrics.record_observation("Oracle 1", "agoric1...", "ATOM-USD", 9.5, id, 9.4, 42)
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Gauge, generate_latest

from ..chain.base import MetricsSink

logger = logging.getLogger(__name__)

# Default label carried by every series
APP_NAME = "agoric-cl-oracle-monitor"

ORACLE_LABELS = ["app", "oracleName", "oracle", "feed"]


def price_deviation(value: float, actual_price: float) -> float:
    """Deviation of a submitted value from the aggregated price, in percent."""
    return abs((value - actual_price) / actual_price) * 100


class MonitorMetrics(MetricsSink):
    """Gauges describing oracle submissions and balances."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.oracle_submission = Gauge(
            "oracle_latest_value",
            "Latest value submitted by oracle",
            ORACLE_LABELS,
            registry=self.registry,
        )
        self.oracle_last_epoch = Gauge(
            "oracle_last_observation",
            "Last epoch in which oracle made an observation",
            ORACLE_LABELS,
            registry=self.registry,
        )
        self.oracle_last_round = Gauge(
            "oracle_last_round",
            "Last round in which oracle made an observation",
            ORACLE_LABELS,
            registry=self.registry,
        )
        self.oracle_deviation = Gauge(
            "oracle_price_deviation",
            "Latest price deviation by oracle",
            ORACLE_LABELS,
            registry=self.registry,
        )
        self.oracle_balance = Gauge(
            "oracle_balance",
            "Oracle balances",
            ["app", "oracleName", "oracle", "brand"],
            registry=self.registry,
        )
        self.actual_price = Gauge(
            "actual_price",
            "Actual last price from feed",
            ["app", "feed"],
            registry=self.registry,
        )

    def record_observation(
        self,
        oracle_name: str,
        oracle: str,
        feed: str,
        price: float,
        submission_id: int,
        actual_price: float,
        round_id: int,
    ) -> None:
        self.oracle_submission.labels(APP_NAME, oracle_name, oracle, feed).set(price)
        self.oracle_last_epoch.labels(APP_NAME, oracle_name, oracle, feed).set(submission_id)
        self.oracle_last_round.labels(APP_NAME, oracle_name, oracle, feed).set(round_id)

        # A non-positive price means the feed quote could not be read
        if actual_price > 0:
            self.oracle_deviation.labels(APP_NAME, oracle_name, oracle, feed).set(
                price_deviation(price, actual_price)
            )
            self.actual_price.labels(APP_NAME, feed).set(actual_price)
        else:
            logger.warning(f"No aggregated price for {feed}, deviation not updated")

    def record_balance(self, oracle_name: str, oracle: str, brand: str, value: float) -> None:
        self.oracle_balance.labels(APP_NAME, oracle_name, oracle, brand).set(value)

    def render(self) -> bytes:
        """Metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry)
