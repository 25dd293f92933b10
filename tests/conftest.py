"""
Shared fixtures.

IMPORTANT: All tests use fakes/mocks - no RPC calls and no CLI invocations.
"""

import pytest

from oracle_middleware.config import MiddlewareConfig

from .helpers import (
    ATOM_INVITATION,
    ORACLE,
    OSMO_INVITATION,
    OTHER_ORACLE,
    FakeJobs,
    FakeLedger,
    FakeRegistry,
)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def registry():
    return FakeRegistry(
        {
            ORACLE: {"ATOM-USD": ATOM_INVITATION, "OSMO-USD": OSMO_INVITATION},
            OTHER_ORACLE: {"ATOM-USD": 2001},
        }
    )


@pytest.fixture
def jobs():
    return FakeJobs()


@pytest.fixture
def middleware_config(tmp_path):
    return MiddlewareConfig(
        agoric_rpc="http://localhost:26657",
        from_address=ORACLE,
        max_retries=3,
        check_interval_seconds=1,
        history_scan_limit=5,
        db_file=tmp_path / "database.db",
    )
