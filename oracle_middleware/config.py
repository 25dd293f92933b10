"""Configuration management for the Agoric oracle middleware."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union
from urllib.parse import urlparse

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

# Data directory
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"

# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_AGORIC_RPC = "http://0.0.0.0:26657"
DEFAULT_CHAIN_ID = "agoriclocal"

# Retry loop: attempts per job and seconds to wait before re-checking the chain
DEFAULT_SUBMIT_RETRIES = 3
DEFAULT_SEND_CHECK_INTERVAL = 45

# Distinct wallet offers inspected when looking for a submission
DEFAULT_HISTORY_SCAN_LIMIT = 5

DEFAULT_DB_FILE = DATA_DIR / "database.db"
DEFAULT_ORACLE_FILE = "config/oracles.json"
DEFAULT_MONITOR_STATE_FILE = DATA_DIR / "monitor_state.json"
DEFAULT_MONITOR_POLL_INTERVAL = 60
DEFAULT_MONITOR_PORT = 3001


class ConfigError(ValueError):
    """Raised when an environment variable has an invalid value."""

    pass


def _int_var(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"${name} should be a valid number")


def _resolve(path: Union[str, Path]) -> Path:
    candidate = Path(path)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _check_url(name: str, url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"${name} should be a valid http(s) URL")


def _check_positive(name: str, value: int) -> None:
    if value <= 0:
        raise ConfigError(f"${name} should be a positive number")


@dataclass(frozen=True)
class MiddlewareConfig:
    """
    Settings for price submission.

    Attributes:
        agoric_rpc: Tendermint RPC endpoint of the Agoric node.
        from_address: Oracle address submitting prices.
        max_retries: Submission attempts per job.
        check_interval_seconds: Wait between an attempt and its confirmation check.
        history_scan_limit: Distinct wallet offers scanned per lookup.
        chain_id: Chain id passed to the wallet CLI.
        agd_bin: Wallet CLI executable.
        keyring_backend: Keyring backend used for signing.
        keyring_home: Keyring home directory (empty for the CLI default).
        db_file: SQLite file holding job state.
    """

    agoric_rpc: str = DEFAULT_AGORIC_RPC
    from_address: str = ""
    max_retries: int = DEFAULT_SUBMIT_RETRIES
    check_interval_seconds: int = DEFAULT_SEND_CHECK_INTERVAL
    history_scan_limit: int = DEFAULT_HISTORY_SCAN_LIMIT
    chain_id: str = DEFAULT_CHAIN_ID
    agd_bin: str = "agd"
    keyring_backend: str = "test"
    keyring_home: str = ""
    db_file: Path = _resolve(DEFAULT_DB_FILE)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "MiddlewareConfig":
        """Build and validate the config from environment variables."""
        env = os.environ if env is None else env
        config = cls(
            agoric_rpc=env.get("AGORIC_RPC", DEFAULT_AGORIC_RPC),
            from_address=env.get("FROM", ""),
            max_retries=_int_var(env, "SUBMIT_RETRIES", DEFAULT_SUBMIT_RETRIES),
            check_interval_seconds=_int_var(env, "SEND_CHECK_INTERVAL", DEFAULT_SEND_CHECK_INTERVAL),
            history_scan_limit=_int_var(env, "HISTORY_SCAN_LIMIT", DEFAULT_HISTORY_SCAN_LIMIT),
            chain_id=env.get("CHAIN_ID", DEFAULT_CHAIN_ID),
            agd_bin=env.get("AGD_BIN", "agd"),
            keyring_backend=env.get("KEYRING_BACKEND", "test"),
            keyring_home=env.get("KEYRING_HOME", ""),
            db_file=_resolve(env.get("DB_FILE") or DEFAULT_DB_FILE),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """
        Validate settings.

        Raises:
            ConfigError: On the first invalid setting.
        """
        _check_url("AGORIC_RPC", self.agoric_rpc)
        if not self.from_address:
            raise ConfigError("$FROM is required")
        _check_positive("SUBMIT_RETRIES", self.max_retries)
        _check_positive("SEND_CHECK_INTERVAL", self.check_interval_seconds)
        _check_positive("HISTORY_SCAN_LIMIT", self.history_scan_limit)
        if not self.chain_id:
            raise ConfigError("$CHAIN_ID cannot be empty")

    @property
    def max_wait_seconds(self) -> int:
        """Upper bound on the time one submission job can spend waiting."""
        return self.max_retries * self.check_interval_seconds


@dataclass(frozen=True)
class MonitorConfig:
    """Settings for the oracle monitor."""

    agoric_rpc: str = DEFAULT_AGORIC_RPC
    oracle_file: Path = _resolve(DEFAULT_ORACLE_FILE)
    state_file: Path = _resolve(DEFAULT_MONITOR_STATE_FILE)
    poll_interval_seconds: int = DEFAULT_MONITOR_POLL_INTERVAL
    metrics_port: int = DEFAULT_MONITOR_PORT
    history_scan_limit: int = DEFAULT_HISTORY_SCAN_LIMIT

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "MonitorConfig":
        env = os.environ if env is None else env
        config = cls(
            agoric_rpc=env.get("AGORIC_RPC", DEFAULT_AGORIC_RPC),
            oracle_file=_resolve(env.get("ORACLE_FILE") or DEFAULT_ORACLE_FILE),
            state_file=_resolve(env.get("MONITOR_STATE_FILE") or DEFAULT_MONITOR_STATE_FILE),
            poll_interval_seconds=_int_var(env, "MONITOR_POLL_INTERVAL", DEFAULT_MONITOR_POLL_INTERVAL),
            metrics_port=_int_var(env, "MONITOR_PORT", DEFAULT_MONITOR_PORT),
            history_scan_limit=_int_var(env, "HISTORY_SCAN_LIMIT", DEFAULT_HISTORY_SCAN_LIMIT),
        )
        config.validate()
        return config

    def validate(self) -> None:
        _check_url("AGORIC_RPC", self.agoric_rpc)
        _check_positive("MONITOR_POLL_INTERVAL", self.poll_interval_seconds)
        _check_positive("MONITOR_PORT", self.metrics_port)
        _check_positive("HISTORY_SCAN_LIMIT", self.history_scan_limit)
