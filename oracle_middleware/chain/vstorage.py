"""
VStorage reader for Agoric published chain state.

Reads the chain's virtual storage through the Tendermint RPC `abci_query`
endpoint. Streamed keys (price feeds, smart wallets) hold a stream cell:
`{"blockHeight": "...", "values": [capdata, ...]}`; earlier cells are reached
by querying the same key at `blockHeight - 1`.

Features:
- Lazy reverse walk over a key's history, one cell at a time
- Transport retries with exponential backoff (tenacity)
- Decoding failures raised as ParseError, never retried

Example:
    client = VStorageClient("http://localhost:26657")
    raw = client.read_latest_round_record("ATOM-USD")
    for update in client.read_submission_history("agoric1..."):
        ...
"""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .base import LedgerReader, ParseError, PurseBalance, TransportError
from .capdata import BoardRef, decode

logger = logging.getLogger(__name__)

# API timeout in seconds
API_TIMEOUT = 10.0

# Retry configuration
MAX_RETRY_ATTEMPTS = 3
RETRY_MIN_WAIT = 0.5  # seconds
RETRY_MAX_WAIT = 4.0  # seconds


@dataclass
class StreamCell:
    """A vstorage stream cell: values appended at one block height."""

    block_height: Optional[int]
    values: list[str]


def price_feed_path(feed: str) -> str:
    return f"published.priceFeed.{feed}_price_feed"


def round_path(feed: str) -> str:
    return f"{price_feed_path(feed)}.latestRound"


def wallet_path(oracle: str) -> str:
    return f"published.wallet.{oracle}"


def current_wallet_path(oracle: str) -> str:
    return f"{wallet_path(oracle)}.current"


INSTANCE_NAMES_PATH = "published.agoricNames.instance"


class VStorageClient(LedgerReader):
    """
    Ledger reader backed by vstorage over the RPC endpoint.

    Attributes:
        rpc_url: Tendermint RPC base URL.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = API_TIMEOUT,
        session: Optional[requests.Session] = None,
        max_attempts: int = MAX_RETRY_ATTEMPTS,
        retry_min_wait: float = RETRY_MIN_WAIT,
        retry_max_wait: float = RETRY_MAX_WAIT,
    ):
        self.rpc_url = rpc_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait
        self._session = session or requests.Session()

    def _query(self, params: dict[str, str]) -> dict:
        """
        Call `abci_query` with transport retries.

        Raises:
            TransportError: If the endpoint stays unreachable.
            ParseError: If the response is not JSON.
        """

        @retry(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self.retry_min_wait,
                max=self.retry_max_wait,
            ),
            retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
            reraise=True,
        )
        def _execute_with_retry() -> dict:
            response = self._session.get(
                f"{self.rpc_url}/abci_query", params=params, timeout=self.timeout
            )
            response.raise_for_status()
            try:
                return response.json()
            except ValueError as e:
                raise ParseError(f"abci_query returned invalid JSON: {e}") from e

        try:
            return _execute_with_retry()
        except requests.RequestException as e:
            logger.error(f"abci_query {params.get('path')} failed: {e}")
            raise TransportError(f"RPC request to {self.rpc_url} failed: {e}") from e

    def read(self, path: str, height: Optional[int] = None) -> Optional[str]:
        """
        Read the raw value stored at a vstorage path.

        Args:
            path: Dotted vstorage key.
            height: Block height to read at, or None for the latest.

        Returns:
            The stored string, or None if nothing is stored.
        """
        params = {"path": f'"/custom/vstorage/data/{path}"'}
        if height is not None:
            params["height"] = str(height)

        data = self._query(params)
        try:
            response = data["result"]["response"]
        except (KeyError, TypeError) as e:
            raise ParseError(f"Unexpected abci_query response for {path}") from e

        code = int(response.get("code") or 0)
        if code != 0:
            raise ParseError(
                f"abci_query for {path} failed with code {code}: {response.get('log', '')}"
            )

        raw = response.get("value")
        if not raw:
            return None

        try:
            payload = json.loads(base64.b64decode(raw))
        except ValueError as e:
            raise ParseError(f"Could not decode vstorage value at {path}: {e}") from e

        if not isinstance(payload, dict):
            raise ParseError(f"Unexpected vstorage payload at {path}")
        return payload.get("value") or None

    def read_cell(self, path: str, height: Optional[int] = None) -> Optional[StreamCell]:
        """Read the stream cell at a path (a plain value becomes a one-value cell)."""
        value = self.read(path, height)
        if value is None:
            return None

        try:
            cell = json.loads(value)
        except json.JSONDecodeError as e:
            raise ParseError(f"Stream cell at {path} is not valid JSON: {e}") from e

        if isinstance(cell, dict) and isinstance(cell.get("values"), list):
            block_height = cell.get("blockHeight")
            return StreamCell(
                block_height=int(block_height) if block_height is not None else None,
                values=cell["values"],
            )
        return StreamCell(block_height=None, values=[value])

    def read_latest(self, path: str) -> str:
        """
        Read the newest value published at a path.

        Raises:
            ParseError: If nothing has been published there.
        """
        cell = self.read_cell(path)
        if cell is None or not cell.values:
            raise ParseError(f"No data published at {path}")
        return cell.values[-1]

    def iter_reverse(self, path: str) -> Iterator[str]:
        """
        Walk every value ever published at a path, newest first.

        Cells are fetched one at a time as the iterator is consumed.
        """
        height: Optional[int] = None
        previous_height: Optional[int] = None

        while True:
            cell = self.read_cell(path, height)
            if cell is None:
                return
            if (
                previous_height is not None
                and cell.block_height is not None
                and cell.block_height >= previous_height
            ):
                return

            for value in reversed(cell.values):
                yield value

            if cell.block_height is None or cell.block_height <= 1:
                return
            previous_height = cell.block_height
            height = cell.block_height - 1

    def read_latest_round_record(self, feed: str) -> str:
        return self.read_latest(round_path(feed))

    def read_latest_price_record(self, feed: str) -> str:
        return self.read_latest(price_feed_path(feed))

    def read_submission_history(self, oracle: str) -> Iterator[dict]:
        for value in self.iter_reverse(wallet_path(oracle)):
            update = decode(value)
            if isinstance(update, dict):
                yield update

    def read_current_wallet(self, oracle: str) -> dict[str, Any]:
        current = decode(self.read_latest(current_wallet_path(oracle)))
        if not isinstance(current, dict):
            raise ParseError(f"Wallet record for {oracle} is not a record")
        return current

    def read_balances(self, oracle: str) -> list[PurseBalance]:
        balances = []
        for purse in self.read_current_wallet(oracle).get("purses") or []:
            balance = purse.get("balance") or {}
            brand = balance.get("brand") or purse.get("brand")
            value = balance.get("value")

            # Invitation purses hold sets of invitations, not amounts
            if not isinstance(value, int) or isinstance(value, bool):
                continue

            name = brand.brand_name if isinstance(brand, BoardRef) else str(brand)
            balances.append(PurseBalance(brand=name, value=value))
        return balances

    def read_instance_names(self) -> list:
        entries = decode(self.read_latest(INSTANCE_NAMES_PATH))
        if not isinstance(entries, list):
            raise ParseError("agoricNames instance record is not a list")
        return entries
