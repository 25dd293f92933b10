"""
Smart wallet access: broadcasting wallet actions and resolving invitations.

Wallet actions are broadcast with the `agd` CLI, which owns key handling and
signing. Invitation ids are read from the wallet's published current state.
"""

import json
import logging
import subprocess
from typing import Optional

from .base import (
    FeedRegistry,
    Keyring,
    LedgerReader,
    LedgerWriter,
    ParseError,
    TransactionError,
)
from .capdata import BoardRef

logger = logging.getLogger(__name__)

# Seconds to wait for the CLI to broadcast
CLI_TIMEOUT = 60.0

PRICE_FEED_SUFFIX = " price feed"


class AgdWalletWriter(LedgerWriter):
    """
    Ledger writer that runs `agd tx swingset wallet-action`.

    Example:
        writer = AgdWalletWriter("http://localhost:26657", chain_id="agoriclocal")
        writer.submit_action(capdata, "agoric1...", Keyring(backend="test"))
    """

    def __init__(
        self,
        rpc_url: str,
        chain_id: str,
        agd_bin: str = "agd",
        timeout: float = CLI_TIMEOUT,
    ):
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.agd_bin = agd_bin
        self.timeout = timeout

    def build_command(self, payload: dict, from_oracle: str, keyring: Keyring) -> list[str]:
        """Build the CLI argument list for a wallet action."""
        command = [
            self.agd_bin,
            f"--node={self.rpc_url}",
            f"--chain-id={self.chain_id}",
            f"--from={from_oracle}",
            f"--keyring-backend={keyring.backend}",
        ]
        if keyring.home:
            command.append(f"--home={keyring.home}")
        command += [
            "tx",
            "swingset",
            "wallet-action",
            "--allow-spend",
            json.dumps(payload, separators=(",", ":")),
            "--yes",
        ]
        return command

    def submit_action(self, payload: dict, from_oracle: str, keyring: Keyring) -> None:
        command = self.build_command(payload, from_oracle, keyring)
        logger.debug(f"Broadcasting wallet action from {from_oracle}")

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise TransactionError(f"Failed to run {self.agd_bin}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            logger.error(f"Wallet action from {from_oracle} failed: {stderr}")
            raise TransactionError(
                f"wallet-action exited with {result.returncode}: {stderr}"
            )


def _feed_name(instance_name: str) -> str:
    """'ATOM-USD price feed' -> 'ATOM-USD'."""
    return instance_name.split(PRICE_FEED_SUFFIX)[0]


def _used_invitations(current: dict) -> list[tuple]:
    used = current.get("offerToUsedInvitation") or {}
    if isinstance(used, dict):
        return list(used.items())
    if isinstance(used, list):
        return [tuple(entry) for entry in used if isinstance(entry, (list, tuple)) and len(entry) == 2]
    raise ParseError("offerToUsedInvitation has an unexpected shape")


class VStorageFeedRegistry(FeedRegistry):
    """
    Resolves feed invitations from published wallet state.

    Every call reads live chain state; nothing is cached.
    """

    def __init__(self, reader: LedgerReader):
        self.reader = reader

    def instance_boards(self) -> dict[str, str]:
        """Map board id to agoricNames instance name."""
        boards = {}
        for entry in self.reader.read_instance_names():
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                continue
            name, ref = entry
            if isinstance(ref, BoardRef) and ref.board_id:
                boards[ref.board_id] = name
        return boards

    def resolve_invitations(self, oracle: str) -> dict[str, int]:
        boards = self.instance_boards()
        current = self.reader.read_current_wallet(oracle)

        invitations: dict[str, int] = {}
        for offer_id, amount in _used_invitations(current):
            details = (amount or {}).get("value") or []
            if not details or not isinstance(details[0], dict):
                continue

            instance: Optional[BoardRef] = details[0].get("instance")
            if not isinstance(instance, BoardRef) or instance.board_id not in boards:
                logger.debug(f"Skipping invitation {offer_id}: unknown instance")
                continue

            try:
                invitations[_feed_name(boards[instance.board_id])] = int(offer_id)
            except (TypeError, ValueError) as e:
                raise ParseError(f"Invalid invitation id {offer_id!r}") from e

        return invitations
