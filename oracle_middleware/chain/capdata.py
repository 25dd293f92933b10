"""
CapData marshalling for Agoric vstorage records and wallet actions.

Published chain state is stored as CapData: a JSON object with a `body`
string and a `slots` list of board ids. Two body encodings are in use:

- smallcaps (body prefixed with '#'): bigints as '+N'/'-N', remotables as
  '$<slot>.<iface>', escaped strings as '!<text>', '#undefined' etc.
- legacy: special values as objects carrying an '@qclass' key.

Both are decoded here. Encoding always produces smallcaps.

Example:
    >>> decode({"body": '#{"roundId":"+5"}', "slots": []})
    {'roundId': 5}
    >>> serialize_action({"method": "executeOffer", "offer": {"id": 1}})
    {'body': '#{"method":"executeOffer","offer":{"id":1}}', 'slots': []}
"""

import json
import math
from dataclasses import dataclass
from typing import Any, Optional, Union

from .base import ParseError

SMALLCAPS_PREFIX = "#"

# Leading characters that make a smallcaps string special
_SPECIAL_CHARS = "!\"#$%&'()*+,-"


class BigInt(int):
    """Integer that marshals as a bigint rather than a JSON number."""

    pass


@dataclass(frozen=True)
class BoardRef:
    """
    Reference to an object published on the board.

    Attributes:
        board_id: Board id from the CapData slots (e.g., 'board0223').
        iface: Interface name (e.g., 'Alleged: BLD brand').
    """

    board_id: Optional[str]
    iface: str = ""

    @property
    def brand_name(self) -> str:
        """Brand keyword from the interface name ('Alleged: BLD brand' -> 'BLD')."""
        parts = self.iface.split(" ")
        return parts[1] if len(parts) > 1 else self.iface


def parse_capdata(raw: Union[str, dict]) -> dict:
    """
    Parse a serialized CapData record.

    Args:
        raw: CapData as a JSON string or an already-parsed dict.

    Returns:
        Dict with `body` (str) and `slots` (list).

    Raises:
        ParseError: If the input is not CapData.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(f"CapData is not valid JSON: {e}") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("body"), str):
        raise ParseError(f"Not a CapData record: {raw!r}")

    slots = raw.get("slots") or []
    if not isinstance(slots, list):
        raise ParseError("CapData slots must be a list")
    return {"body": raw["body"], "slots": slots}


def decode(raw: Union[str, dict]) -> Any:
    """
    Decode CapData into plain Python values.

    Bigints become ints, remotables become `BoardRef`, undefined becomes None.

    Raises:
        ParseError: If the body cannot be decoded.
    """
    capdata = parse_capdata(raw)
    body = capdata["body"]
    slots = capdata["slots"]

    smallcaps = body.startswith(SMALLCAPS_PREFIX)
    if smallcaps:
        body = body[len(SMALLCAPS_PREFIX):]

    try:
        encoded = json.loads(body)
    except json.JSONDecodeError as e:
        raise ParseError(f"CapData body is not valid JSON: {e}") from e

    refs: dict[int, BoardRef] = {}
    if smallcaps:
        return _decode_smallcaps(encoded, slots, refs)
    return _decode_legacy(encoded, slots, refs)


def _slot_ref(index: int, iface: str, slots: list, refs: dict[int, BoardRef]) -> BoardRef:
    if index in refs:
        return refs[index]
    if index < 0 or index >= len(slots):
        raise ParseError(f"Slot index {index} out of range ({len(slots)} slots)")
    ref = BoardRef(board_id=slots[index], iface=iface)
    refs[index] = ref
    return ref


def _decode_smallcaps(value: Any, slots: list, refs: dict[int, BoardRef]) -> Any:
    if isinstance(value, list):
        return [_decode_smallcaps(v, slots, refs) for v in value]

    if isinstance(value, dict):
        if "#tag" in value:
            return _decode_smallcaps(value.get("payload"), slots, refs)
        if "#error" in value:
            return {"name": value.get("name", "Error"), "message": value["#error"]}
        return {k: _decode_smallcaps(v, slots, refs) for k, v in value.items()}

    if not isinstance(value, str) or value == "":
        return value

    prefix, rest = value[0], value[1:]
    if prefix == "!":
        return rest
    if prefix in "+-":
        try:
            digits = int(rest)
        except ValueError as e:
            raise ParseError(f"Invalid bigint encoding: {value!r}") from e
        return digits if prefix == "+" else -digits
    if prefix in "$&":
        index_part, _, iface = rest.partition(".")
        try:
            index = int(index_part)
        except ValueError as e:
            raise ParseError(f"Invalid slot reference: {value!r}") from e
        return _slot_ref(index, iface, slots, refs)
    if prefix == "#":
        specials = {
            "undefined": None,
            "NaN": math.nan,
            "Infinity": math.inf,
            "-Infinity": -math.inf,
            "-0": -0.0,
        }
        if rest not in specials:
            raise ParseError(f"Unknown smallcaps special value: {value!r}")
        return specials[rest]
    if prefix == "%":
        return rest
    return value


def _decode_legacy(value: Any, slots: list, refs: dict[int, BoardRef]) -> Any:
    if isinstance(value, list):
        return [_decode_legacy(v, slots, refs) for v in value]

    if not isinstance(value, dict):
        return value

    qclass = value.get("@qclass")
    if qclass is None:
        return {k: _decode_legacy(v, slots, refs) for k, v in value.items()}

    if qclass == "bigint":
        try:
            return int(value["digits"])
        except (KeyError, ValueError) as e:
            raise ParseError(f"Invalid legacy bigint: {value!r}") from e
    if qclass == "slot":
        return _slot_ref(int(value.get("index", -1)), value.get("iface", ""), slots, refs)
    if qclass == "undefined":
        return None
    if qclass == "NaN":
        return math.nan
    if qclass == "Infinity":
        return math.inf
    if qclass == "-Infinity":
        return -math.inf
    if qclass == "error":
        return {"name": value.get("name", "Error"), "message": value.get("message", "")}
    if qclass == "tagged":
        return _decode_legacy(value.get("payload"), slots, refs)
    raise ParseError(f"Unsupported @qclass: {qclass}")


def _encode(value: Any, slots: list[str]) -> Any:
    if value is None:
        return "#undefined"
    if isinstance(value, bool):
        return value
    if isinstance(value, BigInt):
        return f"+{int(value)}" if value >= 0 else f"{int(value)}"
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value):
            return "#NaN"
        if math.isinf(value):
            return "#Infinity" if value > 0 else "#-Infinity"
        return value
    if isinstance(value, str):
        return f"!{value}" if value and value[0] in _SPECIAL_CHARS else value
    if isinstance(value, BoardRef):
        if value.board_id not in slots:
            slots.append(value.board_id)
        index = slots.index(value.board_id)
        return f"${index}.{value.iface}" if value.iface else f"${index}"
    if isinstance(value, (list, tuple)):
        return [_encode(v, slots) for v in value]
    if isinstance(value, dict):
        return {str(k): _encode(v, slots) for k, v in value.items()}
    raise TypeError(f"Cannot marshal value of type {type(value).__name__}")


def serialize_action(action: Any) -> dict:
    """
    Marshal a bridge action into smallcaps CapData.

    Args:
        action: Plain Python structure; use `BigInt` for bigint fields.

    Returns:
        Dict with `body` and `slots`, ready to be JSON-encoded for the wallet.
    """
    slots: list[str] = []
    encoded = _encode(action, slots)
    body = SMALLCAPS_PREFIX + json.dumps(encoded, separators=(",", ":"))
    return {"body": body, "slots": slots}
