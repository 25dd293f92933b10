"""
Tests for CapData decoding and smallcaps encoding.

Tests cover:
- Smallcaps bigints, remotables, escaped strings and special values
- Legacy @qclass records
- Malformed input
- Encoding of wallet actions
"""

import json
import math

import pytest

from oracle_middleware.chain.base import ParseError
from oracle_middleware.chain.capdata import (
    BigInt,
    BoardRef,
    decode,
    parse_capdata,
    serialize_action,
)


# =============================================================================
# Test Smallcaps Decoding
# =============================================================================


class TestSmallcapsDecode:
    """Tests for '#'-prefixed bodies."""

    def test_bigints(self):
        result = decode({"body": '#{"a":"+42","b":"-7"}', "slots": []})
        assert result == {"a": 42, "b": -7}

    def test_remotable_with_iface(self):
        result = decode({"body": '#{"brand":"$0.Alleged: BLD brand"}', "slots": ["board0566"]})
        assert result["brand"] == BoardRef("board0566", "Alleged: BLD brand")
        assert result["brand"].brand_name == "BLD"

    def test_repeated_remotable_reuses_iface(self):
        body = '#[{"brand":"$0.Alleged: IST brand"},{"brand":"$0"}]'
        result = decode({"body": body, "slots": ["board0257"]})
        assert result[1]["brand"] is result[0]["brand"]
        assert result[1]["brand"].iface == "Alleged: IST brand"

    def test_escaped_string(self):
        assert decode({"body": '#"!+not a number"', "slots": []}) == "+not a number"

    def test_plain_string(self):
        assert decode({"body": '#"agoric1abc"', "slots": []}) == "agoric1abc"

    def test_special_values(self):
        result = decode({"body": '#["#undefined","#Infinity","#-Infinity"]', "slots": []})
        assert result[0] is None
        assert result[1] == math.inf
        assert result[2] == -math.inf

    def test_nan(self):
        assert math.isnan(decode({"body": '#"#NaN"', "slots": []}))

    def test_tagged_payload(self):
        body = '#{"#tag":"copySet","payload":["+1","+2"]}'
        assert decode({"body": body, "slots": []}) == [1, 2]

    def test_error_record(self):
        body = '#{"#error":"boom","name":"TypeError"}'
        assert decode({"body": body, "slots": []}) == {"name": "TypeError", "message": "boom"}

    def test_from_json_string(self):
        raw = json.dumps({"body": '#{"roundId":"+5"}', "slots": []})
        assert decode(raw) == {"roundId": 5}

    def test_numbers_stay_numbers(self):
        assert decode({"body": '#{"id":1700000000000}', "slots": []}) == {"id": 1700000000000}


# =============================================================================
# Test Legacy Decoding
# =============================================================================


class TestLegacyDecode:
    """Tests for @qclass bodies."""

    def test_bigint(self):
        body = json.dumps({"roundId": {"@qclass": "bigint", "digits": "12"}})
        assert decode({"body": body, "slots": []}) == {"roundId": 12}

    def test_slot(self):
        body = json.dumps({"instance": {"@qclass": "slot", "index": 0, "iface": "Alleged: InstanceHandle"}})
        result = decode({"body": body, "slots": ["board00282"]})
        assert result["instance"].board_id == "board00282"

    def test_undefined(self):
        body = json.dumps({"x": {"@qclass": "undefined"}})
        assert decode({"body": body, "slots": []}) == {"x": None}

    def test_unknown_qclass(self):
        body = json.dumps({"x": {"@qclass": "hilbert"}})
        with pytest.raises(ParseError):
            decode({"body": body, "slots": []})


# =============================================================================
# Test Malformed Input
# =============================================================================


class TestMalformed:
    """Tests for inputs that must raise ParseError."""

    def test_not_json(self):
        with pytest.raises(ParseError):
            decode("not json at all")

    def test_missing_body(self):
        with pytest.raises(ParseError):
            parse_capdata({"slots": []})

    def test_body_not_json(self):
        with pytest.raises(ParseError):
            decode({"body": "#{broken", "slots": []})

    def test_slot_out_of_range(self):
        with pytest.raises(ParseError):
            decode({"body": '#"$3.Alleged: brand"', "slots": ["board01"]})

    def test_bad_bigint(self):
        with pytest.raises(ParseError):
            decode({"body": '#"+abc"', "slots": []})

    def test_unknown_special(self):
        with pytest.raises(ParseError):
            decode({"body": '#"#whatever"', "slots": []})


# =============================================================================
# Test Encoding
# =============================================================================


class TestSerializeAction:
    """Tests for smallcaps encoding of wallet actions."""

    def test_push_price_action(self):
        action = {
            "method": "executeOffer",
            "offer": {
                "id": 1700000000000,
                "invitationSpec": {
                    "source": "continuing",
                    "previousOffer": 1001,
                    "invitationMakerName": "PushPrice",
                    "invitationArgs": [{"unitPrice": BigInt(9450000), "roundId": 42}],
                },
                "proposal": {},
            },
        }
        result = serialize_action(action)

        assert result["slots"] == []
        assert result["body"].startswith("#")
        body = json.loads(result["body"][1:])
        args = body["offer"]["invitationSpec"]["invitationArgs"][0]
        assert args == {"unitPrice": "+9450000", "roundId": 42}
        assert body["offer"]["id"] == 1700000000000

    def test_escapes_special_strings(self):
        body = json.loads(serialize_action({"s": "+1", "t": "plain"})["body"][1:])
        assert body == {"s": "!+1", "t": "plain"}

    def test_undefined_and_negative_bigint(self):
        body = json.loads(serialize_action([None, BigInt(-3)])["body"][1:])
        assert body == ["#undefined", "-3"]

    def test_board_refs_become_slots(self):
        ref = BoardRef("board0566", "Alleged: BLD brand")
        result = serialize_action({"a": ref, "b": ref})
        assert result["slots"] == ["board0566"]
        assert json.loads(result["body"][1:]) == {
            "a": "$0.Alleged: BLD brand",
            "b": "$0.Alleged: BLD brand",
        }

    def test_decodes_back(self):
        result = serialize_action({"unitPrice": BigInt(5), "name": "!bang"})
        assert decode(result) == {"unitPrice": 5, "name": "!bang"}

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            serialize_action({"x": object()})
