"""
Unit tests for the matrix cursor codec.

Cursors must resume the exact scan that produced them, and anything else
(garbage, another mode, another search field) must decode to None.
"""
import base64
import json

import pytest

from backend.core.matrix.cursor import decode_cursor, encode_cursor
from backend.core.matrix.models import ScanPosition
from backend.core.matrix.planner import build_scan_spec

BY_KEY = build_scan_spec("")
EXACT = build_scan_spec("008421372232")
TOKEN = build_scan_spec("200ml")
PREFIX_NAME = build_scan_spec("coke")
PREFIX_SKU = build_scan_spec("coke", search_field="sku")


def _raw(payload) -> str:
    return base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


class TestRoundTrip:
    def test_by_key(self):
        position = ScanPosition(gtin="00012345")
        assert decode_cursor(encode_cursor(BY_KEY, position), BY_KEY) == position

    def test_exact_key(self):
        position = ScanPosition(gtin="008421372232")
        assert decode_cursor(encode_cursor(EXACT, position), EXACT) == position

    def test_prefix(self):
        position = ScanPosition(gtin="00012345", key="cokezero12pk")
        assert decode_cursor(encode_cursor(PREFIX_NAME, position), PREFIX_NAME) == position

    def test_token(self):
        position = ScanPosition(gtin="00012345", key=2.5)
        assert decode_cursor(encode_cursor(TOKEN, position), TOKEN) == position

    def test_cursor_is_opaque_url_safe(self):
        token = encode_cursor(PREFIX_NAME, ScanPosition(gtin="1", key="a?b/c"))
        assert set(token) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")


class TestFailClosed:
    @pytest.mark.parametrize("token", [None, ""])
    def test_absent(self, token):
        assert decode_cursor(token, BY_KEY) is None

    @pytest.mark.parametrize("token", ["not-a-cursor!!", "%%%", "é", "AAAA", _raw([1, 2, 3]), _raw("plain")])
    def test_garbage(self, token):
        assert decode_cursor(token, PREFIX_NAME) is None

    def test_legacy_bare_gtin_rejected(self):
        assert decode_cursor("00012345", BY_KEY) is None

    @pytest.mark.parametrize("produced,replayed", [
        (BY_KEY, PREFIX_NAME),
        (BY_KEY, TOKEN),
        (TOKEN, BY_KEY),
        (PREFIX_NAME, TOKEN),
        (EXACT, BY_KEY),
    ])
    def test_cross_mode(self, produced, replayed):
        token = encode_cursor(produced, ScanPosition(gtin="1"))
        assert decode_cursor(token, replayed) is None

    def test_prefix_other_search_field(self):
        token = encode_cursor(PREFIX_NAME, ScanPosition(gtin="1", key="coke"))
        assert decode_cursor(token, PREFIX_SKU) is None

    def test_missing_gtin(self):
        assert decode_cursor(_raw({"m": "by_key"}), BY_KEY) is None
        assert decode_cursor(_raw({"m": "by_key", "id": 7}), BY_KEY) is None

    def test_prefix_key_must_be_string(self):
        assert decode_cursor(_raw({"m": "prefix", "f": "name_key", "k": 5, "id": "1"}), PREFIX_NAME) is None

    @pytest.mark.parametrize("spread", ["abc", None, True, "nan", "inf"])
    def test_token_spread_must_be_finite_number(self, spread):
        assert decode_cursor(_raw({"m": "token", "s": spread, "id": "1"}), TOKEN) is None

    def test_token_spread_numeric_string_accepted(self):
        position = decode_cursor(_raw({"m": "token", "s": "1.5", "id": "1"}), TOKEN)
        assert position == ScanPosition(gtin="1", key=1.5)
