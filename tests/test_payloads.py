"""Tests for ig_mcp.common payload helpers and status classification."""

import pytest

from ig_mcp.common import classify_status, mask_secrets, pick, strip_none
from ig_mcp.common.payloads import MASK
from ig_mcp.models import ErrorKind, IGResponse


class TestPayloadHelpers:
    def test_strip_none_keeps_falsy_values(self):
        assert strip_none({"a": None, "b": 0, "c": False, "d": ""}) == {"b": 0, "c": False, "d": ""}

    def test_mask_secrets_is_recursive_and_case_insensitive(self):
        masked = mask_secrets(
            {
                "identifier": "trader",
                "Password": "pw",
                "nested": [{"CST": "token", "size": 1}],
            }
        )
        assert masked == {
            "identifier": "trader",
            "Password": MASK,
            "nested": [{"CST": MASK, "size": 1}],
        }

    def test_mask_secrets_passes_scalars_through(self):
        assert mask_secrets("plain") == "plain"
        assert mask_secrets(None) is None

    def test_pick_tolerates_non_objects(self):
        assert pick({"a": 1}, "a") == 1
        assert pick({"a": None}, "a", "x") == "x"
        assert pick(["a"], "a", []) == []


class TestClassifyStatus:
    @pytest.mark.parametrize("status,kind", [
        (401, ErrorKind.AUTHENTICATION),
        (403, ErrorKind.AUTHENTICATION),
        (404, ErrorKind.NOT_FOUND),
        (429, ErrorKind.RATE_LIMITED),
        (500, ErrorKind.UNAVAILABLE),
        (503, ErrorKind.UNAVAILABLE),
        (400, ErrorKind.UPSTREAM),
        (409, ErrorKind.UPSTREAM),
    ])
    def test_mapping(self, status, kind):
        assert classify_status(status) is kind


class TestIGResponse:
    def test_ok_never_carries_none(self):
        assert IGResponse.ok(None, "done").data == {}

    def test_fail_carries_error(self):
        result = IGResponse.fail(ErrorKind.UPSTREAM, "CODE", "text", "friendly")
        assert result.success is False
        assert result.data is None
        assert result.error.to_dict() == {"errorCode": "CODE", "errorMessage": "text"}
