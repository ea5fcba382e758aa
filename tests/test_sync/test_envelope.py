"""Tests for upstream envelope normalization and result objects."""
import pytest

from app.services.sync.envelope import (
    Ok,
    Err,
    NO_DATA,
    INVALID_FORMAT,
    extract_list,
    upstream_error_code,
)
from app.services.sync.result import SyncResult


# ─────────────────────────────────────────────────────────────────────────────
# extract_list
# ─────────────────────────────────────────────────────────────────────────────

class TestExtractList:

    def test_nested_list(self):
        """Should read data.list first."""
        assert extract_list({"data": {"list": [1, 2]}, "list": [3]}) == Ok([1, 2])

    def test_top_level_list(self):
        """Should fall back to a top-level list."""
        assert extract_list({"list": [3]}) == Ok([3])

    def test_bare_data_list(self):
        """Should accept data itself when it is a list."""
        assert extract_list({"data": [4]}) == Ok([4])

    def test_bare_data_disallowed(self):
        """Should reject bare data lists when disabled."""
        assert extract_list({"data": [4]}, allow_bare_data=False) == Err(INVALID_FORMAT)

    def test_custom_key(self):
        """Should read rank_list for score tables."""
        assert extract_list({"data": {"rank_list": [{"team_uuid": "T1"}]}}, key="rank_list").items == [
            {"team_uuid": "T1"}
        ]

    def test_empty_list_is_ok(self):
        """Should treat an empty list as a valid, empty result."""
        result = extract_list({"data": {"list": []}})

        assert result.ok is True
        assert result.items == []

    @pytest.mark.parametrize("payload", [None, {}, ""])
    def test_no_data(self, payload):
        """Should report missing payloads."""
        assert extract_list(payload) == Err(NO_DATA)

    @pytest.mark.parametrize("payload", [
        {"data": {"total": 0}},
        {"data": {"list": "nope"}},
        [1, 2, 3],
    ])
    def test_invalid_format(self, payload):
        """Should report payloads without a usable list."""
        result = extract_list(payload)

        assert result.ok is False
        assert result.reason == INVALID_FORMAT


# ─────────────────────────────────────────────────────────────────────────────
# upstream_error_code
# ─────────────────────────────────────────────────────────────────────────────

class TestUpstreamErrorCode:

    def test_absent_code_is_success(self):
        """Should default to 0."""
        assert upstream_error_code({"data": []}) == 0

    def test_numeric_string(self):
        """Should parse string codes."""
        assert upstream_error_code({"code": "20002"}) == 20002

    def test_garbage_code(self):
        """Should flag unparseable codes as an error."""
        assert upstream_error_code({"code": "bad"}) == -1

    def test_non_dict(self):
        """Should treat non-dict payloads as carrying no code."""
        assert upstream_error_code([1]) == 0


# ─────────────────────────────────────────────────────────────────────────────
# SyncResult
# ─────────────────────────────────────────────────────────────────────────────

class TestSyncResult:

    def test_minimal_dict(self):
        """Should omit error and details when absent."""
        assert SyncResult.ok("done").to_dict() == {"success": True, "message": "done"}

    def test_failure_with_error(self):
        """Should include the error."""
        assert SyncResult.fail("Stage not found", "Stage not found").to_dict() == {
            "success": False,
            "message": "Stage not found",
            "error": "Stage not found",
        }

    def test_nested_results(self):
        """Should serialize nested results in details."""
        result = SyncResult.ok("all", inner=SyncResult.fail("x"), count=2)

        assert result.to_dict()["details"] == {
            "inner": {"success": False, "message": "x"},
            "count": 2,
        }
