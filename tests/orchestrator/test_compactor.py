"""Tests for promptaction.orchestrator.compactor"""

import copy
import json

import pytest

from promptaction.config import ExecutorConfig
from promptaction.orchestrator.compactor import MAX_DEPTH_MARKER, ResultCompactor


def _size(value):
    return len(json.dumps(value, default=str, ensure_ascii=False))


@pytest.fixture
def small():
    return ResultCompactor(max_string_chars=40, max_array_items=3, max_object_keys=4, max_depth=3)


SAMPLES = [
    {"success": True, "data": {"rows": [{"id": i, "name": "n" * 80} for i in range(20)]}},
    {"success": False, "error": "e" * 500},
    {"success": True, "data": {f"k{i}": i for i in range(30)}},
    {"success": True, "data": {"a": {"b": {"c": {"d": {"e": "deep"}}}}}},
    ["x" * 100, 1, 2, 3, 4, 5],
    "plain string",
    42,
    None,
]


class TestProperties:

    @pytest.mark.parametrize("value", SAMPLES)
    def test_never_grows(self, small, value):
        assert _size(small.compact(value)) <= _size(value)

    @pytest.mark.parametrize("value", SAMPLES)
    def test_idempotent(self, small, value):
        once = small.compact(value)
        assert small.compact(once) == once

    @pytest.mark.parametrize("value", SAMPLES)
    def test_input_not_mutated(self, small, value):
        before = copy.deepcopy(value)
        small.compact(value)
        assert value == before

    def test_success_preserved(self, small):
        value = {"success": False, **{f"k{i}": "v" * 100 for i in range(50)}}
        compacted = small.compact(value)
        assert compacted["success"] is False
        assert list(compacted)[0] == "success"


class TestTruncation:

    def test_string_marker_counts_against_cap(self, small):
        compacted = small.compact("x" * 200)
        assert len(compacted) <= 40
        assert compacted.endswith("chars]")
        assert "truncated" in compacted

    def test_short_string_untouched(self, small):
        assert small.compact("short") == "short"

    def test_list_marker(self, small):
        compacted = small.compact(list(range(10)))
        assert compacted == [0, 1, "…[8 more items]"]

    def test_object_marker(self, small):
        compacted = small.compact({f"key{i}": i for i in range(10)})
        assert list(compacted) == ["key0", "key1", "key2", "_truncated"]
        assert compacted["_truncated"] == "7 more keys"

    def test_depth_marker(self, small):
        compacted = small.compact({"a": {"b": {"c": {"d": "value that is long enough"}}}})
        assert compacted["a"]["b"]["c"] == MAX_DEPTH_MARKER

    def test_small_deep_value_kept(self, small):
        compacted = small.compact({"a": {"b": {"c": []}}})
        assert compacted == {"a": {"b": {"c": []}}}

    def test_tiny_string_cap(self):
        compactor = ResultCompactor(max_string_chars=5)
        assert compactor.compact("abcdefghij") == "abcde"


class TestConfig:

    def test_from_config(self):
        compactor = ResultCompactor.from_config(ExecutorConfig(compact_max_array_items=7))
        assert compactor.max_array_items == 7
        assert compactor.max_string_chars == 2000

    @pytest.mark.parametrize("caps", [
        {"max_string_chars": 0},
        {"max_array_items": 0},
        {"max_object_keys": -1},
        {"max_depth": 0},
    ])
    def test_invalid_caps(self, caps):
        with pytest.raises(ValueError):
            ResultCompactor(**caps)
