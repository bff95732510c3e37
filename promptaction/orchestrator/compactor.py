"""Result compactor - bounds tool results before they re-enter the conversation.

Only the copy sent back to the model is compacted; ``tool_calls_made`` keeps
the original. Compaction is pure and idempotent for fixed caps, never grows
the JSON payload, and always keeps the top-level ``success`` field.
"""

import json
from typing import Any, Dict, List

from ..config import ExecutorConfig

MAX_DEPTH_MARKER = "[max depth]"


def _json_size(value: Any) -> int:
    return len(json.dumps(value, default=str, ensure_ascii=False))


class ResultCompactor:
    """
    Recursively truncates strings, lists and objects to fixed caps.

    Markers count against the cap they enforce, so a compacted value is a
    fixed point of ``compact``.
    """

    def __init__(
        self,
        max_string_chars: int = 2000,
        max_array_items: int = 25,
        max_object_keys: int = 40,
        max_depth: int = 5,
    ):
        if min(max_string_chars, max_array_items, max_object_keys, max_depth) < 1:
            raise ValueError("Compaction caps must be positive")
        self.max_string_chars = max_string_chars
        self.max_array_items = max_array_items
        self.max_object_keys = max_object_keys
        self.max_depth = max_depth

    @classmethod
    def from_config(cls, config: ExecutorConfig) -> "ResultCompactor":
        return cls(
            max_string_chars=config.compact_max_string_chars,
            max_array_items=config.compact_max_array_items,
            max_object_keys=config.compact_max_object_keys,
            max_depth=config.compact_max_depth,
        )

    def compact(self, value: Any) -> Any:
        """Return a bounded copy of *value*. The input is never mutated."""
        if isinstance(value, dict) and "success" in value:
            # Top-level success survives key truncation untouched
            rest = {k: v for k, v in value.items() if k != "success"}
            key_cap = max(self.max_object_keys - 1, 1)
            compacted = self._compact_dict(rest, 0, key_cap=key_cap) if rest else {}
            return {"success": value["success"], **compacted}
        return self._compact(value, 0)

    # ------------------------------------------------------------------

    def _compact(self, value: Any, depth: int) -> Any:
        if isinstance(value, str):
            return self._compact_str(value)
        if isinstance(value, (list, tuple)):
            if depth >= self.max_depth:
                return self._depth_marker(value)
            return self._compact_list(list(value), depth)
        if isinstance(value, dict):
            if depth >= self.max_depth:
                return self._depth_marker(value)
            return self._compact_dict(value, depth, key_cap=self.max_object_keys)
        return value

    def _compact_str(self, text: str) -> str:
        if len(text) <= self.max_string_chars:
            return text
        keep = self.max_string_chars
        while keep > 0:
            marker = f"…[truncated {len(text) - keep} chars]"
            if keep + len(marker) <= self.max_string_chars:
                return text[:keep] + marker
            keep = self.max_string_chars - len(marker)
        # Cap too small for a marker
        return text[:self.max_string_chars]

    def _compact_list(self, items: List[Any], depth: int) -> List[Any]:
        compacted = [self._compact(item, depth + 1) for item in items]
        if len(compacted) <= self.max_array_items:
            return compacted
        keep = self.max_array_items - 1
        marker = self._compact_str(f"…[{len(compacted) - keep} more items]")
        truncated = compacted[:keep] + [marker]
        return truncated if _json_size(truncated) < _json_size(compacted) else compacted

    def _compact_dict(self, data: Dict[str, Any], depth: int, key_cap: int) -> Dict[str, Any]:
        compacted = {key: self._compact(value, depth + 1) for key, value in data.items()}
        if len(compacted) <= key_cap:
            return compacted
        keep = key_cap - 1
        kept_keys = list(compacted)[:keep]
        truncated = {key: compacted[key] for key in kept_keys}
        truncated["_truncated"] = self._compact_str(f"{len(compacted) - keep} more keys")
        return truncated if _json_size(truncated) < _json_size(compacted) else compacted

    @staticmethod
    def _depth_marker(value: Any) -> Any:
        if _json_size(value) <= _json_size(MAX_DEPTH_MARKER):
            return value
        return MAX_DEPTH_MARKER
