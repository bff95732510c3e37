"""
Loop policy - the surface-text heuristics that decide when to stop early.

These are heuristics, not a planner. A false "multi-step" costs one extra
model round; it never affects correctness. Subclass ``LoopPolicy`` and pass
it to ``CommandExecutor`` to tune or replace them.

Usage::

    policy = LoopPolicy(catalog)
    summary = policy.early_exit(command, classification, round_records, state)
    if summary is not None:
        ...  # finish without another model call
"""

import logging
import re
from typing import Any, List, Optional, Sequence

from ..models import ToolCallRecord
from ..tools.catalog import ESCALATION_TOOL, ToolCatalog
from .intent_classifier import IntentClassification
from .loop_state import LoopState

logger = logging.getLogger(__name__)

SEQUENCING_WORDS = re.compile(r"\b(?:then|also|after that|next)\b", re.IGNORECASE)
STRUCTURAL_MARKERS = re.compile(r"\b(?:with|columns?|fields?|rows?)\b", re.IGNORECASE)
AND_SECOND_VERB = re.compile(
    r"\band\s+(?:assign|add|set|tag|move|delete|remove|update|rename|change|populate|fill|"
    r"insert|attach|link|copy|duplicate|archive|complete|close|open|share|export|import|"
    r"create|make|mark)\b",
    re.IGNORECASE,
)

# "I don't have access" family of model replies
NO_ACCESS_PATTERNS = tuple(re.compile(p, re.IGNORECASE) for p in (
    r"\b(?:don'?t|do not|doesn'?t|does not)\s+have\s+(?:access|the\s+(?:ability|tools?)|a\s+tool|any\s+tools?)\b",
    r"\bno\s+(?:access|tool|tools|capability)\s+(?:to|for)\b",
    r"\b(?:can ?not|can'?t|unable to)\s+(?:access|use|call)\b",
    r"\b(?:tool|tools|capability)\s+(?:is|are)\s+not\s+available\b",
    r"\bnot\s+(?:able|equipped)\s+to\b",
))

# (result key, label) pairs recognized in write results
COUNT_FIELDS = (
    ("created", "created"),
    ("updated", "updated"),
    ("deleted", "deleted"),
    ("inserted", "inserted"),
    ("fieldsCreated", "fields created"),
    ("rowsInserted", "rows inserted"),
    ("count", "items"),
)

LIST_KEYS = ("tasks", "items", "results", "rows", "projects", "fields", "data")

_LABEL_KEYS = ("title", "name")
_MAX_LISTED = 5


def _result_list(data: Any) -> Optional[List[Any]]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in LIST_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    return None


def _describe(record: ToolCallRecord, read_only: bool) -> str:
    data = record.result.data
    details = []
    if isinstance(data, dict):
        for key, label in COUNT_FIELDS:
            value = data.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            details.append(f"{value} {label}")
    items = _result_list(data)
    if items is not None and not details:
        details.append(f"{len(items)} result{'s' if len(items) != 1 else ''}")

    line = f"Done: {record.tool}"
    if details:
        line += f" ({', '.join(details)})"

    if read_only and items:
        labels = []
        for item in items[:_MAX_LISTED]:
            if isinstance(item, dict):
                label = next((item[k] for k in _LABEL_KEYS if item.get(k)), None)
                if label:
                    labels.append(f"• {label}")
        if labels:
            line += "\n" + "\n".join(labels)
            if len(items) > _MAX_LISTED:
                line += f"\n…and {len(items) - _MAX_LISTED} more"
    if record.result.hint:
        line += f"\n{record.result.hint}"
    return line


class LoopPolicy:
    """Multi-step detection, early exits and no-access detection."""

    def __init__(self, catalog: ToolCatalog, skip_final_llm_call: bool = True):
        self.catalog = catalog
        self.skip_final_llm_call = skip_final_llm_call

    # ------------------------------------------------------------------
    # Multi-step detection
    # ------------------------------------------------------------------

    def is_multi_step(self, command: str, classification: IntentClassification) -> bool:
        if SEQUENCING_WORDS.search(command):
            return True
        if STRUCTURAL_MARKERS.search(command):
            return True
        if AND_SECOND_VERB.search(command):
            return True
        return len(classification.actions) > 1

    # ------------------------------------------------------------------
    # Early exit
    # ------------------------------------------------------------------

    def early_exit(
        self,
        command: str,
        classification: IntentClassification,
        records: Sequence[ToolCallRecord],
        state: LoopState,
    ) -> Optional[str]:
        """Summary to finish with after this round, or None to keep looping."""
        if not self.skip_final_llm_call or not records:
            return None
        if any(not r.result.success for r in records):
            return None
        if any(r.tool == ESCALATION_TOOL for r in records):
            return None
        if state.remaining_batch_ids():
            return None

        read_only = [self.catalog.is_read_only(r.tool) for r in records]
        if not all(read_only):
            if self.is_multi_step(command, classification):
                return None
            logger.info("[Loop] early exit after successful write round")
            return self.summarize_round(records)

        if not classification.has_write_action:
            logger.info("[Loop] early exit after read-only round")
            return self.summarize_round(records, read_only=True)
        return None

    def summarize_round(self, records: Sequence[ToolCallRecord], read_only: bool = False) -> str:
        """Human-readable "Done: ..." lines for a round."""
        return "\n".join(_describe(r, read_only) for r in records)

    # ------------------------------------------------------------------
    # Capability escalation
    # ------------------------------------------------------------------

    def signals_missing_capability(self, content: Optional[str]) -> bool:
        if not content:
            return False
        return any(p.search(content) for p in NO_ACCESS_PATTERNS)
