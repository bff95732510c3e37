"""Tests for promptaction.orchestrator.arguments"""

import pytest

from promptaction.models import ExecutionContext
from promptaction.orchestrator.arguments import prepare_arguments
from promptaction.tools.catalog import default_catalog


@pytest.fixture
def selected():
    return ExecutionContext(
        workspace_id="ws_1",
        user_id="u_1",
        current_project_id="p_1",
        current_tab_id="tab_1",
        context_table_id="tbl_1",
        context_block_id="blk_1",
    )


def _prepare(name, arguments, context, harvested=None):
    return prepare_arguments(name, arguments, context, default_catalog(), harvested or [])


class TestContextFill:

    def test_table_id_for_write_tool(self, selected):
        assert _prepare("bulkInsertRows", {"rows": []}, selected)["tableId"] == "tbl_1"

    def test_table_id_for_read_tool(self, selected):
        assert _prepare("getTableSchema", {}, selected) == {"tableId": "tbl_1"}

    def test_block_id(self, selected):
        assert _prepare("updateBlock", {"content": "x"}, selected)["blockId"] == "blk_1"

    def test_scope_ids_for_write_tool(self, selected):
        prepared = _prepare("createTable", {"title": "Budget"}, selected)
        assert prepared["tabId"] == "tab_1"
        assert prepared["projectId"] == "p_1"

    def test_scope_ids_not_added_to_searches(self, selected):
        assert _prepare("searchTasks", {"searchText": "bug"}, selected) == {"searchText": "bug"}

    def test_explicit_argument_wins(self, selected):
        assert _prepare("bulkInsertRows", {"tableId": "tbl_9"}, selected)["tableId"] == "tbl_9"

    def test_empty_value_counts_as_missing(self, selected):
        assert _prepare("bulkInsertRows", {"tableId": ""}, selected)["tableId"] == "tbl_1"

    def test_only_accepted_arguments(self, selected):
        assert _prepare("createTaskItem", {"title": "A"}, selected) == {"title": "A"}

    def test_no_context_ids(self, context):
        assert _prepare("bulkInsertRows", {"rows": []}, context) == {"rows": []}

    def test_input_not_mutated(self, selected):
        arguments = {"rows": []}
        _prepare("bulkInsertRows", arguments, selected)
        assert arguments == {"rows": []}


class TestHarvestedIds:

    def test_fills_derived_creation(self, context):
        prepared = _prepare("createTaskBoardFromTasks", {"title": "Bugs"}, context, ["t1", "t2"])
        assert prepared["taskIds"] == ["t1", "t2"]

    def test_explicit_ids_win(self, context):
        prepared = _prepare("duplicateTasksToBlock", {"taskIds": ["t9"]}, context, ["t1"])
        assert prepared["taskIds"] == ["t9"]

    def test_other_tools_untouched(self, context):
        prepared = _prepare("bulkUpdateTaskItems", {"status": "done"}, context, ["t1"])
        assert "taskIds" not in prepared
