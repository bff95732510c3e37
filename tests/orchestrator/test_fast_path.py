"""Tests for promptaction.orchestrator.fast_path"""

import pytest

from promptaction.models import ToolCallResult
from promptaction.orchestrator.fast_path import (
    FastPathMatcher,
    is_multi_step_command,
    normalize_command,
    parse_column_list,
    parse_table_shorthand,
)


# =========================================================================
# Parsing helpers
# =========================================================================


class TestNormalize:

    @pytest.mark.parametrize("raw,expected", [
        ("  list my tasks  ", "list my tasks"),
        ("list my tasks please", "list my tasks"),
        ("list my tasks thanks", "list my tasks"),
        ("list my tasks.", "list my tasks"),
        ("create a task called A pls", "create a task called A"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_command(raw) == expected


class TestMultiStep:

    @pytest.mark.parametrize("command", [
        "create a task called A then assign it to me",
        "create a project and also a tab",
        "create a table called X and populate it",
        "create a task and assign Bob",
    ])
    def test_multi_step(self, command):
        assert is_multi_step_command(command)

    def test_column_and_is_not_multi_step(self):
        assert not is_multi_step_command("create a table called Budget with columns Item and Cost")


class TestParseColumnList:

    @pytest.mark.parametrize("raw,expected", [
        ("Name, Region, and Population", ["Name", "Region", "Population"]),
        ("Name, Region, Population", ["Name", "Region", "Population"]),
        ("Item and Cost", ["Item", "Cost"]),
        ("Name / Email / Stage", ["Name", "Email", "Stage"]),
        ("Name; Email; Stage", ["Name", "Email", "Stage"]),
        ("name region population", ["name", "region", "population"]),
        ("columns Name, Email", ["Name", "Email"]),
        ("'Due Date', 'Owner'", ["Due Date", "Owner"]),
    ])
    def test_parse(self, raw, expected):
        assert parse_column_list(raw) == expected

    def test_single_segment_splits_on_spaces(self):
        assert parse_column_list("Due Date") == ["Due", "Date"]
        assert parse_column_list("Due Date, Owner") == ["Due Date", "Owner"]


class TestParseTableShorthand:

    @pytest.mark.parametrize("text,title,columns", [
        ("States with Name, Region, and Population", "States", ["Name", "Region", "Population"]),
        ("create a table named Leads: columns Name / Email / Stage", "Leads", ["Name", "Email", "Stage"]),
        ("create a table called Budget with columns Item and Cost", "Budget", ["Item", "Cost"]),
        ("make me an Inventory table with SKU, Qty", "Inventory", ["SKU", "Qty"]),
        ("Contacts: columns Name, Phone", "Contacts", ["Name", "Phone"]),
    ])
    def test_parse(self, text, title, columns):
        assert parse_table_shorthand(text) == (title, columns)

    def test_bare_form_can_be_disabled(self):
        assert parse_table_shorthand("States with Name, Region", allow_bare=False) is None

    @pytest.mark.parametrize("text", [
        "create a table",
        "a with b",
        "show me the table",
    ])
    def test_no_match(self, text):
        assert parse_table_shorthand(text) is None


# =========================================================================
# FastPathMatcher
# =========================================================================


class TestFastPathMatcher:

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self, tools, context):
        matcher = FastPathMatcher(tools)
        assert await matcher.try_execute("summarize the roadmap doc", context) is None
        assert tools.calls == []

    @pytest.mark.asyncio
    async def test_multi_step_is_rejected(self, tools, context):
        matcher = FastPathMatcher(tools)
        assert await matcher.try_execute("create a task called A then assign it to me", context) is None
        assert tools.calls == []

    @pytest.mark.asyncio
    async def test_create_task(self, tools, context):
        result = await FastPathMatcher(tools).try_execute("create a task called Write report", context)

        assert result.success is True
        assert result.response == 'Created task "Write report".'
        assert tools.calls == [
            ("createTaskItem", {"title": "Write report", "workspaceId": "ws_1", "projectId": None}),
        ]
        assert result.fast_path is True

    @pytest.mark.asyncio
    async def test_create_project_failure(self, tools, context):
        tools.handlers["createProject"] = ToolCallResult.fail("name taken")

        result = await FastPathMatcher(tools).try_execute("create a new project named Apollo", context)

        assert result.success is False
        assert result.response == "Failed to create project: name taken"
        assert result.error == "name taken"

    @pytest.mark.asyncio
    async def test_list_projects(self, tools, context):
        tools.handlers["searchProjects"] = ToolCallResult.ok({"projects": [{"name": "Apollo"}, {"name": "Zeus"}]})

        result = await FastPathMatcher(tools).try_execute("list projects", context)

        assert result.response == "Found 2 project(s):\n• Apollo\n• Zeus"
        assert tools.calls[0][1] == {"workspaceId": "ws_1", "limit": 20}

    @pytest.mark.asyncio
    async def test_list_tasks_shows_status(self, tools, context):
        tools.handlers["searchTasks"] = ToolCallResult.ok([
            {"title": "A", "status": "done"},
            {"title": "B"},
        ])

        result = await FastPathMatcher(tools).try_execute("show my tasks", context)

        assert result.response == "Found 2 task(s):\n• A (done)\n• B (todo)"

    @pytest.mark.asyncio
    async def test_table_shorthand_creates_fields_in_bulk(self, tools, context):
        tools.handlers["createTable"] = ToolCallResult.ok({"id": "tbl_9"})

        result = await FastPathMatcher(tools).try_execute(
            "create a table named Leads: columns Name / Email / Stage", context
        )

        assert result.success is True
        assert tools.names == ["createTable", "bulkCreateFields"]
        assert tools.calls[1][1] == {
            "tableId": "tbl_9",
            "fields": [
                {"name": "Name", "type": "text"},
                {"name": "Email", "type": "text"},
                {"name": "Stage", "type": "text"},
            ],
        }

    @pytest.mark.asyncio
    async def test_table_failure_stops_before_fields(self, tools, context):
        tools.handlers["createTable"] = ToolCallResult.fail("quota exceeded")

        result = await FastPathMatcher(tools).try_execute(
            "create a table called Budget with columns Item and Cost", context
        )

        assert result.success is False
        assert result.response == "Failed to create table: quota exceeded"
        assert tools.names == ["createTable"]

    @pytest.mark.asyncio
    async def test_missing_table_id(self, tools, context):
        tools.handlers["createTable"] = ToolCallResult.ok({"title": "Budget"})

        result = await FastPathMatcher(tools).try_execute(
            "create a table called Budget with columns Item and Cost", context
        )

        assert result.success is False
        assert result.response == "Failed to create table: no tableId returned."

    @pytest.mark.asyncio
    async def test_field_failure_is_partial(self, tools, context):
        tools.handlers["createTable"] = ToolCallResult.ok({"table": {"id": "tbl_1"}})
        tools.handlers["bulkCreateFields"] = ToolCallResult.fail("bad field type")

        result = await FastPathMatcher(tools).try_execute(
            "create a table called Budget with columns Item and Cost", context
        )

        assert result.success is False
        assert "failed to add columns: bad field type" in result.response
        assert len(result.tool_calls_made) == 2

    @pytest.mark.asyncio
    async def test_executor_exception_is_a_failure(self, tools, context):
        tools.handlers["createTaskItem"] = RuntimeError("connection reset")

        result = await FastPathMatcher(tools).try_execute("create task named X", context)

        assert result.success is False
        assert result.error == "connection reset"
