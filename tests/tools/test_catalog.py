"""
Tests for the static tool catalog

Tests cover:
- Loading the bundled catalog.yaml
- Core set and group membership
- Read-only classification
- Action narrowing tables
"""

import pytest

from promptaction.tools.catalog import (
    ESCALATION_TOOL,
    TOOL_GROUPS,
    ToolCatalog,
    ToolDefinition,
    default_catalog,
    is_search_like,
)


@pytest.fixture
def catalog():
    return default_catalog()


class TestBundledCatalog:

    def test_core_set(self, catalog):
        assert catalog.core_names[0] == "searchAll"
        assert ESCALATION_TOOL in catalog.core_names
        assert all(catalog.is_read_only(n) for n in catalog.core_names)

    def test_maintenance_tool_lives_in_workspace_group(self, catalog):
        assert "reindexWorkspaceContent" not in catalog.core_names
        assert "reindexWorkspaceContent" in [t.name for t in catalog.group_tools("workspace")]

    def test_every_category_is_known(self, catalog):
        categories = {catalog.get(n).category for n in catalog.names}
        assert categories <= set(TOOL_GROUPS) | {"search", "control"}

    def test_group_tools(self, catalog):
        names = [t.name for t in catalog.group_tools("table")]
        assert "createTable" in names
        assert "bulkInsertRows" in names
        assert all(catalog.get(n).category == "table" for n in names)

    def test_core_group_is_core_set(self, catalog):
        assert [t.name for t in catalog.group_tools("core")] == list(catalog.core_names)

    def test_action_tools(self, catalog):
        assert catalog.action_tools("delete", "timeline") == ("deleteTimelineEvent", "deleteTimelineDependency")
        assert catalog.action_tools("create", "table")[0] == "createTable"
        assert catalog.action_tools("create", "nothing") == ()

    def test_accepts(self, catalog):
        assert catalog.accepts("bulkInsertRows", "tableId")
        assert not catalog.accepts("createTaskItem", "tableId")
        assert not catalog.accepts("noSuchTool", "tableId")

    def test_schema_format(self, catalog):
        schema = catalog.get(ESCALATION_TOOL).to_openai_schema()
        assert schema["type"] == "function"
        assert schema["function"]["parameters"]["required"] == ["toolGroups"]
        assert "toolGroups" in schema["function"]["parameters"]["properties"]


class TestReadOnly:

    @pytest.mark.parametrize("name,expected", [
        ("searchTasks", True),
        ("getTableSchema", True),
        ("resolveEntityByName", True),
        ("listThings", True),
        ("createTaskItem", False),
        ("deleteRow", False),
    ])
    def test_is_search_like(self, name, expected):
        assert is_search_like(name) is expected

    def test_unknown_tool_falls_back_to_name(self, catalog):
        assert catalog.is_read_only("searchSomethingNew")
        assert not catalog.is_read_only("archiveSomethingNew")

    def test_write_tool(self, catalog):
        assert not catalog.is_read_only("bulkUpdateTaskItems")


class TestCatalogConstruction:

    def test_duplicate_raises(self):
        tool = ToolDefinition(name="a", description="", category="task")
        with pytest.raises(ValueError, match="Duplicate"):
            ToolCatalog([tool, tool], core_tools=[])

    def test_missing_core_tools_dropped(self):
        catalog = ToolCatalog([ToolDefinition(name="searchA", description="", category="search")],
                              core_tools=["searchA", "ghost"])
        assert catalog.core_names == ("searchA",)

    def test_load_custom_file(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "core_tools: [searchX]\n"
            "action_tools:\n  create:\n    task: [createX, ghost]\n"
            "tools:\n"
            "  - name: searchX\n    category: search\n    description: >-\n      Find\n      things\n"
            "  - name: createX\n    category: task\n    description: Make\n"
            "    parameters: {title: {type: string}}\n    required: [title]\n"
        )
        catalog = ToolCatalog.load(path)
        assert len(catalog) == 2
        assert catalog.get("searchX").description == "Find things"
        assert catalog.action_tools("create", "task") == ("createX",)
        assert catalog.get("createX").required == ["title"]
