"""System prompts for the command executor.

Modular prompt system: each section is a function that returns a string.
Sections are composed in build_system_prompt(). Loop-injected notes
(selection context, escalation, missed batch items) live here too.
"""

from typing import List, Optional, Sequence

from ..models import ExecutionContext


# ---------------------------------------------------------------------------
# Section renderers
# ---------------------------------------------------------------------------

def render_preamble() -> str:
    return (
        "You are the command assistant of a project management workspace. "
        "You turn the user's instruction into tool calls against the workspace: "
        "projects, tasks, tables, timelines, docs, files and clients."
    )


def render_workflow() -> str:
    return """
# Workflow

1. **Understand:** which entities are involved, which action is requested
   (search, create, update, delete), and which filters or values apply.
2. **Resolve:** when the user names something instead of giving an id, look it
   up first (`resolveEntityByName`, `searchTasks`, `searchProjects`, ...).
   Use `searchAll` when the entity type is unclear. Never invent ids.
3. **Act:** call the action tools with ids from search results. Prefer bulk
   tools when several items change. Independent calls may run in parallel in
   a single turn.
4. **Report:** state briefly what was done, or what went wrong.
""".strip()


def render_rules() -> str:
    return """
# Rules

- Task status: "todo", "in-progress", "blocked", "done". Priority: "low",
  "medium", "high", "urgent".
- Dates are YYYY-MM-DD. Resolve "today", "tomorrow", "next week" against the
  current date below.
- When a search returns several items that all need the same change, update
  every one of them, not only the first.
- Do not repeat an action tool call with identical arguments after it
  succeeded; answer the user instead.
- If a tool you need is not in your tool list, call `requestToolGroups` with
  the groups you need instead of telling the user you cannot do it.
""".strip()


def render_context(context: ExecutionContext) -> str:
    return "\n".join([
        "# Current Context",
        f"- Workspace ID: {context.workspace_id or 'Unknown'}",
        f"- Workspace Name: {context.workspace_name or 'Unknown'}",
        f"- User ID: {context.user_id or 'Unknown'}",
        f"- User Name: {context.user_name or 'Unknown'}",
        f"- Current Date: {context.current_date}",
    ])


def build_system_prompt(context: ExecutionContext) -> str:
    """Compose the system prompt for one execution."""
    sections = [
        render_preamble(),
        render_workflow(),
        render_rules(),
        render_context(context),
    ]
    return "\n\n".join(s for s in sections if s)


# ---------------------------------------------------------------------------
# Loop-injected notes
# ---------------------------------------------------------------------------

def build_selection_note(context: ExecutionContext) -> Optional[str]:
    """System note describing the block/table the user has selected, if any."""
    if not context.context_block_id and not context.context_table_id:
        return None
    lines = [
        "Context: user selected a block. Use this as the target unless the user says otherwise."
    ]
    if context.context_block_id:
        lines.append(f"- Block ID: {context.context_block_id}")
    if context.current_tab_id:
        lines.append(f"- Tab ID: {context.current_tab_id}")
    if context.current_project_id:
        lines.append(f"- Project ID: {context.current_project_id}")
    if context.context_table_id:
        lines.append(f"- Table ID: {context.context_table_id}")
    return "\n".join(lines)


def build_escalation_note(groups: Sequence[str]) -> str:
    return (
        f"You now have access to the {', '.join(groups)} tools. "
        "Continue with the user's request using them."
    )


def build_missed_items_note(remaining_ids: List[str]) -> str:
    count = len(remaining_ids)
    return (
        f"You missed {count} item{'s' if count != 1 else ''} from the search results. "
        f"Apply the same change to these ids as well: {', '.join(remaining_ids)}. "
        "Use a bulk tool if one is available."
    )
