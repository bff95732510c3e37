"""Pydantic request models for the promptaction API."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models import ExecutionContext


class HistoryMessage(BaseModel):
    role: str
    content: Optional[str] = None


class CommandRequest(BaseModel):
    """Body of POST /ai and POST /ai/stream. Accepts camelCase or snake_case keys."""

    model_config = ConfigDict(populate_by_name=True)

    command: Optional[str] = None
    workspace_id: str = Field(alias="workspaceId")
    user_id: str = Field(alias="userId")
    workspace_name: Optional[str] = Field(default=None, alias="workspaceName")
    user_name: Optional[str] = Field(default=None, alias="userName")
    project_id: Optional[str] = Field(default=None, alias="projectId")
    tab_id: Optional[str] = Field(default=None, alias="tabId")
    context_table_id: Optional[str] = Field(default=None, alias="contextTableId")
    context_block_id: Optional[str] = Field(default=None, alias="contextBlockId")
    conversation_history: List[HistoryMessage] = Field(default_factory=list, alias="conversationHistory")

    def to_context(self) -> ExecutionContext:
        return ExecutionContext(
            workspace_id=self.workspace_id,
            user_id=self.user_id,
            workspace_name=self.workspace_name,
            user_name=self.user_name,
            current_project_id=self.project_id,
            current_tab_id=self.tab_id,
            context_table_id=self.context_table_id,
            context_block_id=self.context_block_id,
        )

    def history(self) -> List[dict]:
        return [m.model_dump() for m in self.conversation_history]
