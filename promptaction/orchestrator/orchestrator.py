"""
CommandExecutor - turns one natural-language command into tool calls.

Flow:
1. classify() - regex-table intent classification
2. FastPathMatcher - deterministic execution, no model call
3. ToolSelector - tool schemas for the classified groups
4. _loop_events() - bounded model <-> tool conversation loop

Both entry points share the same loop: ``execute()`` consumes its events
silently and returns the ``ExecutionResult`` carried by EXECUTION_END;
``stream()`` re-yields every event.

Example:
    executor = CommandExecutor(tool_executor=MyTools())
    result = await executor.execute("list my tasks", ExecutionContext("ws_1", "u_1"))

    async for event in executor.stream("mark all bugs as done", context):
        print(event.type, event.data)
"""

import json
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Tuple

from ..config import ExecutorConfig
from ..exceptions import ConfigurationError, EmptyResponseError
from ..llm.base import LLMResponse, ToolCall
from ..llm.factory import MISSING_KEY_MESSAGE, create_llm_client
from ..models import ExecutionContext, ExecutionResult, ToolCallRecord, ToolCallResult
from ..protocols import LLMClientProtocol, ToolExecutorProtocol
from ..streaming.models import AgentEvent, EventType, error_event, thinking_event
from ..tools.catalog import ESCALATION_TOOL, ToolCatalog, default_catalog
from .arguments import prepare_arguments
from .audit_logger import AuditLogger
from .compactor import ResultCompactor
from .dispatch import run_round_timed
from .fast_path import FastPathMatcher
from .intent_classifier import IntentClassification, classify, coerce_groups, groups_from_text
from .loop_policy import LoopPolicy
from .loop_state import LoopState
from .prompts import (
    build_escalation_note,
    build_missed_items_note,
    build_selection_note,
    build_system_prompt,
)
from .tool_selector import SchemaCache, ToolSelector

logger = logging.getLogger(__name__)

# Caller-facing responses
REPEAT_STOPPED_RESPONSE = "Action completed. I stopped repeating the same tool call to prevent duplicates."
TOOL_ERROR_RESPONSE = "An error occurred while executing the command."
PROVIDER_ERROR_RESPONSE = "An error occurred while processing your command."
EMPTY_RESPONSE = "No response from AI service."
DEFAULT_FINAL_RESPONSE = "Command executed successfully."
MAX_ITERATIONS_RESPONSE = "The command required too many steps to complete. Please try a simpler request."

RESULT_PREVIEW_CHARS = 240


class CommandExecutor:
    """Prompt-to-action command executor."""

    def __init__(
        self,
        tool_executor: ToolExecutorProtocol,
        llm_client: Optional[LLMClientProtocol] = None,
        config: Optional[ExecutorConfig] = None,
        catalog: Optional[ToolCatalog] = None,
        policy: Optional[LoopPolicy] = None,
        schema_cache: Optional[SchemaCache] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.tool_executor = tool_executor
        self.config = config or ExecutorConfig()
        self.catalog = catalog or default_catalog()
        self.schema_cache = schema_cache if schema_cache is not None else SchemaCache()
        self.selector = ToolSelector(self.catalog, self.config, self.schema_cache)
        self.policy = policy or LoopPolicy(self.catalog, skip_final_llm_call=self.config.skip_final_llm_call)
        self.fast_path = FastPathMatcher(tool_executor)
        self.compactor = ResultCompactor.from_config(self.config)
        self._llm_client = llm_client
        self._owns_llm_client = False
        self._environ = environ
        self._audit = AuditLogger()

    # ==========================================================================
    # ENTRY POINTS
    # ==========================================================================

    async def execute(
        self,
        command: str,
        context: ExecutionContext,
        history: Optional[List[Dict[str, Any]]] = None,
    ) -> ExecutionResult:
        """Run a command to completion and return its result."""
        result: Optional[ExecutionResult] = None
        async for event in self._loop_events(command, context, history, stream=False):
            if event.type == EventType.EXECUTION_END:
                result = event.data["result"]
        return result

    async def stream(
        self,
        command: str,
        context: ExecutionContext,
        history: Optional[List[Dict[str, Any]]] = None,
    ) -> AsyncIterator[AgentEvent]:
        """
        Run a command, yielding events as they happen.

        Text deltas arrive as MESSAGE_CHUNK while the model is still
        generating. The last event is always EXECUTION_END carrying the
        ExecutionResult under ``data["result"]``.
        """
        sequence = 0
        async for event in self._loop_events(command, context, history, stream=True):
            sequence += 1
            event.sequence = sequence
            yield event

    async def close(self) -> None:
        """Close the LLM client if this executor created it."""
        if self._owns_llm_client and self._llm_client is not None:
            await self._llm_client.close()
            self._llm_client = None
            self._owns_llm_client = False

    # ==========================================================================
    # CONVERSATION LOOP
    # ==========================================================================

    async def _loop_events(
        self,
        command: str,
        context: ExecutionContext,
        history: Optional[List[Dict[str, Any]]],
        stream: bool,
    ) -> AsyncIterator[AgentEvent]:
        """Shared loop. Always ends with exactly one EXECUTION_END event."""
        start_time = time.monotonic()
        state = LoopState(
            workspace_id=context.workspace_id,
            repeat_threshold=self.config.tool_repeat_threshold,
            max_consecutive_errors=self.config.max_consecutive_tool_errors,
        )
        records: List[ToolCallRecord] = []

        logger.info(f"[Loop] workspace={context.workspace_id} command={command[:120]!r}")
        yield AgentEvent(
            type=EventType.EXECUTION_START,
            data={"workspace_id": context.workspace_id, "command": command},
        )

        classification = classify(command)
        state.expects_batch_update = "update" in classification.actions
        self._audit.log_classification(
            command=command,
            tool_groups=list(classification.tool_groups),
            confidence=classification.confidence,
            reasoning=classification.reasoning,
            workspace_id=context.workspace_id,
        )
        yield thinking_event(
            "Analyzing command",
            tool_groups=list(classification.tool_groups),
            confidence=classification.confidence,
        )

        # Fast path: no model call at all
        if self.config.fast_path_enabled:
            fast = await self.fast_path.try_execute(command, context)
            if fast is not None:
                for record in fast.tool_calls_made:
                    yield AgentEvent(type=EventType.TOOL_CALL_START, data={"tool_name": record.tool, "call_id": None})
                    yield self._tool_result_event(record, None, json.dumps(record.result.to_dict(), default=str))
                async for event in self._finish(fast, state, start_time, "fast_path", records=fast.tool_calls_made):
                    yield event
                return

        try:
            llm_client = self._get_llm_client()
        except ConfigurationError as e:
            missing_key = str(e) == MISSING_KEY_MESSAGE
            result = ExecutionResult(
                success=False,
                response=MISSING_KEY_MESSAGE if missing_key else str(e),
                error="Missing API key" if missing_key else "Invalid configuration",
            )
            yield error_event(result.error, message=result.response)
            async for event in self._finish(result, state, start_time, "configuration", records):
                yield event
            return

        tool_schemas = self.selector.select(classification, command)
        self._audit.log_tool_selection(
            tool_names=[s["function"]["name"] for s in tool_schemas],
            reason=classification.reasoning,
            workspace_id=context.workspace_id,
        )
        messages = self._build_messages(command, context, history)

        for iteration in range(1, self.config.max_tool_iterations + 1):
            state.iterations = iteration
            call_config = {
                "temperature": self.config.temperature,
                "max_tokens": (
                    self.config.final_round_max_tokens if state.has_tool_results
                    else self.config.tool_round_max_tokens
                ),
            }
            yield thinking_event("Planning next step", iteration=iteration)

            # LLM call
            streamed_text = False
            try:
                if stream:
                    response = None
                    parts: List[str] = []
                    async for chunk in llm_client.stream_completion(messages, tool_schemas, call_config):
                        if chunk.content:
                            parts.append(chunk.content)
                            streamed_text = True
                            yield AgentEvent(type=EventType.MESSAGE_CHUNK, data={"chunk": chunk.content})
                        if chunk.is_final:
                            response = LLMResponse(
                                content="".join(parts) or None,
                                tool_calls=chunk.tool_calls,
                                usage=chunk.usage,
                            )
                    if response is None:
                        raise EmptyResponseError("Stream ended without a final chunk")
                else:
                    response = await llm_client.chat_completion(messages, tool_schemas, call_config)
            except EmptyResponseError as e:
                logger.warning(f"[Loop] iteration={iteration} empty response: {e}")
                result = ExecutionResult(success=False, response=EMPTY_RESPONSE, error="Empty response")
                yield error_event(result.error, message=result.response)
                async for event in self._finish(result, state, start_time, "empty_response", records):
                    yield event
                return
            except Exception as e:
                logger.error(f"[Loop] iteration={iteration} LLM call failed: {e}")
                result = ExecutionResult(
                    success=False,
                    response=PROVIDER_ERROR_RESPONSE,
                    error=str(e) or type(e).__name__,
                )
                yield error_event(result.error, message=result.response)
                async for event in self._finish(result, state, start_time, "provider_error", records):
                    yield event
                return

            state.add_usage(response.usage)
            messages.append(response.to_assistant_message())
            tool_calls: List[ToolCall] = response.tool_calls if response.has_tool_calls else []

            # ----------------------------------------------------------
            # No tool calls: final answer, unless escalation or a missed batch
            # ----------------------------------------------------------
            if not tool_calls:
                self._audit.log_loop_round(iteration, [], final_answer=True, workspace_id=context.workspace_id)
                content = response.content

                if not state.escalated and self.policy.signals_missing_capability(content):
                    new_groups = [g for g in groups_from_text(content, self.catalog)
                                  if g not in classification.tool_groups]
                    if new_groups:
                        state.escalated = True
                        classification = self.selector.expand(classification, new_groups)
                        tool_schemas = self._reselect(classification, command, context)
                        messages.append({"role": "system", "content": build_escalation_note(new_groups)})
                        logger.info(f"[Loop] iteration={iteration} escalated from content: {new_groups}")
                        yield thinking_event("Loading more tools", tool_groups=new_groups)
                        continue

                remaining = state.remaining_batch_ids()
                if remaining:
                    if state.batch_nudges < self.config.max_batch_nudges:
                        state.batch_nudges += 1
                        logger.info(f"[Loop] iteration={iteration} batch incomplete, {len(remaining)} ids left")
                        messages.append({"role": "user", "content": build_missed_items_note(remaining)})
                        yield thinking_event("Continuing with remaining items", remaining=len(remaining))
                        continue
                    result = ExecutionResult(
                        success=False,
                        response=(
                            f"{content or 'Stopped before finishing.'}\n\n"
                            f"{len(remaining)} item(s) from the search were not updated."
                        ),
                        error=f"Incomplete batch: {len(remaining)} items not updated",
                    )
                    async for event in self._finish(result, state, start_time, "incomplete_batch", records):
                        yield event
                    return

                result = ExecutionResult(success=True, response=content or DEFAULT_FINAL_RESPONSE)
                async for event in self._finish(result, state, start_time, "final_answer", records,
                                                streamed=streamed_text and bool(content)):
                    yield event
                return

            # ----------------------------------------------------------
            # Tool calls: prepare, dispatch concurrently, fold back in order
            # ----------------------------------------------------------
            tool_names = [tc.name for tc in tool_calls]
            logger.info(f"[Loop] iteration={iteration} calling: {', '.join(tool_names)}")
            for tc in tool_calls:
                yield AgentEvent(type=EventType.TOOL_CALL_START, data={"tool_name": tc.name, "call_id": tc.id})

            arguments: List[Dict[str, Any]] = []
            for tc in tool_calls:
                args = tc.parse_arguments()
                if tc.name != ESCALATION_TOOL:
                    args = prepare_arguments(tc.name, args, context, self.catalog, state.harvested_task_ids)
                arguments.append(args)

            external = [(tc.name, args) for tc, args in zip(tool_calls, arguments) if tc.name != ESCALATION_TOOL]
            external_results = iter(await run_round_timed(self.tool_executor, external, context))

            escalated_groups: List[str] = []
            round_records: List[ToolCallRecord] = []
            durations: List[int] = []
            for tc, args in zip(tool_calls, arguments):
                duration_ms = 0
                if tc.name == ESCALATION_TOOL:
                    result, added = self._handle_escalation(args, classification, state)
                    if added:
                        escalated_groups.extend(added)
                        classification = self.selector.expand(classification, added)
                else:
                    result, duration_ms = next(external_results)
                durations.append(duration_ms)
                round_records.append(ToolCallRecord(tool=tc.name, arguments=args, result=result))
            records.extend(round_records)

            for tc, record, duration_ms in zip(tool_calls, round_records, durations):
                content = json.dumps(self._conversation_copy(record.result), default=str, ensure_ascii=False)
                messages.append({
                    "role": "tool",
                    "tool_call_id": tc.id,
                    "name": tc.name,
                    "content": content,
                })
                if not record.result.success:
                    logger.warning(f"[Loop]   tool={tc.name} ERROR: {record.result.error}")
                yield self._tool_result_event(record, tc.id, content)
                self._audit.log_tool_execution(
                    tool_name=tc.name,
                    args_summary={k: str(v)[:100] for k, v in record.arguments.items()},
                    success=record.result.success,
                    duration_ms=duration_ms,
                    error=record.result.error,
                    workspace_id=context.workspace_id,
                )
            state.has_tool_results = True
            self._audit.log_loop_round(iteration, tool_names, final_answer=False, workspace_id=context.workspace_id)

            if escalated_groups:
                tool_schemas = self._reselect(classification, command, context)
                messages.append({"role": "system", "content": build_escalation_note(escalated_groups)})
                yield thinking_event("Loading more tools", tool_groups=escalated_groups)

            # Trackers, strictly in call order
            for record in round_records:
                if record.tool == ESCALATION_TOOL:
                    continue
                state.record_batch_progress(record.tool, record.arguments, record.result)

                if state.record_signature(record.tool, record.arguments):
                    logger.warning(f"[Loop] iteration={iteration} repeated call to {record.tool}, stopping")
                    if record.result.success:
                        result = ExecutionResult(success=True, response=REPEAT_STOPPED_RESPONSE)
                    else:
                        result = ExecutionResult(
                            success=False,
                            response=TOOL_ERROR_RESPONSE,
                            error=record.result.error or "Tool failed",
                        )
                    async for event in self._finish(result, state, start_time, "repeat_guard", records):
                        yield event
                    return

                if state.record_outcome(record.tool, record.result):
                    count = state.consecutive_errors[record.tool]
                    logger.warning(f"[Loop] {record.tool} failed {count} times in a row, stopping")
                    result = ExecutionResult(
                        success=False,
                        response=TOOL_ERROR_RESPONSE,
                        error=f"Tool {record.tool} failed {count} times in a row: {record.result.error}",
                    )
                    async for event in self._finish(result, state, start_time, "consecutive_errors", records):
                        yield event
                    return

            summary = self.policy.early_exit(command, classification, round_records, state)
            if summary is not None:
                result = ExecutionResult(success=True, response=summary)
                async for event in self._finish(result, state, start_time, "early_exit", records):
                    yield event
                return

        logger.warning(f"[Loop] max iterations ({self.config.max_tool_iterations}) reached")
        result = ExecutionResult(success=False, response=MAX_ITERATIONS_RESPONSE, error="Max iterations reached")
        async for event in self._finish(result, state, start_time, "max_iterations", records):
            yield event

    # ==========================================================================
    # HELPERS
    # ==========================================================================

    def _get_llm_client(self) -> LLMClientProtocol:
        if self._llm_client is None:
            self._llm_client = create_llm_client(
                self.config.llm,
                environ=self._environ,
                temperature=self.config.temperature,
            )
            self._owns_llm_client = True
        return self._llm_client

    def _build_messages(
        self,
        command: str,
        context: ExecutionContext,
        history: Optional[List[Dict[str, Any]]],
    ) -> List[Dict[str, Any]]:
        """System prompt, optional selection note, history, then the command."""
        messages: List[Dict[str, Any]] = [{"role": "system", "content": build_system_prompt(context)}]
        selection = build_selection_note(context)
        if selection:
            messages.append({"role": "system", "content": selection})
        for msg in history or []:
            if msg.get("role") in ("user", "assistant") and msg.get("content"):
                messages.append({"role": msg["role"], "content": msg["content"]})
        messages.append({"role": "user", "content": command})
        return messages

    def _reselect(
        self,
        classification: IntentClassification,
        command: str,
        context: ExecutionContext,
    ) -> List[Dict[str, Any]]:
        schemas = self.selector.select(classification, command)
        self._audit.log_tool_selection(
            tool_names=[s["function"]["name"] for s in schemas],
            reason=classification.reasoning,
            workspace_id=context.workspace_id,
        )
        return schemas

    def _handle_escalation(
        self,
        args: Dict[str, Any],
        classification: IntentClassification,
        state: LoopState,
    ) -> Tuple[ToolCallResult, List[str]]:
        """Answer an explicit requestToolGroups call; returns (result, added groups)."""
        requested = list(coerce_groups(args.get("toolGroups")))
        if state.escalated:
            return ToolCallResult.ok(
                {"toolGroups": requested, "added": []},
                hint="Tool groups can only be expanded once per command. Continue with the tools you have.",
            ), []

        state.escalated = True
        added = [g for g in requested if g not in classification.tool_groups]
        logger.info(f"[Loop] tool groups requested: {requested}, added: {added}")
        hint = build_escalation_note(added) if added else "Those tool groups are already available."
        return ToolCallResult.ok(
            {"toolGroups": requested, "added": added, "reason": args.get("reason")},
            hint=hint,
        ), added

    def _conversation_copy(self, result: ToolCallResult) -> Dict[str, Any]:
        payload = result.to_dict()
        if self.config.compact_tool_results:
            return self.compactor.compact(payload)
        return payload

    @staticmethod
    def _tool_result_event(record: ToolCallRecord, call_id: Optional[str], content: str) -> AgentEvent:
        return AgentEvent(
            type=EventType.TOOL_RESULT,
            data={
                "tool_name": record.tool,
                "call_id": call_id,
                "success": record.result.success,
                "error": record.result.error,
                "result_preview": content[:RESULT_PREVIEW_CHARS],
            },
        )

    async def _finish(
        self,
        result: ExecutionResult,
        state: LoopState,
        start_time: float,
        reason: str,
        records: List[ToolCallRecord],
        streamed: bool = False,
    ) -> AsyncIterator[AgentEvent]:
        """Emit the final message and EXECUTION_END for *result*."""
        result.tool_calls_made = list(records)
        result.iterations = state.iterations
        result.duration_ms = int((time.monotonic() - start_time) * 1000)
        if state.token_usage:
            result.token_usage = dict(state.token_usage)

        self._audit.log_termination(
            reason=reason,
            success=result.success,
            iterations=result.iterations,
            tool_calls_count=len(result.tool_calls_made),
            duration_ms=result.duration_ms,
            error=result.error,
            workspace_id=state.workspace_id,
        )
        logger.info(
            f"[Loop] done reason={reason} success={result.success} "
            f"iterations={result.iterations} tools={len(result.tool_calls_made)} ({result.duration_ms}ms)"
        )

        if not streamed:
            yield AgentEvent(type=EventType.MESSAGE_CHUNK, data={"chunk": result.response})
        yield AgentEvent(type=EventType.MESSAGE_END, data={})
        yield AgentEvent(type=EventType.EXECUTION_END, data={"result": result})
