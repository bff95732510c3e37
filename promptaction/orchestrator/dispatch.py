"""Tool dispatch against the external executor.

Executor exceptions never escape: they become failed ``ToolCallResult``s so
that every tool call in a round gets exactly one result.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Sequence, Tuple

from ..models import ExecutionContext, ToolCallResult
from ..protocols import ToolExecutorProtocol

logger = logging.getLogger(__name__)


async def run_tool(
    executor: ToolExecutorProtocol,
    name: str,
    arguments: Dict[str, Any],
    context: ExecutionContext,
) -> ToolCallResult:
    """Execute one tool, normalizing the return value and any exception."""
    try:
        value = await executor.execute_tool(name, arguments, context)
    except Exception as e:
        logger.warning(f"[Tools] {name} raised: {e}")
        return ToolCallResult.fail(str(e) or type(e).__name__)
    return ToolCallResult.from_value(value)


async def _timed_tool(
    executor: ToolExecutorProtocol,
    name: str,
    arguments: Dict[str, Any],
    context: ExecutionContext,
) -> Tuple[ToolCallResult, int]:
    start = time.monotonic()
    result = await run_tool(executor, name, arguments, context)
    return result, int((time.monotonic() - start) * 1000)


async def run_round_timed(
    executor: ToolExecutorProtocol,
    calls: Sequence[Tuple[str, Dict[str, Any]]],
    context: ExecutionContext,
) -> List[Tuple[ToolCallResult, int]]:
    """Like ``run_round`` but pairs each result with its own duration in ms."""
    results = await asyncio.gather(
        *[_timed_tool(executor, name, args, context) for name, args in calls],
        return_exceptions=True,
    )
    normalized = []
    for (name, _), result in zip(calls, results):
        if isinstance(result, BaseException):
            # Cancellation and friends that slipped past run_tool
            logger.warning(f"[Tools] {name} aborted: {result!r}")
            normalized.append((ToolCallResult.fail(str(result) or type(result).__name__), 0))
        else:
            normalized.append(result)
    return normalized


async def run_round(
    executor: ToolExecutorProtocol,
    calls: Sequence[Tuple[str, Dict[str, Any]]],
    context: ExecutionContext,
) -> List[ToolCallResult]:
    """Execute (name, arguments) pairs concurrently; results keep call order."""
    return [result for result, _ in await run_round_timed(executor, calls, context)]
