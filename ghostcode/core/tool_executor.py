"""
Tool execution and the bounded tool-call loop.

A response's modifications become ``apply_modification`` calls; their
results are fed back to the model through a continuation, at most
``max_depth`` times per turn. An optional approver can veto each change
before it is applied.
"""

import json
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple

from loguru import logger

from ghostcode.core.hooks import HookManager
from ghostcode.core.response_processor import ProcessedResponse
from ghostcode.core.retry_handler import RetryableError
from ghostcode.tools.base import ToolCall, ToolResult
from ghostcode.tools.registry import ToolRegistry

MAX_TOOL_RECURSION_DEPTH = 5


class ToolErrorKind(Enum):
    MISSING_REGISTRY = "missing_registry"
    TOOL_FAILURE = "tool_failure"
    RECURSION_DEPTH = "recursion_depth"


class ToolExecutionError(RetryableError):
    """Tool execution failed. Only plain tool failures are retryable."""

    def __init__(self, kind: ToolErrorKind, message: str):
        super().__init__(message, retryable=kind is ToolErrorKind.TOOL_FAILURE)
        self.kind = kind

    @classmethod
    def missing_registry(cls) -> "ToolExecutionError":
        return cls(ToolErrorKind.MISSING_REGISTRY, "tool registry not configured")

    @classmethod
    def tool_failure(cls, message: str) -> "ToolExecutionError":
        return cls(ToolErrorKind.TOOL_FAILURE, f"tool execution failed: {message}")


class RecursionDepthExceeded(ToolExecutionError):
    """The model kept requesting tools past the depth limit."""

    def __init__(self, message: str = "maximum tool recursion depth reached"):
        super().__init__(ToolErrorKind.RECURSION_DEPTH, message)


NextRound = Callable[[List[ToolResult]], Awaitable[ProcessedResponse]]
# Decides whether a model-requested change may be applied
Approver = Callable[[ToolCall], Awaitable[bool]]


class ToolExecutor:
    """Runs tool calls against a registry."""

    def __init__(
        self,
        registry: Optional[ToolRegistry],
        hooks: Optional[HookManager] = None,
        max_depth: int = MAX_TOOL_RECURSION_DEPTH,
        approver: Optional[Approver] = None,
    ):
        self.registry = registry
        self.hooks = hooks
        self.max_depth = max_depth
        self.approver = approver

    def has_tool(self, name: str) -> bool:
        return self.registry is not None and self.registry.has_tool(name)

    async def execute_calls(self, calls: List[ToolCall]) -> List[ToolResult]:
        """
        Execute calls sequentially.

        Raises:
            ToolExecutionError: On the first failed call; later calls are not attempted
        """
        if not calls:
            return []
        if self.registry is None:
            raise ToolExecutionError.missing_registry()

        results = []
        for call in calls:
            result = await self.registry.execute(call)
            if not result.success:
                logger.warning(f"Tool {call.tool_name} failed: {result.error}")
                raise ToolExecutionError.tool_failure(result.error or "")

            logger.debug(f"Tool {call.tool_name} succeeded")
            results.append(result)
            if self.hooks is not None:
                await self.hooks.fire_after_tool_execution_hooks(call.tool_name, _render_data(result.data))
        return results

    @staticmethod
    def format_tool_results(results: List[ToolResult]) -> str:
        formatted = []
        for result in results:
            name = "unknown_tool"
            if isinstance(result.data, dict) and isinstance(result.data.get("tool"), str):
                name = result.data["tool"]
            formatted.append(f"\n<tool_result name=\"{name}\">\n{_render_data(result.data)}\n</tool_result>\n")
        return "".join(formatted)

    @staticmethod
    def modifications_to_calls(response: ProcessedResponse) -> List[ToolCall]:
        calls = []
        for modification in response.modifications:
            arguments = {
                "file_path": modification.file_path,
                "operation": modification.operation.value,
                "new_content": modification.new_content,
            }
            if modification.old_content is not None:
                arguments["old_content"] = modification.old_content
            calls.append(ToolCall("apply_modification", arguments))
        return calls

    async def execute_recursive(self, response: ProcessedResponse, next_round: NextRound) -> ProcessedResponse:
        """
        Apply modifications and re-invoke the model until none remain.

        Args:
            response: The processed model response for this turn
            next_round: Continuation that sends tool results back to the model

        Returns:
            The first response without modifications

        Raises:
            RecursionDepthExceeded: If more than ``max_depth`` rounds would be needed
        """
        depth = 1
        while response.modifications:
            if depth > self.max_depth:
                logger.error(f"Tool recursion exceeded depth {self.max_depth}")
                raise RecursionDepthExceeded()

            if self.hooks is not None:
                await self.hooks.fire_before_tool_selection_hooks(response)

            calls = self.modifications_to_calls(response)
            logger.info(f"Tool round {depth}: {len(calls)} call(s)")
            approved, declined = await self._review(calls)
            results = await self.execute_calls(approved) + declined
            response = await next_round(results)
            depth += 1

        return response

    async def _review(self, calls: List[ToolCall]) -> Tuple[List[ToolCall], List[ToolResult]]:
        """Split calls into approved ones and results reporting the declined ones."""
        if self.approver is None:
            return calls, []

        approved, declined = [], []
        for call in calls:
            if await self.approver(call):
                approved.append(call)
                continue
            logger.info(f"Change to {call.get_string('file_path')} declined")
            declined.append(ToolResult.ok({
                "tool": call.tool_name,
                "file_path": call.get_string("file_path"),
                "operation": call.get_string("operation"),
                "declined": True,
                "message": "The user declined this change; it was not applied",
            }))
        return approved, declined


def _render_data(data) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)
