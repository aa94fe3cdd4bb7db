"""
Lifecycle hooks for a conversation turn.

Hooks run in registration order. The first failing hook stops the chain and
surfaces as a HookError; later hooks at that point do not run.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import List, TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from ghostcode.core.context import ConversationContext
    from ghostcode.core.response_processor import ProcessedResponse


class HookPoint(Enum):
    BEFORE_MODEL = "before_model"
    AFTER_MODEL = "after_model"
    BEFORE_TOOL_SELECTION = "before_tool_selection"
    AFTER_TOOL_EXECUTION = "after_tool_execution"
    ON_RETRY = "on_retry"


class HookError(Exception):
    """A hook failed; the turn is aborted."""

    def __init__(self, point: HookPoint, cause: Exception):
        super().__init__(f"{point.value} hook failed: {cause}")
        self.point = point
        self.cause = cause


class BeforeModelHook(ABC):
    @abstractmethod
    async def before_model(self, context: "ConversationContext") -> None:
        ...


class AfterModelHook(ABC):
    @abstractmethod
    async def after_model(self, response: "ProcessedResponse") -> None:
        ...


class BeforeToolSelectionHook(ABC):
    @abstractmethod
    async def before_tool_selection(self, response: "ProcessedResponse") -> None:
        ...


class AfterToolExecutionHook(ABC):
    @abstractmethod
    async def after_tool_execution(self, tool_name: str, result: str) -> None:
        ...


class OnRetryHook(ABC):
    @abstractmethod
    async def on_retry(self, attempt: int, reason: str) -> None:
        ...


class HookManager:
    """Holds the ordered hook lists for each lifecycle point."""

    def __init__(self):
        self.before_model_hooks: List[BeforeModelHook] = []
        self.after_model_hooks: List[AfterModelHook] = []
        self.before_tool_selection_hooks: List[BeforeToolSelectionHook] = []
        self.after_tool_execution_hooks: List[AfterToolExecutionHook] = []
        self.on_retry_hooks: List[OnRetryHook] = []

    def register_before_model_hook(self, hook: BeforeModelHook) -> None:
        self.before_model_hooks.append(hook)

    def register_after_model_hook(self, hook: AfterModelHook) -> None:
        self.after_model_hooks.append(hook)

    def register_before_tool_selection_hook(self, hook: BeforeToolSelectionHook) -> None:
        self.before_tool_selection_hooks.append(hook)

    def register_after_tool_execution_hook(self, hook: AfterToolExecutionHook) -> None:
        self.after_tool_execution_hooks.append(hook)

    def register_on_retry_hook(self, hook: OnRetryHook) -> None:
        self.on_retry_hooks.append(hook)

    def register_logging_hook(self, hook: "LoggingHook") -> None:
        """Register a LoggingHook at every point it implements."""
        self.register_before_model_hook(hook)
        self.register_after_model_hook(hook)
        self.register_on_retry_hook(hook)

    async def fire_before_model_hooks(self, context: "ConversationContext") -> None:
        for hook in self.before_model_hooks:
            await self._run(HookPoint.BEFORE_MODEL, hook.before_model(context))

    async def fire_after_model_hooks(self, response: "ProcessedResponse") -> None:
        for hook in self.after_model_hooks:
            await self._run(HookPoint.AFTER_MODEL, hook.after_model(response))

    async def fire_before_tool_selection_hooks(self, response: "ProcessedResponse") -> None:
        for hook in self.before_tool_selection_hooks:
            await self._run(HookPoint.BEFORE_TOOL_SELECTION, hook.before_tool_selection(response))

    async def fire_after_tool_execution_hooks(self, tool_name: str, result: str) -> None:
        for hook in self.after_tool_execution_hooks:
            await self._run(HookPoint.AFTER_TOOL_EXECUTION, hook.after_tool_execution(tool_name, result))

    async def fire_on_retry_hooks(self, attempt: int, reason: str) -> None:
        for hook in self.on_retry_hooks:
            await self._run(HookPoint.ON_RETRY, hook.on_retry(attempt, reason))

    @staticmethod
    async def _run(point: HookPoint, pending) -> None:
        try:
            await pending
        except Exception as error:
            logger.error(f"{point.value} hook failed: {error}")
            raise HookError(point, error) from error


class LoggingHook(BeforeModelHook, AfterModelHook, OnRetryHook):
    """Writes turn milestones to the log."""

    async def before_model(self, context: "ConversationContext") -> None:
        logger.info(f"[BEFORE_MODEL] Input: {context.user_input}")

    async def after_model(self, response: "ProcessedResponse") -> None:
        logger.info(f"[AFTER_MODEL] Response length: {len(response.content)}")
        logger.info(f"[AFTER_MODEL] Modifications: {len(response.modifications)}")

    async def on_retry(self, attempt: int, reason: str) -> None:
        logger.warning(f"[RETRY] Attempt: {attempt}, Reason: {reason}")
