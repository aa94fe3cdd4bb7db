"""
Conversation orchestration.

One turn flows through intent recognition, context building, routing,
before-model hooks, a retried and validated model call, response
processing, the bounded tool loop and after-model hooks. Only a turn that
completes is committed to the history.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from loguru import logger

from ghostcode.core.context import ContextManager, ConversationContext
from ghostcode.core.error_recovery import ErrorRecovery, RecoveryResult, RecoveryStrategy
from ghostcode.core.hooks import HookManager
from ghostcode.core.intent import IntentRecognizer
from ghostcode.core.message_history import Message, MessageHistory, MessageRole, Turn
from ghostcode.core.response_processor import ProcessedResponse, ResponseProcessor
from ghostcode.core.response_validation import ResponseValidator
from ghostcode.core.retry_handler import RetryConfig, RetryHandler
from ghostcode.core.routing import CompositeRouter, RoutingDecision
from ghostcode.core.streaming import StreamBuffer, StreamEvent
from ghostcode.core.tool_executor import ToolExecutor
from ghostcode.llm.base_client import BaseLLMClient, ModelCallError
from ghostcode.prompts import PromptBuilder
from ghostcode.tools.base import ToolResult

StreamCallback = Callable[[StreamEvent], None]


class ConversationError(Exception):
    """A turn failed; ``__cause__`` holds the underlying error."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class _TurnState:
    """Per-turn knobs that recovery strategies adjust between attempts."""

    model: str
    history_window: Optional[int] = None
    recovery_attempts: int = 0


class ConversationEngine:
    """
    Drives a conversation with one LLM client.

    The engine owns its history, hooks and router; pass instances in to
    share or pre-configure them.
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        default_model: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        history: Optional[MessageHistory] = None,
        router: Optional[CompositeRouter] = None,
        hooks: Optional[HookManager] = None,
        tool_executor: Optional[ToolExecutor] = None,
        error_recovery: Optional[ErrorRecovery] = None,
        context_manager: Optional[ContextManager] = None,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        self.llm_client = llm_client
        self.retry_config = retry_config or RetryConfig()
        self.retry_handler = RetryHandler(self.retry_config)
        self.validator = ResponseValidator(self.retry_handler)
        self.history = history if history is not None else MessageHistory()
        self.router = router or CompositeRouter(default_model or llm_client.get_model_name())
        self.hooks = hooks or HookManager()
        self.tool_executor = tool_executor
        if tool_executor is not None and tool_executor.hooks is None:
            tool_executor.hooks = self.hooks
        self.error_recovery = error_recovery or ErrorRecovery()
        self.context_manager = context_manager or ContextManager()
        self.prompt_builder = prompt_builder or PromptBuilder(rules=self.context_manager.rules)
        self.conversation_history: List[ConversationContext] = []
        self.last_routing_decision: Optional[RoutingDecision] = None

    # Model selection ------------------------------------------------------------
    @property
    def default_model(self) -> str:
        return self.router.default_model

    def set_model(self, model: str) -> None:
        self.router.set_default_model(model)
        self.llm_client.set_model(model)

    # Simple accessors -----------------------------------------------------------
    def process_input(self, text: str) -> ConversationContext:
        """Recognize intent and build context without calling the model."""
        intent = IntentRecognizer.recognize(text)
        context = self.context_manager.build(text, intent)
        self.conversation_history.append(context)
        return context

    def process_response(self, text: str) -> ProcessedResponse:
        return ResponseProcessor.process(text)

    def get_history(self) -> List[ConversationContext]:
        return list(self.conversation_history)

    def clear_history(self) -> None:
        self.conversation_history.clear()
        self.last_routing_decision = None
        self.history.clear()
        self.error_recovery.clear_history()

    def get_last_context(self) -> Optional[ConversationContext]:
        return self.conversation_history[-1] if self.conversation_history else None

    # Full turn -------------------------------------------------------------------
    async def process_input_complete(
        self,
        text: str,
        on_chunk: Optional[StreamCallback] = None,
    ) -> ProcessedResponse:
        """
        Run one complete turn.

        Args:
            text: Raw user input
            on_chunk: Optional receiver of stream events; enables streaming

        Returns:
            The processed final response

        Raises:
            ConversationError: If any stage fails. Nothing is committed then.
        """
        try:
            response, context = await self._run_turn(text, on_chunk)
            self.history.add_turn(Turn(
                user_message=Message(MessageRole.USER, text),
                assistant_message=Message(MessageRole.ASSISTANT, response.content),
                context=context,
            ))
        except Exception as e:
            logger.error(f"Turn failed: {e}")
            if on_chunk is not None:
                on_chunk(StreamEvent.error(str(e)))
            raise ConversationError(str(e)) from e

        self.conversation_history.append(context)
        if on_chunk is not None:
            on_chunk(StreamEvent.complete(response.content))
        logger.info(f"Turn complete ({self.history.get_message_count()} messages in history)")
        return response

    async def _run_turn(self, text: str, on_chunk: Optional[StreamCallback]):
        intent = IntentRecognizer.recognize(text)
        logger.debug(f"Recognized intent: {intent.kind.value}")

        context = await asyncio.to_thread(self.context_manager.build, text, intent)
        decision = await self.router.route(context, self.retry_config)
        self.last_routing_decision = decision
        await self.hooks.fire_before_model_hooks(context)

        state = _TurnState(model=decision.model)
        # Assistant replies and tool results exchanged after the first round
        rounds: List[Dict[str, str]] = []

        def build_messages() -> List[Dict[str, str]]:
            return self._build_messages(context, state) + rounds

        content = await self._generate(build_messages, state, on_chunk)
        response = ResponseProcessor.process(content)

        if self.tool_executor is not None:
            async def next_round(results: List[ToolResult]) -> ProcessedResponse:
                nonlocal content
                rounds.append({"role": "assistant", "content": content})
                rounds.append({"role": "user", "content": ToolExecutor.format_tool_results(results)})
                content = await self._generate(build_messages, state, on_chunk)
                return ResponseProcessor.process(content)

            response = await self.tool_executor.execute_recursive(response, next_round)
        elif response.modifications:
            logger.debug("No tool executor configured; modifications left unapplied")

        await self.hooks.fire_after_model_hooks(response)
        return response, context

    def _build_messages(self, context: ConversationContext, state: _TurnState) -> List[Dict[str, str]]:
        return self.prompt_builder.build_messages(
            context.user_input,
            history=self.history.to_chat_messages(state.history_window),
            files=context.files,
        )

    async def _generate(
        self,
        build_messages: Callable[[], List[Dict[str, str]]],
        state: _TurnState,
        on_chunk: Optional[StreamCallback],
    ) -> str:
        """One retried, validated model round. Messages are rebuilt per attempt."""
        buffer = StreamBuffer()

        async def produce(attempt: int) -> str:
            messages = build_messages()
            logger.debug(f"Model call attempt {attempt + 1}: {state.model}, {len(messages)} messages")
            try:
                if on_chunk is None:
                    return await self.llm_client.generate_completion(messages, model=state.model)
                await self.llm_client.generate_completion_stream(
                    messages, lambda chunk: self._forward_chunk(buffer, on_chunk, chunk), model=state.model
                )
                return buffer.get_content()
            except ModelCallError as e:
                raise self._recover(e, state) from e

        async def on_retry(attempt: int, error: Exception) -> None:
            buffer.on_retry()
            if on_chunk is not None:
                on_chunk(StreamEvent.retry())
            await self.hooks.fire_on_retry_hooks(attempt, str(error))

        return await self.validator.validate_with_retry(produce, on_retry=on_retry)

    @staticmethod
    def _forward_chunk(buffer: StreamBuffer, on_chunk: StreamCallback, chunk: str) -> bool:
        buffer.append(chunk)
        on_chunk(StreamEvent.chunk(chunk))
        return True

    def _recover(self, error: ModelCallError, state: _TurnState) -> ModelCallError:
        """Apply the recovery strategy for a failed model call and return the error to re-raise."""
        category = self.error_recovery.classify(error)
        strategy = self.error_recovery.handle_error(category)
        state.recovery_attempts += 1
        result = RecoveryResult(strategy_used=strategy, success=True, attempts=state.recovery_attempts)
        retryable = error.retryable() and strategy is not RecoveryStrategy.ABORT

        if strategy is RecoveryStrategy.FALLBACK:
            fallback = self.error_recovery.get_fallback_model(state.model)
            if fallback is None:
                result.success = False
            else:
                logger.warning(f"Falling back from {state.model} to {fallback}")
                state.model = fallback
                result.fallback_model = fallback
                retryable = True
        elif strategy is RecoveryStrategy.COMPRESS_HISTORY:
            if self.error_recovery.config.enable_history_compression:
                target = self.error_recovery.calculate_context_reduction(self.history.get_current_tokens())
                self.history.compress(target)
                result.history_compressed = True
                retryable = True
            else:
                result.success = False
        elif strategy is RecoveryStrategy.REDUCE_CONTEXT:
            window = state.history_window
            if window is None:
                window = self.history.get_message_count()
            state.history_window = self.error_recovery.calculate_context_reduction(window)
            result.context_reduced = True
            retryable = True
        elif strategy is RecoveryStrategy.ABORT:
            result.success = False

        if not self.error_recovery.should_retry(state.recovery_attempts):
            retryable = False
        self.error_recovery.record_recovery(result)
        logger.warning(f"Model call failed ({category.value}): {error}; strategy {strategy.value}")
        return ModelCallError(str(error), status_code=error.status_code, retryable=retryable)
