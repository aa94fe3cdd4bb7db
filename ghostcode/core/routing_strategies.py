"""
Concrete routing strategies.

Each strategy is a pure function of the conversation context; none of them
keep state between turns.
"""

from typing import List, Optional

from ghostcode.core.intent import CODE_INTENTS, IntentKind
from ghostcode.core.retry_handler import RetryConfig
from ghostcode.core.routing import RoutingDecision, RoutingStrategy


class FallbackStrategy(RoutingStrategy):
    """
    Always picks the primary model.

    The fallback list is kept for error recovery; the router itself never
    fails over.
    """

    name = "fallback"

    def __init__(self, primary_model: str = "gemini-2.5-pro", fallback_models: Optional[List[str]] = None):
        self.primary_model = primary_model
        self.fallback_models = fallback_models if fallback_models is not None else [
            "gemini-2.0-flash",
            "gemini-1.5-pro",
        ]

    async def route(self, context, retry_config: RetryConfig) -> Optional[RoutingDecision]:
        return RoutingDecision(
            model=self.primary_model,
            reason="primary model from fallback strategy",
        )


class ModelSelectionStrategy(RoutingStrategy):
    """Chooses a model by intent: code work, chat, or file analysis."""

    name = "model_selection"

    def __init__(
        self,
        code_model: str = "gemini-2.5-pro",
        chat_model: str = "gemini-2.0-flash",
        analysis_model: str = "gemini-1.5-pro",
    ):
        self.code_model = code_model
        self.chat_model = chat_model
        self.analysis_model = analysis_model

    async def route(self, context, retry_config: RetryConfig) -> Optional[RoutingDecision]:
        kind = context.intent.kind
        if kind in CODE_INTENTS:
            return RoutingDecision(self.code_model, "code-related task")
        if kind in (IntentKind.CHAT, IntentKind.COMMAND):
            return RoutingDecision(self.chat_model, "general chat")
        return RoutingDecision(self.analysis_model, "analysis task")


class CostOptimizationStrategy(RoutingStrategy):
    """Long inputs go to the cheap model."""

    name = "cost_optimization"

    def __init__(
        self,
        cheap_model: str = "gemini-2.0-flash",
        expensive_model: str = "gemini-2.5-pro",
        cost_threshold: float = 0.5,
    ):
        self.cheap_model = cheap_model
        self.expensive_model = expensive_model
        self.cost_threshold = cost_threshold

    async def route(self, context, retry_config: RetryConfig) -> Optional[RoutingDecision]:
        if len(context.user_input) > self.cost_threshold * 1000:
            return RoutingDecision(self.cheap_model, "long input, using cost-optimized model")
        return RoutingDecision(self.expensive_model, "short input, using high-quality model")


class PerformanceStrategy(RoutingStrategy):
    """Commands use the fast model, everything else the quality model."""

    name = "performance"

    def __init__(self, fast_model: str = "gemini-2.0-flash", quality_model: str = "gemini-2.5-pro"):
        self.fast_model = fast_model
        self.quality_model = quality_model

    async def route(self, context, retry_config: RetryConfig) -> Optional[RoutingDecision]:
        if context.intent.kind is IntentKind.COMMAND:
            return RoutingDecision(self.fast_model, "command execution, using fast model")
        return RoutingDecision(self.quality_model, "general task, using quality model")
