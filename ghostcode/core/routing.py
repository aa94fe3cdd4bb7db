"""
Model routing.

Strategies are consulted in registration order; the first one that returns a
decision wins, otherwise the router falls back to its default model.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, TYPE_CHECKING

from loguru import logger

from ghostcode.core.retry_handler import RetryConfig

if TYPE_CHECKING:
    from ghostcode.core.context import ConversationContext


DEFAULT_ROUTING_REASON = "default routing strategy"


class RoutingError(Exception):
    """A routing strategy failed."""

    def __init__(self, strategy: str, cause: Exception):
        super().__init__(f"routing strategy '{strategy}' failed: {cause}")
        self.strategy = strategy
        self.cause = cause


@dataclass
class RoutingDecision:
    model: str
    reason: str


class RoutingStrategy(ABC):
    """Interface for model routing strategies."""

    name: str = "strategy"

    @abstractmethod
    async def route(
        self,
        context: "ConversationContext",
        retry_config: RetryConfig,
    ) -> Optional[RoutingDecision]:
        """Return a decision, or None to defer to the next strategy."""


class DefaultRoutingStrategy(RoutingStrategy):
    """Always defers."""

    name = "default"

    async def route(self, context, retry_config) -> Optional[RoutingDecision]:
        return None


class CompositeRouter:
    """Chains strategies; first non-None decision wins."""

    def __init__(self, default_model: str):
        self.default_model = default_model
        self.strategies: List[RoutingStrategy] = []

    def register_strategy(self, strategy: RoutingStrategy) -> None:
        self.strategies.append(strategy)
        logger.debug(f"Registered routing strategy: {strategy.name}")

    def set_default_model(self, model: str) -> None:
        self.default_model = model

    async def route(
        self,
        context: "ConversationContext",
        retry_config: Optional[RetryConfig] = None,
    ) -> RoutingDecision:
        retry_config = retry_config or RetryConfig()

        for strategy in self.strategies:
            try:
                decision = await strategy.route(context, retry_config)
            except Exception as error:
                logger.error(f"Routing strategy {strategy.name} failed: {error}")
                raise RoutingError(strategy.name, error) from error

            if decision is not None:
                logger.info(f"Routed to {decision.model} ({decision.reason})")
                return decision

        return RoutingDecision(model=self.default_model, reason=DEFAULT_ROUTING_REASON)
