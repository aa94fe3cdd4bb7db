"""
Core modules for GhostCode conversation orchestration and history management.
"""

from ghostcode.core.config import Config
from ghostcode.core.hooks import HookManager
from ghostcode.core.message_history import MessageHistory
from ghostcode.core.retry_handler import RetryConfig, RetryHandler
from ghostcode.core.routing import CompositeRouter

__all__ = ["Config", "HookManager", "MessageHistory", "RetryConfig", "RetryHandler", "CompositeRouter"]
