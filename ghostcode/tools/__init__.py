"""
Local tools the assistant can invoke: file I/O, code search, shell commands
and project analysis.
"""

from ghostcode.tools.base import Tool, ToolCall, ToolDefinition, ToolParameter, ToolResult
from ghostcode.tools.registry import ToolRegistry, create_default_registry

__all__ = [
    "Tool",
    "ToolCall",
    "ToolDefinition",
    "ToolParameter",
    "ToolResult",
    "ToolRegistry",
    "create_default_registry",
]
