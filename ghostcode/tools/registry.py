"""
Tool registry: name -> tool lookup and dispatch.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

from loguru import logger

from ghostcode.tools.base import Tool, ToolCall, ToolDefinition, ToolResult


class ToolRegistry:
    """Holds the tools available to the executor."""

    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def count(self) -> int:
        return len(self._tools)

    def list_definitions(self) -> List[ToolDefinition]:
        return [tool.definition() for tool in self._tools.values()]

    def get_all_tool_names(self) -> List[str]:
        return list(self._tools)

    async def execute(self, call: ToolCall) -> ToolResult:
        tool = self.get(call.tool_name)
        if tool is None:
            return ToolResult.fail(f"Tool '{call.tool_name}' not found")
        return await tool.execute(call)


def create_default_registry(project_root: Union[str, Path]) -> ToolRegistry:
    """Registry with every built-in tool sandboxed to ``project_root``."""
    from ghostcode.tools.code_tools import GrepSearchTool
    from ghostcode.tools.file_tools import (
        ApplyModificationTool,
        ListFilesTool,
        ReadFileTool,
        WriteFileTool,
    )
    from ghostcode.tools.project_tools import AnalyzeProjectTool
    from ghostcode.tools.terminal_tools import RunCommandTool

    registry = ToolRegistry()
    for tool_class in (
        ReadFileTool,
        WriteFileTool,
        ListFilesTool,
        ApplyModificationTool,
        GrepSearchTool,
        RunCommandTool,
        AnalyzeProjectTool,
    ):
        registry.register(tool_class(project_root))
    return registry
