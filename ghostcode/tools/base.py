"""
Tool interface and the records exchanged with the tool executor.
Definitions can be exported in OpenAI function-calling format.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


@dataclass
class ToolParameter:
    name: str
    description: str
    param_type: str = "string"  # string, integer, number, boolean, object, array
    required: bool = True


@dataclass
class ToolDefinition:
    name: str
    description: str
    parameters: List[ToolParameter] = field(default_factory=list)

    def to_openai_schema(self) -> Dict[str, Any]:
        """Render in OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        param.name: {
                            "type": param.param_type,
                            "description": param.description,
                        }
                        for param in self.parameters
                    },
                    "required": [param.name for param in self.parameters if param.required],
                },
            },
        }


@dataclass
class ToolCall:
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.arguments.get(key, default)
        return value if isinstance(value, str) else default

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        value = self.arguments.get(key, default)
        if isinstance(value, bool):
            return default
        if isinstance(value, (int, float)):
            return int(value)
        return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.arguments.get(key, default)
        return value if isinstance(value, bool) else default


@dataclass
class ToolResult:
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, data=None, error=error)


class Tool(ABC):
    """A local capability the model can ask for."""

    name: str = ""
    description: str = ""

    @abstractmethod
    def definition(self) -> ToolDefinition:
        ...

    @abstractmethod
    async def execute(self, call: ToolCall) -> ToolResult:
        ...


class ProjectTool(Tool):
    """A tool whose file access is confined to a project root."""

    def __init__(self, project_root: Union[str, Path]):
        self.project_root = Path(project_root).resolve()

    def _resolve_path(self, path_value: Union[str, Path, None]) -> Path:
        """
        Resolve a user-provided path relative to the project root.

        Raises:
            ValueError: If the path points outside the project root
        """
        if path_value in (None, "", "."):
            return self.project_root

        raw_path = Path(path_value)
        if raw_path.is_absolute():
            try:
                raw_path = raw_path.relative_to(self.project_root)
            except ValueError:
                raise ValueError("Absolute paths must be inside the project directory")

        target_path = (self.project_root / raw_path).resolve()
        try:
            target_path.relative_to(self.project_root)
        except ValueError:
            raise ValueError("Path escapes the project directory")
        return target_path

    def _relative(self, path: Path) -> str:
        return str(path.relative_to(self.project_root))
