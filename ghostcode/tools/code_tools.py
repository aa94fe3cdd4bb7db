"""
Code search tools.
"""

import asyncio
import re

from ghostcode.tools.base import ProjectTool, ToolCall, ToolDefinition, ToolParameter, ToolResult

MAX_MATCHES = 50
SKIP_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "target", "dist", "build"}


class GrepSearchTool(ProjectTool):
    name = "grep_search"
    description = "Search file contents with a regular expression. Returns path:line:text matches."

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=[
                ToolParameter("pattern", "Regular expression to search for"),
                ToolParameter("path", "Directory to search (default: project root)", required=False),
                ToolParameter("file_type", "File extension filter, e.g. 'py'", required=False),
                ToolParameter("case_sensitive", "Match case exactly", "boolean", False),
            ],
        )

    async def execute(self, call: ToolCall) -> ToolResult:
        return await asyncio.to_thread(self._search, call)

    def _search(self, call: ToolCall) -> ToolResult:
        pattern = call.get_string("pattern")
        if not pattern:
            return ToolResult.fail("Missing required argument 'pattern'")

        search_path = call.get_string("path", ".")
        try:
            search_dir = self._resolve_path(search_path)
        except ValueError as e:
            return ToolResult.fail(str(e))

        file_type = call.get_string("file_type")
        flags = 0 if call.get_bool("case_sensitive") else re.IGNORECASE
        try:
            regex = re.compile(pattern, flags)
        except re.error as e:
            return ToolResult.fail(f"Invalid regex: {e}")

        matches = []
        candidates = [search_dir] if search_dir.is_file() else sorted(search_dir.rglob("*"))
        for file_path in candidates:
            if len(matches) >= MAX_MATCHES:
                break
            if not file_path.is_file() or file_path.name.startswith("."):
                continue
            if SKIP_DIRS.intersection(file_path.relative_to(self.project_root).parts):
                continue
            if file_type and file_path.suffix.lstrip(".") != file_type:
                continue
            try:
                content = file_path.read_text(encoding="utf-8", errors="ignore")
            except OSError:
                continue
            for line_no, line in enumerate(content.splitlines(), 1):
                if regex.search(line):
                    matches.append(f"{self._relative(file_path)}:{line_no}:{line.strip()}")
                    if len(matches) >= MAX_MATCHES:
                        break

        if not matches:
            message = f"No matches found for '{pattern}'"
        else:
            message = f"Found {len(matches)} matches for '{pattern}'"
        return ToolResult.ok({
            "tool": self.name,
            "matches": matches,
            "count": len(matches),
            "message": message,
        })
