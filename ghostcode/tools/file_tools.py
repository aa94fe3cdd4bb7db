"""
File tools: read, write, list and apply modifications.

All paths are resolved against the project root; anything that escapes it is
refused. Blocking file I/O runs in a worker thread.
"""

import asyncio
from typing import Any, Dict

from ghostcode.tools.base import ProjectTool, ToolCall, ToolDefinition, ToolParameter, ToolResult

DEFAULT_FULL_READ_MAX_LINES = 400


class ReadFileTool(ProjectTool):
    name = "read_file"
    description = "Read the contents of a file. For large files, use offset and limit."

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=[
                ToolParameter("file_path", "Path to the file to read (relative to project root)"),
                ToolParameter("offset", "Line number to start reading from (0-indexed)", "integer", False),
                ToolParameter("limit", "Maximum number of lines to read", "integer", False),
            ],
        )

    async def execute(self, call: ToolCall) -> ToolResult:
        return await asyncio.to_thread(self._read, call)

    def _read(self, call: ToolCall) -> ToolResult:
        file_arg = call.get_string("file_path")
        if not file_arg:
            return ToolResult.fail("Missing required argument 'file_path'")

        try:
            file_path = self._resolve_path(file_arg)
        except ValueError as error:
            return ToolResult.fail(str(error))

        if not file_path.is_file():
            return ToolResult.fail(f"File not found: {file_arg}")

        try:
            lines = file_path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as e:
            return ToolResult.fail(f"Failed to read file: {e}")

        total_lines = len(lines)
        offset = max(0, call.get_int("offset", 0))
        limit = call.get_int("limit")

        if limit is None and offset == 0 and total_lines > DEFAULT_FULL_READ_MAX_LINES:
            limit = DEFAULT_FULL_READ_MAX_LINES

        end = total_lines if limit is None else offset + limit
        selected = lines[offset:end]
        data: Dict[str, Any] = {
            "tool": self.name,
            "file_path": file_arg,
            "content": "\n".join(selected),
            "line_count": len(selected),
            "total_lines": total_lines,
        }
        if len(selected) < total_lines:
            data["message"] = f"Read lines {offset + 1}-{min(end, total_lines)} of {total_lines}"
        else:
            data["message"] = f"Read {total_lines} lines (full file)"
        return ToolResult.ok(data)


class WriteFileTool(ProjectTool):
    name = "write_file"
    description = "Create a new file or overwrite an existing file."

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=[
                ToolParameter("file_path", "Path where the file should be written"),
                ToolParameter("content", "Complete content to write to the file"),
            ],
        )

    async def execute(self, call: ToolCall) -> ToolResult:
        return await asyncio.to_thread(self._write, call)

    def _write(self, call: ToolCall) -> ToolResult:
        file_arg = call.get_string("file_path")
        content = call.get_string("content")
        if not file_arg:
            return ToolResult.fail("Missing required argument 'file_path'")
        if content is None:
            return ToolResult.fail(f"Missing required argument 'content' for file '{file_arg}'")

        try:
            file_path = self._resolve_path(file_arg)
        except ValueError as error:
            return ToolResult.fail(str(error))

        is_overwrite = file_path.exists()
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
        except OSError as e:
            return ToolResult.fail(f"Failed to write file: {e}")

        line_count = len(content.splitlines())
        action = "Overwrote" if is_overwrite else "Created"
        return ToolResult.ok({
            "tool": self.name,
            "file_path": file_arg,
            "line_count": line_count,
            "is_overwrite": is_overwrite,
            "message": f"{action} file ({line_count} lines)",
        })


class ListFilesTool(ProjectTool):
    name = "list_files"
    description = "List files and directories in a directory (hidden entries are skipped)."

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=[ToolParameter("directory", "Directory to list (default: project root)", required=False)],
        )

    async def execute(self, call: ToolCall) -> ToolResult:
        return await asyncio.to_thread(self._list, call)

    def _list(self, call: ToolCall) -> ToolResult:
        directory = call.get_string("directory", ".")
        try:
            dir_path = self._resolve_path(directory)
        except ValueError as error:
            return ToolResult.fail(str(error))

        if not dir_path.is_dir():
            return ToolResult.fail(f"Directory not found: {directory}")

        files = [
            {
                "path": self._relative(item),
                "type": "directory" if item.is_dir() else "file",
            }
            for item in sorted(dir_path.iterdir())
            if not item.name.startswith(".")
        ]
        return ToolResult.ok({
            "tool": self.name,
            "files": files,
            "count": len(files),
            "message": f"Found {len(files)} items in {directory or '.'}",
        })


class ApplyModificationTool(ProjectTool):
    """
    Applies a CodeModification produced from a model response.

    ``operation`` is one of the tags Create, Modify or Delete. Modify replaces
    the first occurrence of ``old_content`` when given, otherwise it
    overwrites the file with ``new_content``.
    """

    name = "apply_modification"
    description = "Create, modify or delete a file as described by the assistant."

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=[
                ToolParameter("file_path", "Path of the file to change"),
                ToolParameter("operation", "One of Create, Modify, Delete"),
                ToolParameter("new_content", "Content to write", required=False),
                ToolParameter("old_content", "Exact content to replace when modifying", required=False),
            ],
        )

    async def execute(self, call: ToolCall) -> ToolResult:
        return await asyncio.to_thread(self._apply, call)

    def _apply(self, call: ToolCall) -> ToolResult:
        file_arg = call.get_string("file_path")
        operation = call.get_string("operation")
        if not file_arg:
            return ToolResult.fail("Missing required argument 'file_path'")

        try:
            file_path = self._resolve_path(file_arg)
        except ValueError as error:
            return ToolResult.fail(str(error))

        new_content = call.get_string("new_content", "")
        old_content = call.get_string("old_content")

        try:
            if operation == "Create":
                if file_path.exists():
                    return ToolResult.fail(f"File already exists: {file_arg}")
                file_path.parent.mkdir(parents=True, exist_ok=True)
                file_path.write_text(new_content, encoding="utf-8")
                message = "File created"
            elif operation == "Modify":
                if not file_path.is_file():
                    return ToolResult.fail(f"File not found: {file_arg}")
                if old_content:
                    current = file_path.read_text(encoding="utf-8")
                    if old_content not in current:
                        return ToolResult.fail(f"Content to replace not found in {file_arg}")
                    file_path.write_text(current.replace(old_content, new_content, 1), encoding="utf-8")
                else:
                    file_path.write_text(new_content, encoding="utf-8")
                message = "File updated"
            elif operation == "Delete":
                if not file_path.is_file():
                    return ToolResult.fail(f"File not found: {file_arg}")
                file_path.unlink()
                message = "File deleted"
            else:
                return ToolResult.fail(f"Invalid operation: {operation}")
        except (OSError, UnicodeDecodeError) as e:
            return ToolResult.fail(f"Failed to apply modification: {e}")

        return ToolResult.ok({
            "tool": self.name,
            "file_path": file_arg,
            "operation": operation,
            "message": message,
        })
