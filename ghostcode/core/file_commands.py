"""
Direct file commands for the interactive shell.

``/create-file``, ``/modify-file``, ``/delete-file``, ``/read-file``,
``/list-dir`` and ``/search-files`` run the project tools without a model
round. A modification is held as a pending diff until ``/confirm-modify``
or ``/cancel-modify``, unless yolo mode is on.
"""

import difflib
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from ghostcode.core.commands import Command, CommandType
from ghostcode.tools.base import ToolCall, ToolResult
from ghostcode.tools.registry import ToolRegistry

# read_file caps unbounded reads; diffs need the whole file
FULL_FILE_LINE_LIMIT = 1_000_000

FILE_COMMANDS = frozenset({
    CommandType.CREATE_FILE,
    CommandType.MODIFY_FILE,
    CommandType.CONFIRM_MODIFY,
    CommandType.CANCEL_MODIFY,
    CommandType.DELETE_FILE,
    CommandType.READ_FILE,
    CommandType.LIST_DIR,
    CommandType.SEARCH_FILES,
})


@dataclass
class FileDiff:
    file_path: str
    old_content: str
    new_content: str

    def unified(self) -> List[str]:
        return list(difflib.unified_diff(
            self.old_content.splitlines(keepends=True),
            self.new_content.splitlines(keepends=True),
            fromfile=f"a/{self.file_path}",
            tofile=f"b/{self.file_path}",
            lineterm="",
        ))

    def has_changes(self) -> bool:
        return self.old_content != self.new_content


@dataclass
class FileCommandResult:
    success: bool
    message: str
    content: Optional[str] = None
    requires_confirmation: bool = False
    diff: Optional[FileDiff] = None

    @classmethod
    def failed(cls, message: str) -> "FileCommandResult":
        return cls(success=False, message=message)


class FileCommandHandler:
    """Runs file commands against a tool registry and tracks the pending modification."""

    def __init__(self, registry: ToolRegistry, yolo_mode: bool = False):
        self.registry = registry
        self.yolo_mode = yolo_mode
        self.pending_modification: Optional[FileDiff] = None

    @staticmethod
    def is_file_command(command: Command) -> bool:
        return command.command_type in FILE_COMMANDS

    def has_pending_confirmation(self) -> bool:
        return self.pending_modification is not None

    async def execute(self, command: Command) -> FileCommandResult:
        """
        Run one file command.

        Tool failures come back as unsuccessful results rather than exceptions.
        """
        args = command.args
        kind = command.command_type

        if kind is CommandType.CREATE_FILE:
            if not args:
                return FileCommandResult.failed("usage: /create-file <path> [content]")
            return await self._apply(args[0], "Create", " ".join(args[1:]))

        if kind is CommandType.MODIFY_FILE:
            if len(args) < 2:
                return FileCommandResult.failed("usage: /modify-file <path> <content>")
            return await self._modify(args[0], " ".join(args[1:]))

        if kind is CommandType.CONFIRM_MODIFY:
            pending = self.pending_modification
            if pending is None:
                return FileCommandResult.failed("No pending modification to confirm")
            self.pending_modification = None
            return await self._apply(pending.file_path, "Modify", pending.new_content)

        if kind is CommandType.CANCEL_MODIFY:
            if self.pending_modification is None:
                return FileCommandResult.failed("No pending modification to cancel")
            file_path = self.pending_modification.file_path
            self.pending_modification = None
            return FileCommandResult(success=True, message=f"Modification of {file_path} cancelled")

        if kind is CommandType.DELETE_FILE:
            if not args:
                return FileCommandResult.failed("usage: /delete-file <path>")
            return await self._apply(args[0], "Delete", "")

        if kind is CommandType.READ_FILE:
            if not args:
                return FileCommandResult.failed("usage: /read-file <path>")
            result = await self._read(args[0])
            if not result.success:
                return FileCommandResult.failed(result.error or "read failed")
            return FileCommandResult(success=True, message=result.data["message"], content=result.data["content"])

        if kind is CommandType.LIST_DIR:
            if not args:
                return FileCommandResult.failed("usage: /list-dir <directory>")
            return await self._list(args[0])

        if kind is CommandType.SEARCH_FILES:
            if len(args) < 2:
                return FileCommandResult.failed("usage: /search-files <directory> <pattern>")
            return await self._search(args[0], " ".join(args[1:]))

        return FileCommandResult.failed(f"Not a file command: {kind.value}")

    async def preview(self, call: ToolCall) -> FileDiff:
        """The diff an ``apply_modification`` call would produce, without applying it."""
        file_path = call.get_string("file_path", "")
        operation = call.get_string("operation")
        new_content = call.get_string("new_content", "")

        current = ""
        if operation != "Create":
            result = await self._read(file_path)
            if result.success:
                current = result.data["content"]

        if operation == "Delete":
            return FileDiff(file_path, current, "")
        old_content = call.get_string("old_content")
        if operation == "Modify" and old_content:
            return FileDiff(file_path, current, current.replace(old_content, new_content, 1))
        return FileDiff(file_path, current, new_content)

    async def _modify(self, file_path: str, new_content: str) -> FileCommandResult:
        current = await self._read(file_path)
        if not current.success:
            return FileCommandResult.failed(current.error or f"File not found: {file_path}")

        diff = FileDiff(file_path, current.data["content"], new_content)
        if self.yolo_mode:
            result = await self._apply(file_path, "Modify", new_content)
            result.diff = diff
            return result

        self.pending_modification = diff
        logger.debug(f"Pending modification of {file_path}")
        return FileCommandResult(
            success=True,
            message=f"Review the changes to {file_path}, then /confirm-modify or /cancel-modify",
            requires_confirmation=True,
            diff=diff,
        )

    async def _apply(self, file_path: str, operation: str, new_content: str) -> FileCommandResult:
        result = await self.registry.execute(ToolCall("apply_modification", {
            "file_path": file_path,
            "operation": operation,
            "new_content": new_content,
        }))
        if not result.success:
            return FileCommandResult.failed(result.error or f"{operation} failed")
        logger.info(f"{result.data['message']}: {file_path}")
        return FileCommandResult(success=True, message=f"{result.data['message']}: {file_path}")

    async def _read(self, file_path: str) -> ToolResult:
        return await self.registry.execute(
            ToolCall("read_file", {"file_path": file_path, "limit": FULL_FILE_LINE_LIMIT})
        )

    async def _list(self, directory: str) -> FileCommandResult:
        result = await self.registry.execute(ToolCall("list_files", {"directory": directory}))
        if not result.success:
            return FileCommandResult.failed(result.error or "list failed")
        lines = [
            entry["path"] + ("/" if entry["type"] == "directory" else "")
            for entry in result.data["files"]
        ]
        return FileCommandResult(success=True, message=result.data["message"], content="\n".join(lines))

    async def _search(self, directory: str, pattern: str) -> FileCommandResult:
        result = await self.registry.execute(ToolCall("grep_search", {"pattern": pattern, "path": directory}))
        if not result.success:
            return FileCommandResult.failed(result.error or "search failed")
        return FileCommandResult(
            success=True,
            message=result.data["message"],
            content="\n".join(result.data["matches"]),
        )
